"""Messages, their routing selectors and the payload types carried on the bus."""

from __future__ import annotations

import dataclasses
import uuid as _uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable

from .codec import Decoder, Encoder
from .errors import DecodeError, EncodeError, TypeUuidNotFound
from .label import Label, LabelOp
from .version import Version

_NANOS_PER_SECOND = 1_000_000_000
_ZERO_UUID = bytes(16)


class SelectorMode(Enum):
    """How many endpoints may consume a message."""

    UNICAST = 0
    """The message can only be consumed by one endpoint."""
    MULTICAST = 1
    """The message can be consumed by multiple endpoints."""


@dataclass
class Selector:
    """Describes how a message is routed.

    ``ttl`` is the number of seconds a message is kept by the controller
    when it cannot be routed to any endpoint.
    """

    label_op: LabelOp
    mode: SelectorMode
    uuid: bytes = _ZERO_UUID
    memory_region_count: int = 0
    ttl: float = 0.0

    @classmethod
    def unicast(cls, label_op: LabelOp | str | bool) -> Selector:
        return cls(LabelOp.coerce(label_op), SelectorMode.UNICAST)

    @classmethod
    def multicast(cls, label_op: LabelOp | str | bool) -> Selector:
        return cls(LabelOp.coerce(label_op), SelectorMode.MULTICAST)

    def encode_to(self, encoder: Encoder) -> None:
        if len(self.uuid) != 16:
            raise EncodeError("type uuid must be 16 bytes")
        if self.ttl < 0:
            raise EncodeError(f"negative ttl {self.ttl}")
        seconds = int(self.ttl)
        nanos = min(round((self.ttl - seconds) * _NANOS_PER_SECOND), _NANOS_PER_SECOND - 1)
        self.label_op.encode_to(encoder)
        encoder.u32(self.mode.value)
        encoder.fixed(self.uuid)
        encoder.u16(self.memory_region_count)
        encoder.u64(seconds).u32(nanos)

    @classmethod
    def decode_from(cls, decoder: Decoder) -> Selector:
        label_op = LabelOp.decode_from(decoder)
        tag = decoder.u32()
        try:
            mode = SelectorMode(tag)
        except ValueError as exc:
            raise DecodeError(f"unknown selector mode {tag}") from exc
        type_uuid = decoder.fixed(16)
        region_count = decoder.u16()
        seconds = decoder.u64()
        nanos = decoder.u32()
        if nanos >= _NANOS_PER_SECOND:
            raise DecodeError(f"invalid nanoseconds {nanos}")
        return cls(label_op, mode, type_uuid, region_count, seconds + nanos / _NANOS_PER_SECOND)


class Payload:
    """Base for message types; each subclass carries a unique ``UUID``.

    Subclasses write their fields in ``_encode_fields`` and read them back
    in the ``_decode_fields`` class method.
    """

    UUID: ClassVar[bytes]

    def _encode_fields(self, encoder: Encoder) -> None:
        raise NotImplementedError

    @classmethod
    def _decode_fields(cls, decoder: Decoder) -> Payload:
        raise NotImplementedError

    def encode(self) -> bytes:
        encoder = Encoder()
        self._encode_fields(encoder)
        return encoder.getvalue()

    @classmethod
    def decode(cls, uuid: bytes, data: bytes) -> Payload:
        """Decode ``data`` if ``uuid`` names this type."""
        if bytes(uuid) != cls.UUID:
            raise TypeUuidNotFound()
        return cls._decode_fields(Decoder(data))


def _type_uuid(text: str) -> bytes:
    return _uuid.UUID(text).bytes


@dataclass(frozen=True)
class BytesMessage(Payload):
    """A predefined message of raw bytes with an application-defined format."""

    format: int
    data: bytes

    UUID: ClassVar[bytes] = _type_uuid("dd95ba8e-1279-47cf-925e-83e614e79588")

    def _encode_fields(self, encoder: Encoder) -> None:
        encoder.u16(self.format).raw_bytes(self.data)

    @classmethod
    def _decode_fields(cls, decoder: Decoder) -> BytesMessage:
        return cls(decoder.u16(), decoder.raw_bytes())


@dataclass(frozen=True)
class ConnectMessage(Payload):
    """Sent by an endpoint asking the controller to admit it."""

    version: Version
    token: str
    label: Label

    UUID: ClassVar[bytes] = _type_uuid("b2c1deb3-3091-4a74-a99c-c8e8d710d4b2")

    def _encode_fields(self, encoder: Encoder) -> None:
        self.version.encode_to(encoder)
        encoder.string(self.token)
        self.label.encode_to(encoder)

    @classmethod
    def _decode_fields(cls, decoder: Decoder) -> ConnectMessage:
        return cls(Version.decode_from(decoder), decoder.string(), Label.decode_from(decoder))


class AckKind(Enum):
    OK = 0
    ERR_VERSION = 1
    ERR_TOKEN = 2


@dataclass(frozen=True)
class ConnectMessageAck(Payload):
    """The controller's answer to a :class:`ConnectMessage`."""

    kind: AckKind
    endpoint_id: int | None = None
    version: Version | None = None

    UUID: ClassVar[bytes] = _type_uuid("c3de9eb4-c310-4c14-9747-093d62c09998")

    @classmethod
    def ok(cls, endpoint_id: int) -> ConnectMessageAck:
        return cls(AckKind.OK, endpoint_id=endpoint_id)

    @classmethod
    def err_version(cls, version: Version) -> ConnectMessageAck:
        return cls(AckKind.ERR_VERSION, version=version)

    @classmethod
    def err_token(cls) -> ConnectMessageAck:
        return cls(AckKind.ERR_TOKEN)

    def _encode_fields(self, encoder: Encoder) -> None:
        encoder.u32(self.kind.value)
        if self.kind is AckKind.OK:
            if self.endpoint_id is None:
                raise EncodeError("ok acknowledgement needs an endpoint id")
            encoder.u64(self.endpoint_id)
        elif self.kind is AckKind.ERR_VERSION:
            if self.version is None:
                raise EncodeError("version acknowledgement needs a version")
            self.version.encode_to(encoder)

    @classmethod
    def _decode_fields(cls, decoder: Decoder) -> ConnectMessageAck:
        tag = decoder.u32()
        try:
            kind = AckKind(tag)
        except ValueError as exc:
            raise DecodeError(f"unknown acknowledgement variant {tag}") from exc
        if kind is AckKind.OK:
            return cls.ok(decoder.u64())
        if kind is AckKind.ERR_VERSION:
            return cls.err_version(Version.decode_from(decoder))
        return cls.err_token()


class MessageBox:
    """A set of payload types that one endpoint sends or receives."""

    def __init__(self, *args: type[Payload]) -> None:
        self._types: dict[bytes, type[Payload]] = {}
        for payload_type in args:
            if payload_type.UUID in self._types:
                raise ValueError(f"duplicate type uuid for {payload_type.__name__}")
            self._types[payload_type.UUID] = payload_type

    def decode(self, uuid: bytes, data: bytes) -> Payload:
        payload_type = self._types.get(bytes(uuid))
        if payload_type is None:
            raise TypeUuidNotFound()
        return payload_type.decode(uuid, data)

    def _check(self, payload: Payload) -> type[Payload]:
        payload_type = type(payload)
        if self._types.get(getattr(payload_type, "UUID", None)) is not payload_type:
            raise TypeUuidNotFound(f"{payload_type.__name__} is not in this box")
        return payload_type

    def encode(self, payload: Payload) -> bytes:
        self._check(payload)
        return payload.encode()

    def uuid(self, payload: Payload) -> bytes:
        return self._check(payload).UUID


class Message:
    """A payload together with its selector, kernel objects and memory regions."""

    def __init__(self, selector: Selector, payload: Payload) -> None:
        if not isinstance(payload, Payload):
            raise TypeError(f"payload must be a Payload, got {type(payload).__name__}")
        self.selector = dataclasses.replace(selector, uuid=type(payload).UUID)
        self.payload = payload
        self.objects: list[int] = []
        self.memory_regions: list[Any] = []

    def into_encoded(self) -> EncodedMessage:
        """Serialize the payload for transport."""
        selector = dataclasses.replace(
            self.selector, memory_region_count=len(self.memory_regions)
        )
        return EncodedMessage(
            selector=selector,
            payload_data=self.payload.encode(),
            objects=list(self.objects),
            memory_regions=list(self.memory_regions),
        )


@dataclass
class EncodedMessage:
    """A message whose payload is serialized; ``reply_remote`` is the sender's return path."""

    selector: Selector
    payload_data: bytes
    objects: list[int] = field(default_factory=list)
    memory_regions: list[Any] = field(default_factory=list)
    reply_remote: Any = None

    def send(self, remote: Any) -> None:
        remote.send(self)

    def extract_remote(self) -> Any:
        """Take the reply remote out of the message; later calls return None."""
        remote, self.reply_remote = self.reply_remote, None
        return remote

    def decode_payload(self, box: MessageBox | type[Payload]) -> Message:
        """Decode into a :class:`Message` using a box or a single payload type."""
        payload = box.decode(self.selector.uuid, self.payload_data)
        message = Message(self.selector, payload)
        message.objects = list(self.objects)
        message.memory_regions = list(self.memory_regions)
        return message


def _payload_types(types: Iterable[type[Payload]]) -> MessageBox:
    return MessageBox(*types)