"""Compact binary encoding used on the bus wire.

Integers wider than one byte use a variable-length form: values below 251
take a single byte, larger values are prefixed by a tag byte (251 for a
16-bit, 252 for a 32-bit, 253 for a 64-bit and 254 for a 128-bit
little-endian value). Strings and byte strings carry a varint length prefix.
"""

from __future__ import annotations

from .errors import DecodeError, EncodeError

_TAG_U16 = 251
_TAG_U32 = 252
_TAG_U64 = 253
_TAG_U128 = 254

_TAG_WIDTHS = {_TAG_U16: 2, _TAG_U32: 4, _TAG_U64: 8, _TAG_U128: 16}


def encode_varint(value: int) -> bytes:
    """Encode a non-negative integer of up to 128 bits as a varint."""
    if value < 0:
        raise EncodeError(f"negative value {value}")
    if value < _TAG_U16:
        return bytes([value])
    if value <= 0xFFFF:
        return bytes([_TAG_U16]) + value.to_bytes(2, "little")
    if value <= 0xFFFF_FFFF:
        return bytes([_TAG_U32]) + value.to_bytes(4, "little")
    if value <= 0xFFFF_FFFF_FFFF_FFFF:
        return bytes([_TAG_U64]) + value.to_bytes(8, "little")
    if value < 1 << 128:
        return bytes([_TAG_U128]) + value.to_bytes(16, "little")
    raise EncodeError(f"value {value} does not fit in 128 bits")


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a varint at ``offset``; return the value and the next offset."""
    if offset >= len(data):
        raise DecodeError("unexpected end of data")
    tag = data[offset]
    if tag < _TAG_U16:
        return tag, offset + 1
    width = _TAG_WIDTHS.get(tag)
    if width is None:
        raise DecodeError(f"invalid varint tag {tag}")
    end = offset + 1 + width
    if end > len(data):
        raise DecodeError("unexpected end of data")
    return int.from_bytes(data[offset + 1 : end], "little"), end


def _check_range(value: int, bits: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodeError(f"expected an integer, got {type(value).__name__}")
    if not 0 <= value < 1 << bits:
        raise EncodeError(f"value {value} out of range for u{bits}")
    return value


class Encoder:
    """Accumulates encoded values into a byte string."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def u8(self, value: int) -> Encoder:
        self._buffer.append(_check_range(value, 8))
        return self

    def u16(self, value: int) -> Encoder:
        self._buffer += encode_varint(_check_range(value, 16))
        return self

    def u32(self, value: int) -> Encoder:
        self._buffer += encode_varint(_check_range(value, 32))
        return self

    def u64(self, value: int) -> Encoder:
        self._buffer += encode_varint(_check_range(value, 64))
        return self

    def boolean(self, value: bool) -> Encoder:
        self._buffer.append(1 if value else 0)
        return self

    def string(self, value: str) -> Encoder:
        return self.raw_bytes(value.encode("utf-8"))

    def raw_bytes(self, value: bytes) -> Encoder:
        data = bytes(value)
        self._buffer += encode_varint(len(data))
        self._buffer += data
        return self

    def fixed(self, value: bytes) -> Encoder:
        """Write bytes without a length prefix."""
        self._buffer += bytes(value)
        return self

    def getvalue(self) -> bytes:
        return bytes(self._buffer)


class Decoder:
    """Reads encoded values from a byte string in order."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0

    def _take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise DecodeError("unexpected end of data")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def _varint(self, bits: int) -> int:
        value, self._pos = decode_varint(self._data, self._pos)
        if value >= 1 << bits:
            raise DecodeError(f"value {value} out of range for u{bits}")
        return value

    def u8(self) -> int:
        return self._take(1)[0]

    def u16(self) -> int:
        return self._varint(16)

    def u32(self) -> int:
        return self._varint(32)

    def u64(self) -> int:
        return self._varint(64)

    def boolean(self) -> bool:
        byte = self.u8()
        if byte > 1:
            raise DecodeError(f"invalid boolean byte {byte}")
        return byte == 1

    def string(self) -> str:
        data = self.raw_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError("invalid utf-8") from exc

    def raw_bytes(self) -> bytes:
        return self._take(self.u64())

    def fixed(self, size: int) -> bytes:
        return self._take(size)

    def remaining(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._data) - self._pos