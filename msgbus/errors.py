"""Exceptions raised by the message bus."""

from __future__ import annotations

from typing import Any


class BusError(Exception):
    """Base class for internal bus errors."""

    default_message = "unknown error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        message = self.default_message if detail is None else f"{self.default_message}: {detail}"
        super().__init__(message)


class EncodeError(BusError, ValueError):
    default_message = "encode error"


class DecodeError(BusError, ValueError):
    default_message = "decode error"


class TypeUuidNotFound(BusError, LookupError):
    default_message = "type uuid not found"


class BusTimeout(BusError, TimeoutError):
    default_message = "timeout"


class Disconnected(BusError, ConnectionError):
    default_message = "disconnected"


class VersionMismatch(BusError):
    """The peer speaks an incompatible protocol version."""

    def __init__(self, version: Any, remote: Any = None) -> None:
        self.version = version
        self.remote = remote
        Exception.__init__(self, f"version mismatch: {version}")
        self.detail = None


class TokenMismatch(BusError):
    default_message = "token mismatch"


class IdentifierInUse(BusError):
    default_message = "identifier in use"


class IdentifierNotInUse(BusError):
    default_message = "identifier not in use"


class MemoryRegionMappingError(BusError):
    default_message = "memory region mapping error"


class PermissionDenied(BusError, PermissionError):
    default_message = "permission denied"


class _SimpleError(Exception):
    default_message = ""

    def __init__(self) -> None:
        super().__init__(self.default_message)


class _VersionError(Exception):
    def __init__(self, version: Any) -> None:
        self.version = version
        super().__init__(f"version mismatch: {version}")


class JoinError(Exception):
    """Joining the bus failed."""


class JoinVersionMismatch(_VersionError, JoinError):
    pass


class JoinTokenMismatch(_SimpleError, JoinError):
    default_message = "token mismatch"


class JoinTimeout(_SimpleError, JoinError, TimeoutError):
    default_message = "timeout"


class JoinPermissionDenied(_SimpleError, JoinError, PermissionError):
    default_message = "permission denied"


class SendError(Exception):
    """Sending a message failed."""


class SendTimeout(_SimpleError, SendError, TimeoutError):
    default_message = "timeout"


class SendVersionMismatch(_VersionError, SendError):
    pass


class SendTokenMismatch(_SimpleError, SendError):
    default_message = "token mismatch"


class SendPermissionDenied(_SimpleError, SendError, PermissionError):
    default_message = "permission denied"


class RecvError(Exception):
    """Receiving a message failed."""


class RecvDecodeError(RecvError, ValueError):
    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail
        super().__init__("decode error" if detail is None else f"decode error: {detail}")


class RecvTimeout(_SimpleError, RecvError, TimeoutError):
    default_message = "timeout"


class RecvVersionMismatch(_VersionError, RecvError):
    pass


class RecvTokenMismatch(_SimpleError, RecvError):
    default_message = "token mismatch"


class RecvPermissionDenied(_SimpleError, RecvError, PermissionError):
    default_message = "permission denied"


def _convert(error: JoinError, version_cls, token_cls, timeout_cls, denied_cls) -> Exception:
    if isinstance(error, JoinVersionMismatch):
        return version_cls(error.version)
    if isinstance(error, JoinTokenMismatch):
        return token_cls()
    if isinstance(error, JoinTimeout):
        return timeout_cls()
    if isinstance(error, JoinPermissionDenied):
        return denied_cls()
    raise TypeError(f"not a join error: {error!r}")


def send_error_from_join(error: JoinError) -> SendError:
    """Map a join failure onto the matching send failure."""
    return _convert(
        error, SendVersionMismatch, SendTokenMismatch, SendTimeout, SendPermissionDenied
    )


def recv_error_from_join(error: JoinError) -> RecvError:
    """Map a join failure onto the matching receive failure."""
    return _convert(
        error, RecvVersionMismatch, RecvTokenMismatch, RecvTimeout, RecvPermissionDenied
    )