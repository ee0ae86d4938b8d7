"""Protocol version of the bus."""

from __future__ import annotations

from dataclasses import dataclass

from .codec import Decoder, Encoder

_MAJOR, _MINOR, _PATCH = 0, 8, 1
_PRE = ""


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for part in (self.major, self.minor, self.patch):
            if not isinstance(part, int) or not 0 <= part <= 0xFF:
                raise ValueError(f"version component {part!r} must be in 0..=255")

    def compatible(self, other: Version) -> bool:
        """Pre-1.0 versions match on minor, later ones on major."""
        if self.major == 0 and other.major == 0:
            return self.minor == other.minor
        return self.major == other.major

    def encode_to(self, encoder: Encoder) -> None:
        encoder.u8(self.major).u8(self.minor).u8(self.patch)

    @classmethod
    def decode_from(cls, decoder: Decoder) -> Version:
        return cls(decoder.u8(), decoder.u8(), decoder.u8())

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def version() -> Version:
    """Version of this bus implementation."""
    return Version(_MAJOR, _MINOR, _PATCH)


def version_pre() -> str:
    """Pre-release suffix of the version, empty for releases."""
    return _PRE