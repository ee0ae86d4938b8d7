"""Endpoint labels and the boolean expressions that route on them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable, Iterator

from .codec import Decoder, Encoder
from .errors import DecodeError


class Label:
    """An ordered set of tag strings attached to an endpoint."""

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: list[str] = []
        for item in items:
            self.insert(item)

    def insert(self, item: str) -> None:
        """Add ``item`` unless it is already present."""
        item = str(item)
        if item not in self._items:
            self._items.append(item)

    def remove(self, item: str) -> None:
        self._items = [i for i in self._items if i != item]

    def all(self, items: Iterable[str]) -> bool:
        """Whether every one of ``items`` is in the label."""
        return all(item in self._items for item in items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Label):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"Label({self._items!r})"

    def encode_to(self, encoder: Encoder) -> None:
        encoder.u64(len(self._items))
        for item in self._items:
            encoder.string(item)

    @classmethod
    def decode_from(cls, decoder: Decoder) -> Label:
        count = decoder.u64()
        result = cls()
        result._items = [decoder.string() for _ in range(count)]
        return result


def label(*args: str) -> Label:
    """Build a :class:`Label` from the given tags."""
    return Label(args)


class LabelOp:
    """A routing expression evaluated against a :class:`Label`."""

    _tag: ClassVar[int]

    @staticmethod
    def coerce(value: LabelOp | str | bool) -> LabelOp:
        """Turn a string into a leaf and a bool into a constant."""
        if isinstance(value, LabelOp):
            return value
        if isinstance(value, bool):
            return TrueOp() if value else FalseOp()
        if isinstance(value, str):
            return Leaf(value)
        raise TypeError(f"cannot build a LabelOp from {type(value).__name__}")

    def and_(self, other: LabelOp | str | bool) -> LabelOp:
        return And(self, LabelOp.coerce(other))

    def or_(self, other: LabelOp | str | bool) -> LabelOp:
        return Or(self, LabelOp.coerce(other))

    def __invert__(self) -> LabelOp:
        return Not(self)

    def validate(self, label: Label) -> bool:
        raise NotImplementedError

    def encode_to(self, encoder: Encoder) -> None:
        encoder.u32(self._tag)
        self._encode_fields(encoder)

    def _encode_fields(self, encoder: Encoder) -> None:
        pass

    @classmethod
    def decode_from(cls, decoder: Decoder) -> LabelOp:
        tag = decoder.u32()
        if tag == TrueOp._tag:
            return TrueOp()
        if tag == FalseOp._tag:
            return FalseOp()
        if tag == Leaf._tag:
            return Leaf(decoder.string())
        if tag == Not._tag:
            return Not(LabelOp.decode_from(decoder))
        if tag in (And._tag, Or._tag):
            left = LabelOp.decode_from(decoder)
            right = LabelOp.decode_from(decoder)
            return And(left, right) if tag == And._tag else Or(left, right)
        raise DecodeError(f"unknown label op variant {tag}")


@dataclass(frozen=True)
class TrueOp(LabelOp):
    _tag: ClassVar[int] = 0

    def validate(self, label: Label) -> bool:
        return True


@dataclass(frozen=True)
class FalseOp(LabelOp):
    _tag: ClassVar[int] = 1

    def validate(self, label: Label) -> bool:
        return False


@dataclass(frozen=True)
class Leaf(LabelOp):
    name: str
    _tag: ClassVar[int] = 2

    def validate(self, label: Label) -> bool:
        return label.all([self.name])

    def _encode_fields(self, encoder: Encoder) -> None:
        encoder.string(self.name)


@dataclass(frozen=True)
class Not(LabelOp):
    operand: LabelOp
    _tag: ClassVar[int] = 3

    def validate(self, label: Label) -> bool:
        return not self.operand.validate(label)

    def _encode_fields(self, encoder: Encoder) -> None:
        self.operand.encode_to(encoder)


@dataclass(frozen=True)
class And(LabelOp):
    left: LabelOp
    right: LabelOp
    _tag: ClassVar[int] = 4

    def validate(self, label: Label) -> bool:
        return self.left.validate(label) and self.right.validate(label)

    def _encode_fields(self, encoder: Encoder) -> None:
        self.left.encode_to(encoder)
        self.right.encode_to(encoder)


@dataclass(frozen=True)
class Or(LabelOp):
    left: LabelOp
    right: LabelOp
    _tag: ClassVar[int] = 5

    def validate(self, label: Label) -> bool:
        return self.left.validate(label) or self.right.validate(label)

    def _encode_fields(self, encoder: Encoder) -> None:
        self.left.encode_to(encoder)
        self.right.encode_to(encoder)