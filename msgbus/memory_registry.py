"""Shared memory regions and a registry that reuses them."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from .errors import MemoryRegionMappingError


class _Block:
    __slots__ = ("buffer", "refs")

    def __init__(self, size: int) -> None:
        self.buffer = bytearray(size)
        self.refs = 1


class MemoryRegion:
    """A handle to a block of memory; clones share the block and count references."""

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"negative region size {size}")
        self._block = _Block(size)
        self._released = False

    @classmethod
    def _share(cls, block: _Block) -> MemoryRegion:
        region = cls.__new__(cls)
        region._block = block
        region._released = False
        block.refs += 1
        return region

    @property
    def size(self) -> int:
        return len(self._block.buffer)

    @property
    def ref_count(self) -> int:
        """Number of live handles to the underlying block."""
        return self._block.refs

    def clone(self) -> MemoryRegion:
        if self._released:
            raise ValueError("region already released")
        return MemoryRegion._share(self._block)

    def release(self) -> None:
        """Drop this handle; further calls do nothing."""
        if not self._released:
            self._released = True
            self._block.refs -= 1

    def map(self, start: int = 0, stop: int | None = None) -> memoryview:
        """A writable view of ``[start, stop)``; ``stop`` defaults to the end."""
        if self._released:
            raise MemoryRegionMappingError("region released")
        size = self.size
        end = size if stop is None else stop
        if not 0 <= start <= end <= size:
            raise MemoryRegionMappingError(f"range {start}..{end} outside region of {size}")
        return memoryview(self._block.buffer)[start:end]

    def __enter__(self) -> MemoryRegion:
        return self

    def __exit__(self, *args: object) -> None:
        self.release()


@dataclass
class _Entry:
    region: MemoryRegion
    last_alloc: float
    tag: str | None
    free: Callable[[], None] | None


def _run_free(entry: _Entry) -> None:
    free, entry.free = entry.free, None
    if free is not None:
        free()


class MemoryRegistry:
    """Allocates memory regions, reusing ones no longer referenced elsewhere.

    Entries not reused within ``lifetime`` seconds are dropped.
    """

    def __init__(self, lifetime: float = 5.0, clock: Callable[[], float] = time.monotonic) -> None:
        self._lifetime = lifetime
        self._clock = clock
        self._entries: dict[int, list[_Entry]] = {}

    def alloc(self, min_size: int, tag: str | None = None) -> MemoryRegion:
        """Allocate a region; its size may be larger than ``min_size``."""
        return self._alloc(min_size, tag, None)

    def alloc_with_free(
        self, min_size: int, tag: str | None, free: Callable[[], None]
    ) -> MemoryRegion:
        """Allocate a region and call ``free`` once it is unused again."""
        return self._alloc(min_size, tag, free)

    def _alloc(
        self, min_size: int, tag: str | None, free: Callable[[], None] | None
    ) -> MemoryRegion:
        now = self._clock()
        for size in sorted(self._entries):
            if not min_size <= size < min_size * 2:
                continue
            for entry in self._entries[size]:
                if entry.region.ref_count == 1 and entry.tag == tag:
                    entry.last_alloc = now
                    region = entry.region.clone()
                    _run_free(entry)
                    entry.free = free
                    self._maintain(now)
                    return region

        self._maintain(now)
        region = MemoryRegion(min_size)
        self._entries.setdefault(min_size, []).append(_Entry(region.clone(), now, tag, free))
        return region

    def _maintain(self, now: float) -> None:
        for size in list(self._entries):
            kept = []
            for entry in self._entries[size]:
                if entry.region.ref_count == 1:
                    _run_free(entry)
                if now - entry.last_alloc < self._lifetime:
                    kept.append(entry)
                else:
                    entry.region.release()
                    _run_free(entry)
            if kept:
                self._entries[size] = kept
            else:
                del self._entries[size]

    def maintain(self) -> None:
        """Release callbacks of unused regions and drop expired entries."""
        self._maintain(self._clock())