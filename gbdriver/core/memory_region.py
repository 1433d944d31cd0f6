"""
Shared memory regions owned by an execution core.

A region is a single contiguous run of bytes.  The core may grow or
reallocate it during any tick, so callers must ask for
:meth:`SharedMemoryRegion.current_buffer` again after every tick rather
than holding on to the object it returned.

Two implementations are provided:

=====================  ===============================================
Class                  Backing store
=====================  ===============================================
``BytearrayRegion``    a Python ``bytearray`` (used by the demo core)
``WasmMemoryRegion``   a wasmtime ``Memory`` export (see ``wasm_core``)
=====================  ===============================================
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SharedMemoryRegion(ABC):
    """Read access to a relocatable byte region."""

    @abstractmethod
    def current_buffer(self):
        """Return a buffer-protocol object covering the whole region *now*."""

    @abstractmethod
    def size(self) -> int:
        """Current size of the region in bytes."""


class BytearrayRegion(SharedMemoryRegion):
    """A growable region backed by a ``bytearray``.

    :meth:`grow` and :meth:`reallocate` replace the backing array with a
    new one, the same way a linear memory may move when it is grown.  Any view taken
    of the old array no longer reflects the region.

    Parameters
    ----------
    size:
        Initial size in bytes.
    """

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        self._data: bytearray = bytearray(size)
        self.generation: int = 0

    # ------------------------------------------------------------------
    # Region interface
    # ------------------------------------------------------------------

    def current_buffer(self) -> bytearray:
        return self._data

    def size(self) -> int:
        return len(self._data)

    # ------------------------------------------------------------------
    # Owner-side helpers
    # ------------------------------------------------------------------

    def grow(self, extra: int) -> None:
        """Reallocate the region with *extra* more bytes."""
        if extra < 0:
            raise ValueError(f"extra must be non-negative, got {extra}")
        self.reallocate(len(self._data) + extra)

    def reallocate(self, size: int) -> None:
        """Replace the backing array with a new one of *size* bytes.

        The new array is a different object even when *size* is unchanged.
        Existing contents are copied to its start, truncated if it is smaller.
        """
        if size < 0:
            raise ValueError(f"size must be non-negative, got {size}")
        new_data = bytearray(size)
        keep = min(size, len(self._data))
        new_data[:keep] = self._data[:keep]
        self._data = new_data
        self.generation += 1

    def write(self, offset: int, data) -> None:
        """Copy *data* into the region at *offset*."""
        end = offset + len(data)
        if offset < 0 or end > len(self._data):
            raise IndexError(
                f"write [{offset}, {end}) out of range [0, {len(self._data)})"
            )
        self._data[offset:end] = data

    def __repr__(self) -> str:
        return f"BytearrayRegion(size={len(self._data)}, generation={self.generation})"
