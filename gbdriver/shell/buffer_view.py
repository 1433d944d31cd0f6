"""
Buffer view extraction.

:func:`extract` turns an :class:`~gbdriver.core.types.OutputDescriptor`
into a read-only ``memoryview`` over exactly ``length`` bytes of the
core's memory region.  It is a context manager: the view is released as
soon as the ``with`` block exits, so it cannot outlive the tick it was
taken in.  Touching a released view raises ``ValueError``.

Typical usage::

    core.tick()
    with extract(core.memory, core.framebuffer()) as view:
        presenter.present(view)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from gbdriver.core.errors import BufferBoundsError
from gbdriver.core.memory_region import SharedMemoryRegion
from gbdriver.core.types import OutputDescriptor

logger = logging.getLogger(__name__)


@contextmanager
def extract(region: SharedMemoryRegion, descriptor: OutputDescriptor) -> Iterator[memoryview]:
    """Yield a read-only view of *descriptor*'s bytes within *region*.

    The region's buffer is looked up on entry, never cached, because the
    core may have moved it during the last tick.

    Raises:
        BufferBoundsError: If the descriptor's range does not lie inside
            the region as it currently exists.
    """
    base = memoryview(region.current_buffer())
    whole = base if base.ndim == 1 and base.itemsize == 1 else base.cast("B")
    try:
        size = whole.nbytes
        pointer, length = descriptor.pointer, descriptor.length
        if pointer < 0 or length < 0 or pointer + length > size:
            raise BufferBoundsError(descriptor.name, pointer, length, size)

        view = whole[pointer : pointer + length].toreadonly()
        try:
            yield view
        finally:
            view.release()
    finally:
        whole.release()
        base.release()
