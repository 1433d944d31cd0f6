"""
CoreAdapter -- abstract base class for execution cores driven by gbdriver.

An execution core simulates the console and writes RGBA pixel data into
buffers that live inside a memory region it owns.  The driver only ever
talks to it through this small surface:

* :meth:`tick` -- advance emulation by one frame.
* :meth:`key_down` / :meth:`key_up` -- inject a raw host key identifier.
* :meth:`framebuffer` / :meth:`tileset` -- where the two output buffers
  live *right now*, as :class:`~gbdriver.core.types.OutputDescriptor`.
* :attr:`memory` -- the :class:`~gbdriver.core.memory_region.SharedMemoryRegion`
  the descriptors point into.

A concrete adapter creates its core instance in ``__init__`` and owns it
for its whole lifetime.  Descriptors returned by :meth:`framebuffer` and
:meth:`tileset` are only meaningful until the next :meth:`tick`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable

from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW, DisplayGeometry

if TYPE_CHECKING:
    from gbdriver.core.memory_region import SharedMemoryRegion
    from gbdriver.core.types import OutputDescriptor


class CoreAdapter(ABC):
    """Abstract base class for every execution core."""

    #: Short human-readable name used in logs and the window title.
    kind: str = "core"

    # ------------------------------------------------------------------
    # Frame advance
    # ------------------------------------------------------------------

    @abstractmethod
    def tick(self) -> None:
        """Advance the emulation by one video frame."""

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    @abstractmethod
    def key_down(self, code: str) -> None:
        """Inject a key-down for the host key identifier *code*."""

    @abstractmethod
    def key_up(self, code: str) -> None:
        """Inject a key-up for the host key identifier *code*."""

    # ------------------------------------------------------------------
    # Output buffers
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def memory(self) -> SharedMemoryRegion:
        """The shared memory region that output descriptors point into."""

    @abstractmethod
    def framebuffer(self) -> OutputDescriptor:
        """Current location of the main screen buffer."""

    @abstractmethod
    def tileset(self) -> OutputDescriptor:
        """Current location of the auxiliary tile view buffer."""

    @property
    def has_tileset(self) -> bool:
        """``False`` for single-output cores that only provide the screen."""
        return True

    def outputs(
        self, include_tileset: bool = True
    ) -> list[tuple[DisplayGeometry, Callable[[], OutputDescriptor]]]:
        """Return ``(geometry, descriptor_getter)`` for each configured output.

        Getters are returned rather than descriptors so that callers query
        them after the tick they belong to.
        """
        outputs = [(MAIN_SCREEN, self.framebuffer)]
        if include_tileset and self.has_tileset:
            outputs.append((TILESET_VIEW, self.tileset))
        return outputs

    def describe(self) -> dict[str, object]:
        """Return a summary of the core for ``--info``."""
        info: dict[str, object] = {
            "kind": self.kind,
            "memory_bytes": self.memory.size(),
        }
        for geometry, getter in self.outputs():
            desc = getter()
            info[geometry.name] = f"ptr={desc.pointer} len={desc.length}"
        return info

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r})"
