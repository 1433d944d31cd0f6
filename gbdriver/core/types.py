"""
Core value types for gbdriver.

* :class:`DisplayGeometry` -- fixed pixel geometry of one presentation surface.
* :class:`OutputDescriptor` -- where one output buffer lives inside the core's
  shared memory region *right now*.  Only valid until the next core tick.
"""

from __future__ import annotations

from dataclasses import dataclass

# Bytes per pixel for every output the core produces (R, G, B, A).
BYTES_PER_PIXEL: int = 4


@dataclass(frozen=True)
class DisplayGeometry:
    """Fixed size of one output surface."""

    name: str
    width: int
    height: int
    bytes_per_pixel: int = BYTES_PER_PIXEL

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(
                f"{self.name}: geometry must be positive, got {self.width}x{self.height}"
            )

    @property
    def byte_length(self) -> int:
        """Number of bytes one full frame of this geometry occupies."""
        return self.width * self.height * self.bytes_per_pixel

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)


@dataclass(frozen=True)
class OutputDescriptor:
    """A ``(pointer, length)`` pair naming one output buffer.

    ``pointer`` is a byte offset into the shared memory region as it exists
    at the instant the descriptor was queried.
    """

    name: str
    pointer: int
    length: int

    @property
    def end(self) -> int:
        return self.pointer + self.length


# Game Boy LCD.
MAIN_SCREEN = DisplayGeometry("screen", 160, 144)

# Tile data view: 16 tiles across, 24 tiles down, 8x8 pixels each.
TILESET_VIEW = DisplayGeometry("tileset", 128, 192)
