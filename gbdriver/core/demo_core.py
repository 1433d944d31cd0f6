"""
DemoCore -- a small pure-Python execution core.

It produces a moving test pattern instead of running a game, so the
driver can be exercised without a compiled WebAssembly module:

* **screen** (160x144) -- a scrolling RGB gradient.  The blue channel
  brightens while any key is held.
* **tileset** (128x192) -- a 16x24 grid of 8x8 tiles, each with its own
  grey level, slowly cycling.

Every ``relocate_every`` ticks the core reallocates its memory region
and moves both output buffers, alternating between two layouts so the
region never keeps growing.  A driver that reused a stale descriptor or
view would read the wrong bytes.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.memory_region import BytearrayRegion
from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW, OutputDescriptor

logger = logging.getLogger(__name__)

# Unused bytes before the first buffer, so pointer 0 is never valid output.
_HEADER_BYTES: int = 256

# Offset between the two buffer layouts used by relocation.
_RELOCATE_STEP: int = 4096

_TILE: int = 8


class DemoCore(CoreAdapter):
    """Test-pattern core backed by a :class:`BytearrayRegion`.

    Parameters
    ----------
    relocate_every:
        Reallocate the memory region every *n* ticks.  ``0`` disables relocation.
    rom:
        Ignored apart from seeding the pattern phase, accepted so the demo
        core can be created the same way as a real one.
    """

    kind = "demo"

    def __init__(self, relocate_every: int = 0, rom: Optional[bytes] = None) -> None:
        self._relocate_every: int = max(0, relocate_every)
        self._fb_len: int = MAIN_SCREEN.byte_length
        self._ts_len: int = TILESET_VIEW.byte_length

        self._region = BytearrayRegion(_HEADER_BYTES + self._fb_len + self._ts_len)
        self._fb_ptr: int = _HEADER_BYTES
        self._ts_ptr: int = _HEADER_BYTES + self._fb_len

        self._frame: int = (sum(rom) & 0xFF) if rom else 0
        self._held: set[str] = set()
        self.ticks: int = 0

        # Tile index for every tileset pixel; fixed, so computed once.
        rows, cols = np.indices((TILESET_VIEW.height, TILESET_VIEW.width))
        self._tile_index = (rows // _TILE) * (TILESET_VIEW.width // _TILE) + cols // _TILE
        self._tile_grid = (rows % _TILE == 0) | (cols % _TILE == 0)

    # ------------------------------------------------------------------
    # CoreAdapter interface
    # ------------------------------------------------------------------

    @property
    def memory(self) -> BytearrayRegion:
        return self._region

    @property
    def held_keys(self) -> frozenset[str]:
        return frozenset(self._held)

    def tick(self) -> None:
        self.ticks += 1
        self._frame += 1
        if self._relocate_every and self.ticks % self._relocate_every == 0:
            self._relocate()
        self._draw_screen()
        self._draw_tileset()

    def key_down(self, code: str) -> None:
        self._held.add(code)

    def key_up(self, code: str) -> None:
        self._held.discard(code)

    def framebuffer(self) -> OutputDescriptor:
        return OutputDescriptor(MAIN_SCREEN.name, self._fb_ptr, self._fb_len)

    def tileset(self) -> OutputDescriptor:
        return OutputDescriptor(TILESET_VIEW.name, self._ts_ptr, self._ts_len)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _relocate(self) -> None:
        shift = 0 if self._fb_ptr > _HEADER_BYTES else _RELOCATE_STEP
        base = _HEADER_BYTES + shift
        self._region.reallocate(base + self._fb_len + self._ts_len)
        self._fb_ptr = base
        self._ts_ptr = base + self._fb_len
        logger.debug(
            "DemoCore: relocated buffers to fb=%d ts=%d (%r)",
            self._fb_ptr,
            self._ts_ptr,
            self._region,
        )

    def _pixels(self, pointer: int, geometry) -> np.ndarray:
        raw = np.frombuffer(
            self._region.current_buffer(),
            dtype=np.uint8,
            count=geometry.byte_length,
            offset=pointer,
        )
        return raw.reshape((geometry.height, geometry.width, 4))

    def _draw_screen(self) -> None:
        frame = self._pixels(self._fb_ptr, MAIN_SCREEN)
        x = np.arange(MAIN_SCREEN.width, dtype=np.int64)
        y = np.arange(MAIN_SCREEN.height, dtype=np.int64)[:, None]
        frame[..., 0] = ((x + self._frame) & 0xFF).astype(np.uint8)
        frame[..., 1] = ((y * 2 + self._frame) & 0xFF).astype(np.uint8)
        frame[..., 2] = 0xC0 if self._held else 0x40
        frame[..., 3] = 0xFF

    def _draw_tileset(self) -> None:
        tiles = self._pixels(self._ts_ptr, TILESET_VIEW)
        shade = ((self._tile_index * 2 + self._frame // 8) & 0xFF).astype(np.uint8)
        shade[self._tile_grid] = 0
        tiles[..., 0] = shade
        tiles[..., 1] = shade
        tiles[..., 2] = shade
        tiles[..., 3] = 0xFF
