"""
Pytest configuration and fakes for gbdriver tests.
"""
import os
import sys
from pathlib import Path

import numpy as np
import pytest

# Headless pygame for window and surface tests.
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
os.environ.setdefault("SDL_AUDIODRIVER", "dummy")

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.memory_region import BytearrayRegion
from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW, OutputDescriptor
from gbdriver.shell.frame_presenter import PresentationSurface


class FakeCore(CoreAdapter):
    """Core that records every call and fills each buffer with the tick number.

    ``relocate`` moves both buffers further into a freshly grown region on
    every tick.  ``corrupt`` makes the next descriptor query of that name
    return a range past the end of the region.
    """

    kind = "fake"

    def __init__(self, relocate=False, fb_length=None):
        self.calls = []
        self.relocate = relocate
        self.corrupt = set()
        self.ticks = 0
        self._fb_len = MAIN_SCREEN.byte_length if fb_length is None else fb_length
        self._ts_len = TILESET_VIEW.byte_length
        self._region = BytearrayRegion(self._fb_len + self._ts_len)
        self._base = 0

    @property
    def memory(self):
        return self._region

    def tick(self):
        self.calls.append(("tick",))
        self.ticks += 1
        if self.relocate:
            self._region.grow(64)
            self._base += 64
        fill = self.ticks & 0xFF
        self._region.write(self._base, bytes([fill]) * (self._fb_len + self._ts_len))

    def key_down(self, code):
        self.calls.append(("key_down", code))

    def key_up(self, code):
        self.calls.append(("key_up", code))

    def framebuffer(self):
        self.calls.append(("framebuffer",))
        return self._descriptor(MAIN_SCREEN.name, self._base, self._fb_len)

    def tileset(self):
        self.calls.append(("tileset",))
        return self._descriptor(TILESET_VIEW.name, self._base + self._fb_len, self._ts_len)

    def _descriptor(self, name, pointer, length):
        if name in self.corrupt:
            pointer = self._region.size()
        return OutputDescriptor(name, pointer, length)

    def call_names(self):
        return [call[0] for call in self.calls]


class RecordingSurface(PresentationSurface):
    """Surface that keeps every image it is given."""

    def __init__(self, geometry):
        super().__init__(geometry)
        self.images = []

    def put_image(self, image):
        self.images.append(image)
        self.updates += 1


class FakeRefresh:
    """Refresh primitive that allows a fixed number of callbacks."""

    def __init__(self, limit):
        self.limit = limit
        self.calls = 0

    def __call__(self):
        if self.calls >= self.limit:
            return False
        self.calls += 1
        return True


@pytest.fixture
def fake_core():
    return FakeCore()


@pytest.fixture
def surfaces():
    return [RecordingSurface(MAIN_SCREEN), RecordingSurface(TILESET_VIEW)]


def solid_frame(geometry, value):
    """Bytes for one frame of *geometry* with every byte set to *value*."""
    return bytes([value]) * geometry.byte_length


def first_pixel(image):
    return tuple(int(c) for c in np.asarray(image)[0, 0])


@pytest.fixture
def pygame_display():
    import pygame

    pygame.display.init()
    yield
    pygame.display.quit()
