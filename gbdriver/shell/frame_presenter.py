"""
Frame presenter for gbdriver.
Converts an extracted RGBA byte view into an image and hands it to a
presentation surface.

The execution core writes 4 bytes per pixel (R, G, B, A), row-major, with
no header or padding.  Bytes are used as channel intensities directly; no
palette or colour-space conversion happens here.

Performance notes
-----------------
The byte view is wrapped with **numpy** (no copy), reshaped to
``(height, width, 4)`` and copied once into an image the surface owns.
The copy is what lets the view be released immediately afterwards.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import numpy as np
import pygame

from gbdriver.core.errors import GeometryMismatchError
from gbdriver.core.types import DisplayGeometry

logger = logging.getLogger(__name__)


# ========================================================================
# Presentation surfaces
# ========================================================================

class PresentationSurface(ABC):
    """A named sink that displays one whole image per update."""

    def __init__(self, geometry: DisplayGeometry) -> None:
        self.geometry: DisplayGeometry = geometry
        self.updates: int = 0

    @property
    def name(self) -> str:
        return self.geometry.name

    @abstractmethod
    def put_image(self, image: np.ndarray) -> None:
        """Replace the surface content with *image* (``(h, w, 4)`` uint8)."""


class PygameSurface(PresentationSurface):
    """Presentation surface backed by a per-pixel-alpha :class:`pygame.Surface`.

    The window blits :attr:`surface` (scaled) onto the display each refresh.
    """

    def __init__(self, geometry: DisplayGeometry) -> None:
        super().__init__(geometry)
        self._surface: pygame.Surface = pygame.Surface(geometry.size, pygame.SRCALPHA, 32)

    @property
    def surface(self) -> pygame.Surface:
        """The internal pygame Surface (updated on each :meth:`put_image` call)."""
        return self._surface

    def put_image(self, image: np.ndarray) -> None:
        # pygame surfarray expects (W, H, ...) -- transpose width and height.
        pygame.surfarray.blit_array(self._surface, image[..., :3].transpose(1, 0, 2))
        alpha = pygame.surfarray.pixels_alpha(self._surface)
        try:
            alpha[...] = image[..., 3].T
        finally:
            del alpha
        self.updates += 1


# ========================================================================
# FramePresenter
# ========================================================================

class FramePresenter:
    """Turn byte views of one output into images on one surface.

    Parameters
    ----------
    geometry:
        The fixed geometry of this output.
    surface:
        Where finished images are written.
    """

    def __init__(self, geometry: DisplayGeometry, surface: PresentationSurface) -> None:
        if surface.geometry != geometry:
            raise ValueError(
                f"surface {surface.name!r} is {surface.geometry.size}, "
                f"output {geometry.name!r} is {geometry.size}"
            )
        self._geometry = geometry
        self._surface = surface

        logger.info(
            "FramePresenter: %s %dx%d (%d bytes/frame)",
            geometry.name,
            geometry.width,
            geometry.height,
            geometry.byte_length,
        )

    @property
    def geometry(self) -> DisplayGeometry:
        return self._geometry

    @property
    def surface(self) -> PresentationSurface:
        return self._surface

    def to_image(self, view) -> np.ndarray:
        """Copy *view* into a new ``(height, width, 4)`` uint8 array.

        Raises:
            GeometryMismatchError: If the view is not exactly
                ``width * height * 4`` bytes long.
        """
        geo = self._geometry
        if len(view) != geo.byte_length:
            raise GeometryMismatchError(geo.name, geo.byte_length, len(view))
        return (
            np.frombuffer(view, dtype=np.uint8)
            .reshape((geo.height, geo.width, geo.bytes_per_pixel))
            .copy()
        )

    def present(self, view) -> None:
        """Build the image for *view* and write it wholesale to the surface.

        Nothing is written if the geometry check fails.
        """
        self._surface.put_image(self.to_image(view))
