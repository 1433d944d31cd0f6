"""
Main application window for gbdriver.
Uses pygame to show the core's output surfaces, provide the per-refresh
callback that paces the frame scheduler, and route input.

Layout (``s`` = scale)::

    +-----------------+-------------+
    | screen          | tileset     |
    | 160s x 144s     | 128s x 192s |
    +-----------------+             |
    |                 |             |
    +-----------------+-------------+
    | speed slider                  |
    +-------------------------------+

Typical usage::

    from gbdriver.platform.window import Window

    core = CoreFactory.create("demo")
    window = Window(core, Throttle(1), scale=3)
    window.run()
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import pygame

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.errors import CoreLoadError, CoreTrapError, FatalFrameError
from gbdriver.platform.input_handler import InputForwarder, InputHandler
from gbdriver.platform.speed_slider import SpeedSlider
from gbdriver.shell.frame_presenter import PygameSurface
from gbdriver.shell.frame_scheduler import FrameScheduler
from gbdriver.shell.throttle import Throttle

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_WINDOW_TITLE: str = "gbdriver"

# Minimum / maximum allowed display scale factors.
_MIN_SCALE: int = 1
_MAX_SCALE: int = 8

_DEFAULT_FPS: int = 60

_SLIDER_HEIGHT: int = 16
_BACKGROUND = (16, 16, 16)

# Refresh rate while showing the last frame after a halt.
_IDLE_FPS: int = 10


class Window:
    """Pygame window that hosts the frame scheduler.

    Parameters
    ----------
    core:
        A core with its instance already created.
    throttle:
        Slowdown factor cell shared by the slider and the scheduler.
    scale:
        Integer scale factor applied to the native resolution.
    fps:
        Host refresh rate; the scheduler gets one callback per refresh.
    include_tileset:
        Set to ``False`` to draw only the main screen.
    key_repeat:
        ``(delay_ms, interval_ms)`` for held keys; ``(0, 0)`` disables it.
    max_slowdown:
        Slowdown factor at the right end of the slider.
    max_frames:
        Stop after this many refresh callbacks (``None`` runs until closed).
    """

    def __init__(
        self,
        core: CoreAdapter,
        throttle: Throttle,
        scale: int = 3,
        *,
        fps: int = _DEFAULT_FPS,
        include_tileset: bool = True,
        key_repeat: tuple[int, int] = (500, 33),
        max_slowdown: int = 60,
        max_frames: Optional[int] = None,
    ) -> None:
        # ---- basic state -------------------------------------------------
        self._core = core
        self._throttle = throttle
        self._scale: int = max(_MIN_SCALE, min(_MAX_SCALE, scale))
        self._fps: int = max(1, fps)
        self._max_frames: Optional[int] = max_frames
        self._running: bool = False

        # ---- init pygame display -----------------------------------------
        if not pygame.display.get_init():
            pygame.display.init()

        # ---- presentation surfaces ---------------------------------------
        self._surfaces: list[PygameSurface] = [
            PygameSurface(geometry) for geometry, _ in core.outputs(include_tileset)
        ]
        self._layout: list[pygame.Rect] = []
        x = 0
        for surf in self._surfaces:
            w = surf.geometry.width * self._scale
            h = surf.geometry.height * self._scale
            self._layout.append(pygame.Rect(x, 0, w, h))
            x += w

        screens_height = max(r.height for r in self._layout)
        self._display_width: int = x
        self._display_height: int = screens_height + _SLIDER_HEIGHT

        self._screen: pygame.Surface = pygame.display.set_mode(
            (self._display_width, self._display_height)
        )
        pygame.display.set_caption(self._build_title())
        delay, interval = key_repeat
        pygame.key.set_repeat(delay, interval)

        self._clock: pygame.time.Clock = pygame.time.Clock()

        # ---- subsystems --------------------------------------------------
        self._slider = SpeedSlider(
            throttle,
            pygame.Rect(0, screens_height, self._display_width, _SLIDER_HEIGHT),
            maximum=max_slowdown,
        )
        self._input = InputHandler(InputForwarder(core), self._slider)
        self._scheduler = FrameScheduler(core, self._surfaces, throttle)

        # ---- performance counters ----------------------------------------
        self._fps_update_time: float = 0.0
        self._fps_counter_mark: int = 0
        self._fps_ticks_mark: int = 0
        self._refresh_rate: float = 0.0
        self._tick_rate: float = 0.0

        logger.info(
            "Window: %s, %dx%d display (scale=%d, %d Hz)",
            ", ".join(f"{s.name} {s.geometry.width}x{s.geometry.height}" for s in self._surfaces),
            self._display_width,
            self._display_height,
            self._scale,
            self._fps,
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    @property
    def surfaces(self) -> list[PygameSurface]:
        return list(self._surfaces)

    @property
    def scale(self) -> int:
        return self._scale

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Run the scheduler until the window closes or it halts.

        After a fatal error the last frame stays on screen until the
        window is closed, unless ``max_frames`` was given.
        """
        self._running = True
        self._fps_update_time = time.monotonic()

        try:
            self._scheduler.run(self._refresh)
            if self._scheduler.halted and self._max_frames is None:
                pygame.display.set_caption(f"{self._build_title()}  [halted]")
                self._idle_until_quit()
        except KeyboardInterrupt:
            logger.info("Interrupted by user")
        finally:
            self._running = False
            self._shutdown()

    def _refresh(self) -> bool:
        """Show the latest surfaces, wait for the next refresh, pump input.

        This is the scheduler's only suspension point.
        """
        self._compose()
        self._clock.tick(self._fps)
        self._update_fps()

        if not self._poll_input():
            return False
        if self._input.quit_requested:
            return False
        if self._max_frames is not None and self._scheduler.counter >= self._max_frames:
            return False
        return True

    def _idle_until_quit(self) -> None:
        while not self._input.quit_requested:
            self._compose()
            self._clock.tick(_IDLE_FPS)
            self._poll_input()

    def _poll_input(self) -> bool:
        """Pump input; a core failure while forwarding keys halts the scheduler.

        Returns ``False`` if the scheduler has halted.
        """
        if self._scheduler.halted:
            self._input.forward_keys = False
        try:
            self._input.poll()
        except (CoreTrapError, CoreLoadError, FatalFrameError) as exc:
            self._scheduler.fail(exc)
        if self._scheduler.halted:
            self._input.forward_keys = False
            return False
        return True

    # ------------------------------------------------------------------
    # Drawing
    # ------------------------------------------------------------------

    def _compose(self) -> None:
        self._screen.fill(_BACKGROUND)
        for surf, rect in zip(self._surfaces, self._layout):
            self._screen.blit(pygame.transform.scale(surf.surface, rect.size), rect)
        self._slider.draw(self._screen)
        pygame.display.flip()

    # ------------------------------------------------------------------
    # FPS tracking
    # ------------------------------------------------------------------

    def _update_fps(self) -> None:
        """Update refresh and tick rates in the title roughly once per second."""
        now = time.monotonic()
        elapsed = now - self._fps_update_time
        if elapsed < 1.0:
            return
        counter = self._scheduler.counter
        ticks = self._scheduler.ticks
        self._refresh_rate = (counter - self._fps_counter_mark) / elapsed
        self._tick_rate = (ticks - self._fps_ticks_mark) / elapsed
        self._fps_counter_mark = counter
        self._fps_ticks_mark = ticks
        self._fps_update_time = now

        pygame.display.set_caption(
            f"{self._build_title()}  [{self._refresh_rate:.1f} Hz, "
            f"{self._tick_rate:.1f} fps, slowdown {self._throttle.slowdown_factor}]"
        )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def _shutdown(self) -> None:
        logger.info("Shutting down")
        pygame.quit()

    def _build_title(self) -> str:
        return f"{_WINDOW_TITLE}  ({self._core.kind})"
