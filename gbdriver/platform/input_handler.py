"""
Input handling for gbdriver.

:class:`InputForwarder` passes key events to the execution core one for
one: every key-down and key-up, including auto-repeat key-downs, becomes
exactly one ``core.key_down`` / ``core.key_up`` call with the raw key
identifier.  There is no key map, filter or queue on this side; mapping
keys to buttons is the core's job.

:class:`InputHandler` pumps the pygame event queue once per refresh and
dispatches:

===================  =========================================
Event                Action
===================  =========================================
KEYDOWN              ``forwarder.on_key_down(pygame key name)``
KEYUP                ``forwarder.on_key_up(pygame key name)``
mouse on slider      adjust the slowdown factor
QUIT                 stop the driver
===================  =========================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import pygame

if TYPE_CHECKING:
    from gbdriver.core.core_adapter import CoreAdapter
    from gbdriver.platform.speed_slider import SpeedSlider

logger = logging.getLogger(__name__)

_SLIDER_EVENTS: frozenset[int] = frozenset({
    pygame.MOUSEBUTTONDOWN,
    pygame.MOUSEBUTTONUP,
    pygame.MOUSEMOTION,
    pygame.MOUSEWHEEL,
})


class InputForwarder:
    """Forward host key events to the core synchronously and unfiltered."""

    def __init__(self, core: CoreAdapter) -> None:
        self._core = core
        self.forwarded: int = 0

    def on_key_down(self, code: str) -> None:
        self._core.key_down(code)
        self.forwarded += 1

    def on_key_up(self, code: str) -> None:
        self._core.key_up(code)
        self.forwarded += 1


class InputHandler:
    """Translates pygame events into forwarder and slider calls.

    Parameters
    ----------
    forwarder:
        Receives every key event.
    slider:
        Optional speed slider that receives mouse events.
    """

    def __init__(self, forwarder: InputForwarder, slider: Optional[SpeedSlider] = None) -> None:
        self._forwarder = forwarder
        self._slider = slider
        self._quit_requested: bool = False
        # Cleared once the core has halted; QUIT and slider events still apply.
        self.forward_keys: bool = True

    @property
    def quit_requested(self) -> bool:
        """``True`` once the window has been closed."""
        return self._quit_requested

    def poll(self) -> None:
        """Pump the pygame event queue and process all pending events.

        This should be called once per host refresh.
        """
        for event in pygame.event.get():
            self.handle_event(event)

    def handle_event(self, event: pygame.event.Event) -> None:
        """Process a single pygame event."""
        if event.type == pygame.QUIT:
            self._quit_requested = True
        elif event.type == pygame.KEYDOWN and self.forward_keys:
            self._forwarder.on_key_down(pygame.key.name(event.key))
        elif event.type == pygame.KEYUP and self.forward_keys:
            self._forwarder.on_key_up(pygame.key.name(event.key))
        elif event.type in _SLIDER_EVENTS and self._slider is not None:
            self._slider.handle_event(event)
