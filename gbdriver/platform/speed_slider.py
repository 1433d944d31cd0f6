"""
Speed slider -- a horizontal bar drawn under the screens.

Dragging the knob (or scrolling the wheel over the bar) writes a new
slowdown factor to the :class:`~gbdriver.shell.throttle.Throttle`.  Left
is full speed (1), right is the slowest setting.
"""

from __future__ import annotations

import pygame

from gbdriver.shell.throttle import MIN_SLOWDOWN, Throttle

_TRACK_COLOUR = (60, 60, 60)
_FILL_COLOUR = (90, 140, 200)
_KNOB_COLOUR = (230, 230, 230)
_KNOB_WIDTH: int = 6


class SpeedSlider:
    """Mouse-driven control for the slowdown factor.

    Parameters
    ----------
    throttle:
        The throttle cell the slider writes to.
    rect:
        Screen rectangle occupied by the bar.
    maximum:
        Slowdown factor at the right-hand end.
    """

    def __init__(self, throttle: Throttle, rect: pygame.Rect, maximum: int = 60) -> None:
        self._throttle = throttle
        self.rect = pygame.Rect(rect)
        self.minimum: int = MIN_SLOWDOWN
        self.maximum: int = max(MIN_SLOWDOWN, maximum)
        self._dragging: bool = False

    @property
    def value(self) -> int:
        return self._throttle.slowdown_factor

    def value_at(self, x: int) -> int:
        """Slowdown factor for a mouse at horizontal position *x*."""
        span = max(1, self.rect.width - 1)
        frac = min(1.0, max(0.0, (x - self.rect.left) / span))
        return self.minimum + round(frac * (self.maximum - self.minimum))

    def x_for(self, value: int) -> int:
        """Horizontal knob position for *value*."""
        value = min(self.maximum, max(self.minimum, value))
        if self.maximum == self.minimum:
            return self.rect.left
        frac = (value - self.minimum) / (self.maximum - self.minimum)
        return self.rect.left + round(frac * (self.rect.width - 1))

    def handle_event(self, event: pygame.event.Event) -> None:
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self._dragging = True
                self._throttle.set(self.value_at(event.pos[0]))
        elif event.type == pygame.MOUSEMOTION and self._dragging:
            self._throttle.set(self.value_at(event.pos[0]))
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self._dragging = False
        elif event.type == pygame.MOUSEWHEEL:
            if self.rect.collidepoint(pygame.mouse.get_pos()):
                new = min(self.maximum, max(self.minimum, self.value + event.y))
                self._throttle.set(new)

    def draw(self, target: pygame.Surface) -> None:
        pygame.draw.rect(target, _TRACK_COLOUR, self.rect)
        knob_x = self.x_for(self.value)
        fill = pygame.Rect(self.rect.left, self.rect.top, knob_x - self.rect.left, self.rect.height)
        pygame.draw.rect(target, _FILL_COLOUR, fill)
        knob = pygame.Rect(0, self.rect.top, _KNOB_WIDTH, self.rect.height)
        knob.centerx = knob_x
        pygame.draw.rect(target, _KNOB_COLOUR, knob)
