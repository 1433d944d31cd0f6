"""
Throttle controller.

Holds the slowdown factor: the scheduler runs one emulated frame every
``slowdown_factor`` host refreshes.  Writes come from the speed slider,
reads from the scheduler; both run on the pygame loop's single thread,
so the value is a plain attribute.
"""

from __future__ import annotations

import logging
import numbers

from gbdriver.core.errors import ThrottleError

logger = logging.getLogger(__name__)

MIN_SLOWDOWN: int = 1


class Throttle:
    """Single-writer, single-reader cell for the slowdown factor.

    Values below :data:`MIN_SLOWDOWN` are clamped, never stored, so the
    scheduler's ``counter % slowdown_factor`` is always defined.
    """

    def __init__(self, slowdown_factor: int = MIN_SLOWDOWN) -> None:
        self._slowdown_factor: int = MIN_SLOWDOWN
        self.set(slowdown_factor)

    @property
    def slowdown_factor(self) -> int:
        return self._slowdown_factor

    @slowdown_factor.setter
    def slowdown_factor(self, value: int) -> None:
        self.set(value)

    def set(self, value: int) -> int:
        """Store a new slowdown factor and return the value actually stored.

        Raises:
            ThrottleError: If *value* is not an integer.
        """
        if isinstance(value, bool) or not isinstance(value, numbers.Integral):
            raise ThrottleError(f"slowdown factor must be an integer, got {value!r}")
        value = int(value)
        if value < MIN_SLOWDOWN:
            logger.warning(
                "Slowdown factor %d clamped to %d", value, MIN_SLOWDOWN
            )
            value = MIN_SLOWDOWN
        if value != self._slowdown_factor:
            logger.debug("Slowdown factor %d -> %d", self._slowdown_factor, value)
        self._slowdown_factor = value
        return value

    def __repr__(self) -> str:
        return f"Throttle(slowdown_factor={self._slowdown_factor})"
