"""
Frame scheduler -- the driving loop of gbdriver.

Every host refresh callback runs :meth:`FrameScheduler.step`:

1. Increment the frame counter.
2. If ``counter % slowdown_factor != 0`` do nothing else this refresh.
3. Otherwise tick the core once, then for each configured output query
   its descriptor, extract a view and present it.
4. Ask for another refresh, unless step 3 failed fatally, in which case
   the scheduler halts for good.

:meth:`FrameScheduler.run` repeats this with exactly one suspension point
per iteration: the ``refresh`` callable, which blocks until the next
display refresh.  Tests call :meth:`step` directly instead.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Sequence

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.errors import CoreTrapError, FatalFrameError
from gbdriver.core.types import OutputDescriptor
from gbdriver.shell.buffer_view import extract
from gbdriver.shell.frame_presenter import FramePresenter, PresentationSurface
from gbdriver.shell.throttle import Throttle

logger = logging.getLogger(__name__)

# Errors after which the memory-view relationship cannot be trusted.
_FATAL_ERRORS = (FatalFrameError, CoreTrapError)


class FrameScheduler:
    """Advance *core* and present its outputs at a throttled cadence.

    Parameters
    ----------
    core:
        The execution core.  The scheduler holds it for its whole lifetime.
    surfaces:
        One presentation surface per output to draw, matched to the core's
        outputs by geometry name (``"screen"``, ``"tileset"``).
    throttle:
        Source of the slowdown factor, read once per callback.
    on_fatal:
        Called once with the exception when the scheduler halts.
    """

    def __init__(
        self,
        core: CoreAdapter,
        surfaces: Sequence[PresentationSurface],
        throttle: Throttle,
        *,
        on_fatal: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        if not surfaces:
            raise ValueError("at least one presentation surface is required")

        self._core = core
        self._throttle = throttle
        self._on_fatal = on_fatal

        getters = {geo.name: (geo, getter) for geo, getter in core.outputs()}
        self._outputs: list[tuple[Callable[[], OutputDescriptor], FramePresenter]] = []
        for surface in surfaces:
            try:
                geometry, getter = getters[surface.name]
            except KeyError:
                raise ValueError(f"core has no output named {surface.name!r}") from None
            self._outputs.append((getter, FramePresenter(geometry, surface)))

        self.counter: int = 0
        self.ticks: int = 0
        self._halted: bool = False
        self._fatal_error: Optional[BaseException] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def fatal_error(self) -> Optional[BaseException]:
        """The error that halted the scheduler, if any."""
        return self._fatal_error

    @property
    def throttle(self) -> Throttle:
        return self._throttle

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def step(self) -> bool:
        """Run one host refresh callback.

        Returns ``True`` if the next callback should be scheduled.
        """
        if self._halted:
            return False

        self.counter += 1
        if self.counter % self._throttle.slowdown_factor != 0:
            return True

        try:
            self._tick_frame()
        except _FATAL_ERRORS as exc:
            self._halt(exc)
            return False
        return True

    def run(self, refresh: Callable[[], bool]) -> None:
        """Loop until *refresh* returns ``False`` or a fatal error occurs.

        *refresh* blocks until the next display refresh and returns
        ``False`` once the host is shutting down.
        """
        logger.info(
            "Scheduler running (%d output(s), slowdown %d)",
            len(self._outputs),
            self._throttle.slowdown_factor,
        )
        while refresh():
            if not self.step():
                break
        logger.info("Scheduler stopped after %d callbacks, %d ticks", self.counter, self.ticks)

    def fail(self, exc: BaseException) -> None:
        """Halt on a fatal error raised outside :meth:`step`, e.g. by key forwarding.

        Only the first failure is reported.
        """
        if self._halted:
            logger.debug("Ignoring further error after halt: %s", exc)
            return
        self._halt(exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _tick_frame(self) -> None:
        self._core.tick()
        self.ticks += 1

        # Descriptors are queried only now, after the tick they belong to.
        region = self._core.memory
        for get_descriptor, presenter in self._outputs:
            descriptor = get_descriptor()
            with extract(region, descriptor) as view:
                presenter.present(view)

        logger.debug("Tick frame %d at callback %d", self.ticks, self.counter)

    def _halt(self, exc: BaseException) -> None:
        self._halted = True
        self._fatal_error = exc
        logger.error(
            "Halting after fatal error at callback %d: %s",
            self.counter,
            exc,
            exc_info=exc,
        )
        if self._on_fatal is not None:
            self._on_fatal(exc)
