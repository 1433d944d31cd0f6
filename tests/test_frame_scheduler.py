import pytest

from conftest import FakeCore, FakeRefresh, RecordingSurface, first_pixel
from gbdriver.core.errors import BufferBoundsError, CoreTrapError, GeometryMismatchError
from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW
from gbdriver.shell.frame_scheduler import FrameScheduler
from gbdriver.shell.throttle import Throttle


def make_scheduler(core, surfaces, factor=1, **kwargs):
    return FrameScheduler(core, surfaces, Throttle(factor), **kwargs)


def test_full_speed_ticks_and_presents_every_callback(fake_core, surfaces) -> None:
    scheduler = make_scheduler(fake_core, surfaces, factor=1)
    for _ in range(10):
        assert scheduler.step()
    assert fake_core.call_names().count("tick") == 10
    assert surfaces[0].updates == 10
    assert surfaces[1].updates == 10


def test_slowdown_five_ticks_at_counters_five_and_ten(fake_core, surfaces) -> None:
    scheduler = make_scheduler(fake_core, surfaces, factor=5)
    tick_counters = []
    for _ in range(10):
        before = fake_core.ticks
        scheduler.step()
        if fake_core.ticks != before:
            tick_counters.append(scheduler.counter)
    assert tick_counters == [5, 10]
    assert surfaces[0].updates == 2
    assert surfaces[1].updates == 2


@pytest.mark.parametrize("factor", [1, 2, 3, 7, 40])
@pytest.mark.parametrize("callbacks", [0, 1, 39, 100])
def test_tick_count_is_floor_of_callbacks_over_factor(factor, callbacks, surfaces) -> None:
    core = FakeCore()
    scheduler = make_scheduler(core, surfaces, factor=factor)
    for _ in range(callbacks):
        scheduler.step()
    assert core.ticks == callbacks // factor
    assert scheduler.ticks == callbacks // factor


def test_each_tick_frame_queries_descriptors_after_the_tick(fake_core, surfaces) -> None:
    scheduler = make_scheduler(fake_core, surfaces)
    scheduler.step()
    scheduler.step()
    assert fake_core.call_names() == [
        "tick", "framebuffer", "tileset",
        "tick", "framebuffer", "tileset",
    ]


def test_skipped_callbacks_do_not_touch_the_core(fake_core, surfaces) -> None:
    scheduler = make_scheduler(fake_core, surfaces, factor=3)
    scheduler.step()
    scheduler.step()
    assert fake_core.calls == []
    assert surfaces[0].updates == 0


def test_relocating_core_is_read_fresh_every_frame(surfaces) -> None:
    core = FakeCore(relocate=True)
    scheduler = make_scheduler(core, surfaces)
    for _ in range(3):
        assert scheduler.step()
    # Each frame shows that frame's fill value, not a stale region.
    assert [first_pixel(img)[0] for img in surfaces[0].images] == [1, 2, 3]
    assert [first_pixel(img)[0] for img in surfaces[1].images] == [1, 2, 3]


def test_throttle_change_applies_on_next_callback(fake_core, surfaces) -> None:
    throttle = Throttle(40)
    scheduler = FrameScheduler(fake_core, surfaces, throttle)
    for _ in range(7):
        scheduler.step()
    assert fake_core.ticks == 0

    throttle.set(1)
    scheduler.step()
    assert fake_core.ticks == 1


def test_out_of_bounds_descriptor_halts_permanently(fake_core, surfaces) -> None:
    errors = []
    scheduler = make_scheduler(fake_core, surfaces, on_fatal=errors.append)
    assert scheduler.step()

    fake_core.corrupt.add(TILESET_VIEW.name)
    assert not scheduler.step()
    assert scheduler.halted
    assert isinstance(scheduler.fatal_error, BufferBoundsError)
    assert len(errors) == 1

    ticks = fake_core.ticks
    assert not scheduler.step()
    assert fake_core.ticks == ticks
    assert len(errors) == 1


def test_geometry_mismatch_halts_without_writing(surfaces) -> None:
    core = FakeCore(fb_length=MAIN_SCREEN.byte_length - 4)
    scheduler = make_scheduler(core, surfaces)
    assert not scheduler.step()
    assert isinstance(scheduler.fatal_error, GeometryMismatchError)
    assert surfaces[0].images == []
    assert surfaces[1].images == []


def test_core_trap_halts(surfaces) -> None:
    class TrappingCore(FakeCore):
        def tick(self):
            raise CoreTrapError("unreachable")

    scheduler = make_scheduler(TrappingCore(), surfaces)
    assert not scheduler.step()
    assert isinstance(scheduler.fatal_error, CoreTrapError)


def test_fatal_error_is_logged_once(fake_core, surfaces, caplog) -> None:
    fake_core.corrupt.add(MAIN_SCREEN.name)
    scheduler = make_scheduler(fake_core, surfaces)
    for _ in range(5):
        scheduler.step()
    errors = [r for r in caplog.records if r.levelname == "ERROR"]
    assert len(errors) == 1


def test_run_stops_when_refresh_returns_false(fake_core, surfaces) -> None:
    scheduler = make_scheduler(fake_core, surfaces, factor=2)
    refresh = FakeRefresh(9)
    scheduler.run(refresh)
    assert scheduler.counter == 9
    assert fake_core.ticks == 4


def test_run_stops_rescheduling_after_fatal_error(fake_core, surfaces) -> None:
    fake_core.corrupt.add(MAIN_SCREEN.name)
    scheduler = make_scheduler(fake_core, surfaces)
    refresh = FakeRefresh(100)
    scheduler.run(refresh)
    assert refresh.calls == 1
    assert scheduler.halted


def test_single_output_mode(fake_core) -> None:
    screen = RecordingSurface(MAIN_SCREEN)
    scheduler = make_scheduler(fake_core, [screen])
    scheduler.step()
    assert fake_core.call_names() == ["tick", "framebuffer"]
    assert screen.updates == 1


def test_unknown_surface_name_is_rejected(fake_core) -> None:
    class OddSurface(RecordingSurface):
        @property
        def name(self):
            return "sprites"

    with pytest.raises(ValueError):
        make_scheduler(fake_core, [OddSurface(MAIN_SCREEN)])


def test_requires_a_surface(fake_core) -> None:
    with pytest.raises(ValueError):
        make_scheduler(fake_core, [])


def test_fail_halts_and_reports_once(fake_core, surfaces) -> None:
    errors = []
    scheduler = make_scheduler(fake_core, surfaces, on_fatal=errors.append)
    first = CoreTrapError("key_down trapped")
    scheduler.fail(first)
    scheduler.fail(CoreTrapError("again"))
    assert scheduler.halted
    assert scheduler.fatal_error is first
    assert errors == [first]
    assert not scheduler.step()
    assert fake_core.ticks == 0
