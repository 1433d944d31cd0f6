import pytest

wasmtime = pytest.importorskip("wasmtime")

from conftest import RecordingSurface, first_pixel
from gbdriver.core.errors import CoreLoadError, CoreTrapError
from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW
from gbdriver.shell.frame_scheduler import FrameScheduler
from gbdriver.shell.services.wasm_core import WasmCore
from gbdriver.shell.throttle import Throttle

# Screen at 4096 (92160 bytes), tileset right after it (98304 bytes).
# Every tick grows memory by one page and writes the tick count into the
# first byte of both buffers.  Key exports record the code's first byte
# and length at addresses 0 and 4.
EMULATOR_WAT = """
(module
  (import "__wbindgen_placeholder__" "__wbindgen_throw" (func $throw (param i32 i32)))
  (memory (export "memory") 3)
  (global $heap (mut i32) (i32.const 1024))
  (global $ticks (mut i32) (i32.const 0))
  (global $keys (mut i32) (i32.const 0))
  (data (i32.const 2048) "panic!")

  (func (export "__wbindgen_malloc") (param $size i32) (param $align i32) (result i32)
    (local $p i32)
    global.get $heap
    local.set $p
    global.get $heap
    local.get $size
    i32.add
    global.set $heap
    local.get $p)

  (func (export "emulator_new") (param $ptr i32) (param $len i32) (result i32)
    i32.const 8
    local.get $len
    i32.store
    i32.const 16)

  (func (export "emulator_tick") (param $emu i32)
    global.get $ticks
    i32.const 1
    i32.add
    global.set $ticks
    i32.const 1
    memory.grow
    drop
    i32.const 4096
    global.get $ticks
    i32.store8
    i32.const 96256
    global.get $ticks
    i32.store8)

  (func (export "emulator_framebuffer_ptr") (param i32) (result i32)
    i32.const 4096)

  (func (export "emulator_tileset_ptr") (param i32) (result i32)
    i32.const 96256)

  (func $record (param $ptr i32) (param $len i32)
    i32.const 0
    local.get $ptr
    i32.load8_u
    i32.store8
    i32.const 4
    local.get $len
    i32.store
    global.get $keys
    i32.const 1
    i32.add
    global.set $keys)

  (func (export "emulator_key_down") (param i32 i32 i32)
    local.get 1
    local.get 2
    call $record)

  (func (export "emulator_key_up") (param i32 i32 i32)
    local.get 1
    local.get 2
    call $record)

  (func (export "key_events") (result i32)
    global.get $keys)

  (func (export "panic") (param i32)
    i32.const 2048
    i32.const 6
    call $throw)
)
"""

SCREEN_ONLY_WAT = """
(module
  (memory (export "memory") 2)
  (func (export "emulator_new") (result i32) i32.const 16)
  (func (export "emulator_tick") (param i32))
  (func (export "emulator_framebuffer_ptr") (param i32) (result i32) i32.const 1024)
  (func (export "emulator_framebuffer_len") (param i32) (result i32) i32.const 92160)
)
"""

TRAPPING_WAT = """
(module
  (memory (export "memory") 2)
  (func (export "emulator_new") (result i32) i32.const 16)
  (func (export "emulator_tick") (param i32) unreachable)
  (func (export "emulator_framebuffer_ptr") (param i32) (result i32) i32.const 1024)
)
"""

OUT_OF_RANGE_WAT = """
(module
  (memory (export "memory") 1)
  (func (export "emulator_new") (result i32) i32.const 16)
  (func (export "emulator_tick") (param i32))
  (func (export "emulator_framebuffer_ptr") (param i32) (result i32) i32.const 1024)
)
"""


def load(wat: str, **kwargs) -> WasmCore:
    return WasmCore(wasmtime.wat2wasm(wat), **kwargs)


def test_instance_is_created_with_rom_bytes() -> None:
    core = load(EMULATOR_WAT, rom=b"\x01\x02\x03")
    assert core.handle == 16
    assert int.from_bytes(core.memory.read(8, 4), "little") == 3


def test_descriptors_use_geometry_length_without_len_export() -> None:
    core = load(EMULATOR_WAT)
    fb = core.framebuffer()
    ts = core.tileset()
    assert (fb.pointer, fb.length) == (4096, MAIN_SCREEN.byte_length)
    assert (ts.pointer, ts.length) == (96256, TILESET_VIEW.byte_length)


def test_len_export_is_used_when_present() -> None:
    core = load(SCREEN_ONLY_WAT)
    assert core.framebuffer().length == 92160
    assert not core.has_tileset
    with pytest.raises(CoreLoadError):
        core.tileset()


def test_key_codes_are_passed_as_utf8_strings() -> None:
    core = load(EMULATOR_WAT)
    core.key_down("KeyZ")
    core.key_up("KeyZ")
    assert core.memory.read(0, 1) == b"K"
    assert int.from_bytes(core.memory.read(4, 4), "little") == 4
    assert core._call("key_events") == 2


def test_scheduler_reads_growing_memory_fresh_each_tick() -> None:
    core = load(EMULATOR_WAT)
    screen = RecordingSurface(MAIN_SCREEN)
    tiles = RecordingSurface(TILESET_VIEW)
    scheduler = FrameScheduler(core, [screen, tiles], Throttle(1))
    start = core.memory.size()

    for _ in range(3):
        assert scheduler.step()

    assert core.memory.size() == start + 3 * 65536
    assert [first_pixel(img)[0] for img in screen.images] == [1, 2, 3]
    assert [first_pixel(img)[0] for img in tiles.images] == [1, 2, 3]


def test_trap_in_tick_halts_scheduler() -> None:
    core = load(TRAPPING_WAT)
    scheduler = FrameScheduler(core, [RecordingSurface(MAIN_SCREEN)], Throttle(1))
    assert not scheduler.step()
    assert isinstance(scheduler.fatal_error, CoreTrapError)


def test_descriptor_past_memory_end_halts_scheduler() -> None:
    core = load(OUT_OF_RANGE_WAT)
    screen = RecordingSurface(MAIN_SCREEN)
    scheduler = FrameScheduler(core, [screen], Throttle(1))
    assert not scheduler.step()
    assert scheduler.halted
    assert screen.images == []


def test_throw_import_surfaces_as_trap() -> None:
    core = load(EMULATOR_WAT)
    with pytest.raises(CoreTrapError):
        core._call("panic", core.handle)


def test_missing_exports_are_reported() -> None:
    wat = '(module (memory (export "memory") 1))'
    with pytest.raises(CoreLoadError, match="emulator_new"):
        load(wat)


def test_invalid_module_bytes() -> None:
    with pytest.raises(CoreLoadError):
        WasmCore(b"not wasm")


def test_missing_module_path(tmp_path) -> None:
    with pytest.raises(CoreLoadError):
        WasmCore(tmp_path / "nope.wasm")


def test_describe_lists_exports() -> None:
    info = load(EMULATOR_WAT).describe()
    assert info["kind"] == "wasm"
    assert "emulator_tick" in info["exports"]
    assert info["screen"] == f"ptr=4096 len={MAIN_SCREEN.byte_length}"


@pytest.mark.parametrize("offset,length", [(-1, 4), (0, -1), (None, 4)])
def test_memory_read_outside_region_traps(offset, length) -> None:
    region = load(EMULATOR_WAT).memory
    if offset is None:
        offset = region.size() - 2
    with pytest.raises(CoreTrapError):
        region.read(offset, length)


def test_memory_read_inside_region() -> None:
    region = load(EMULATOR_WAT).memory
    region.write(64, b"gb")
    assert region.read(64, 2) == b"gb"
