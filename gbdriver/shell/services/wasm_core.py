"""
WebAssembly execution core, loaded with wasmtime.

The emulator crate is compiled to a ``wasm-bindgen`` style module whose
``Emulator`` struct is exposed as free functions taking the instance
pointer as their first argument:

===================================  ===================================
Export                               Use
===================================  ===================================
``memory``                           the shared linear memory
``emulator_new([rom_ptr, rom_len])`` create the instance (once)
``emulator_tick(emu)``               advance one frame
``emulator_framebuffer_ptr(emu)``    offset of the 160x144 RGBA screen
``emulator_tileset_ptr(emu)``        offset of the 128x192 RGBA tile view
``emulator_key_down(emu, p, n)``     key-down, code as UTF-8 at ``p``
``emulator_key_up(emu, p, n)``       key-up, same encoding
``__wbindgen_malloc(n[, align])``    allocate memory for string args
===================================  ===================================

``emulator_framebuffer_len`` / ``emulator_tileset_len`` are used when
present; otherwise the length is the fixed size of the output geometry.

Linear memory can grow during any call, which moves its base address, so
:class:`WasmMemoryRegion` rebuilds its ctypes view on every request.
"""

from __future__ import annotations

import ctypes
import logging
import os
from typing import Optional

import wasmtime

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.errors import CoreLoadError, CoreTrapError
from gbdriver.core.memory_region import SharedMemoryRegion
from gbdriver.core.types import MAIN_SCREEN, TILESET_VIEW, DisplayGeometry, OutputDescriptor

logger = logging.getLogger(__name__)

_REQUIRED_EXPORTS: tuple[str, ...] = (
    "memory",
    "emulator_new",
    "emulator_tick",
    "emulator_framebuffer_ptr",
)

# wasm-bindgen reports Rust panics and thrown JS errors through this import.
_THROW_IMPORT: str = "__wbindgen_throw"


# ---------------------------------------------------------------------------
# Memory region
# ---------------------------------------------------------------------------

class WasmMemoryRegion(SharedMemoryRegion):
    """The module's exported linear memory."""

    def __init__(self, store: wasmtime.Store, memory: wasmtime.Memory) -> None:
        self._store = store
        self._memory = memory

    def size(self) -> int:
        return self._memory.data_len(self._store)

    def current_buffer(self):
        size = self.size()
        base = ctypes.addressof(self._memory.data_ptr(self._store).contents)
        return (ctypes.c_ubyte * size).from_address(base)

    def write(self, offset: int, data: bytes) -> None:
        size = self.size()
        if offset < 0 or offset + len(data) > size:
            raise CoreTrapError(
                f"write [{offset}, {offset + len(data)}) outside memory of {size} bytes"
            )
        base = ctypes.addressof(self._memory.data_ptr(self._store).contents)
        ctypes.memmove(base + offset, data, len(data))

    def read(self, offset: int, length: int) -> bytes:
        size = self.size()
        if offset < 0 or length < 0 or offset + length > size:
            raise CoreTrapError(
                f"read [{offset}, {offset + length}) outside memory of {size} bytes"
            )
        return bytes(self.current_buffer()[offset : offset + length])


# ---------------------------------------------------------------------------
# Core adapter
# ---------------------------------------------------------------------------

class WasmCore(CoreAdapter):
    """Execution core running inside a wasmtime store.

    Parameters
    ----------
    module_source:
        Path to a ``.wasm`` (or ``.wat``) file, or the module bytes.
    rom:
        ROM image handed to ``emulator_new`` when it takes a byte vector.
    """

    kind = "wasm"

    def __init__(self, module_source, rom: Optional[bytes] = None) -> None:
        self._engine = wasmtime.Engine()
        self._store = wasmtime.Store(self._engine)
        self._module = self._load_module(module_source)

        linker = wasmtime.Linker(self._engine)
        self._define_imports(linker)
        try:
            self._instance = linker.instantiate(self._store, self._module)
        except (wasmtime.WasmtimeError, wasmtime.Trap) as exc:
            raise CoreLoadError(f"failed to instantiate module: {exc}") from exc

        self._exports = self._instance.exports(self._store)
        self.export_names: list[str] = [e.name for e in self._module.exports]
        missing = [name for name in _REQUIRED_EXPORTS if name not in self.export_names]
        if missing:
            raise CoreLoadError(f"module is missing export(s): {', '.join(missing)}")

        memory = self._exports["memory"]
        if not isinstance(memory, wasmtime.Memory):
            raise CoreLoadError("export 'memory' is not a memory")
        self._region = WasmMemoryRegion(self._store, memory)

        self._handle: int = self._create_instance(rom)
        logger.info(
            "WasmCore: instance %#x created, memory %d bytes, %d exports",
            self._handle,
            self._region.size(),
            len(self.export_names),
        )

        if not self.has_export("emulator_key_down") or not self.has_export("emulator_key_up"):
            logger.warning("Module has no key exports; keyboard input will be ignored")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load_module(self, module_source) -> wasmtime.Module:
        try:
            if isinstance(module_source, (bytes, bytearray)):
                return wasmtime.Module(self._engine, bytes(module_source))
            path = os.fspath(module_source)
            if not os.path.isfile(path):
                raise CoreLoadError(f"module not found: {path}")
            if path.lower().endswith(".wat"):
                with open(path, "r", encoding="utf-8") as f:
                    return wasmtime.Module(self._engine, f.read())
            return wasmtime.Module.from_file(self._engine, path)
        except wasmtime.WasmtimeError as exc:
            raise CoreLoadError(f"invalid module: {exc}") from exc

    def _define_imports(self, linker: wasmtime.Linker) -> None:
        """Satisfy every function import with a host function that traps.

        The driver provides no JS glue, so any import the core actually
        calls is an error surfaced as :class:`CoreTrapError`.
        """
        for imp in self._module.imports:
            ty = imp.type
            if not isinstance(ty, wasmtime.FuncType):
                raise CoreLoadError(
                    f"unsupported non-function import {imp.module}.{imp.name}"
                )
            linker.define_func(imp.module, imp.name, ty, self._make_import_stub(imp.module, imp.name))
            logger.debug("Stubbed import %s.%s", imp.module, imp.name)

    def _make_import_stub(self, module: str, name: str):
        if name == _THROW_IMPORT:
            def throw(ptr, length):
                message = self._region.read(ptr & 0xFFFFFFFF, length).decode("utf-8", "replace")
                raise CoreTrapError(f"core threw: {message}")
            return throw

        def stub(*args):
            raise CoreTrapError(f"core called unsupported import {module}.{name}")
        return stub

    def _create_instance(self, rom: Optional[bytes]) -> int:
        new_fn = self._exports["emulator_new"]
        arity = len(new_fn.type(self._store).params)
        if arity == 0:
            handle = self._call("emulator_new")
        elif arity == 2:
            data = bytes(rom or b"")
            handle = self._call("emulator_new", *self._pass_bytes(data))
        else:
            raise CoreLoadError(f"emulator_new takes {arity} params; expected 0 or 2")
        return handle & 0xFFFFFFFF

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def has_export(self, name: str) -> bool:
        return name in self.export_names

    def _call(self, name: str, *args):
        try:
            return self._exports[name](self._store, *args)
        except CoreTrapError:
            raise
        except (wasmtime.Trap, wasmtime.WasmtimeError) as exc:
            raise CoreTrapError(f"{name} trapped: {exc}") from exc

    def _pass_bytes(self, data: bytes) -> tuple[int, int]:
        """Copy *data* into core memory the way wasm-bindgen passes strings."""
        if not self.has_export("__wbindgen_malloc"):
            raise CoreLoadError("module has no __wbindgen_malloc export")
        malloc = self._exports["__wbindgen_malloc"]
        if len(malloc.type(self._store).params) == 2:
            ptr = self._call("__wbindgen_malloc", len(data), 1)
        else:
            ptr = self._call("__wbindgen_malloc", len(data))
        ptr &= 0xFFFFFFFF
        self._region.write(ptr, data)
        return ptr, len(data)

    # ------------------------------------------------------------------
    # CoreAdapter interface
    # ------------------------------------------------------------------

    @property
    def memory(self) -> WasmMemoryRegion:
        return self._region

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def has_tileset(self) -> bool:
        return self.has_export("emulator_tileset_ptr")

    def tick(self) -> None:
        self._call("emulator_tick", self._handle)

    def key_down(self, code: str) -> None:
        self._send_key("emulator_key_down", code)

    def key_up(self, code: str) -> None:
        self._send_key("emulator_key_up", code)

    def _send_key(self, export: str, code: str) -> None:
        if not self.has_export(export):
            return
        ptr, length = self._pass_bytes(code.encode("utf-8"))
        self._call(export, self._handle, ptr, length)

    def framebuffer(self) -> OutputDescriptor:
        return self._descriptor("framebuffer", MAIN_SCREEN)

    def tileset(self) -> OutputDescriptor:
        if not self.has_tileset:
            raise CoreLoadError("module has no emulator_tileset_ptr export")
        return self._descriptor("tileset", TILESET_VIEW)

    def _descriptor(self, buffer: str, geometry: DisplayGeometry) -> OutputDescriptor:
        pointer = self._call(f"emulator_{buffer}_ptr", self._handle) & 0xFFFFFFFF
        len_export = f"emulator_{buffer}_len"
        if self.has_export(len_export):
            length = self._call(len_export, self._handle) & 0xFFFFFFFF
        else:
            length = geometry.byte_length
        return OutputDescriptor(geometry.name, pointer, length)

    def describe(self) -> dict[str, object]:
        info = super().describe()
        info["handle"] = f"{self._handle:#x}"
        info["exports"] = ", ".join(self.export_names)
        return info
