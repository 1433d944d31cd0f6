"""
Execution core factory for gbdriver.

Creates a ready-to-run :class:`~gbdriver.core.core_adapter.CoreAdapter`
from a command-line core argument:

* ``demo`` -- the built-in :class:`~gbdriver.core.demo_core.DemoCore`.
* a path to a ``.wasm`` / ``.wat`` file -- a
  :class:`~gbdriver.shell.services.wasm_core.WasmCore`.

Typical usage::

    core = CoreFactory.create("pkg/emulator_bg.wasm", rom_path="game.gb")
    core = CoreFactory.create("demo")
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from gbdriver.core.core_adapter import CoreAdapter
from gbdriver.core.demo_core import DemoCore
from gbdriver.core.errors import CoreLoadError

logger = logging.getLogger(__name__)

DEMO_CORE: str = "demo"

_MODULE_EXTENSIONS: frozenset[str] = frozenset({".wasm", ".wat"})

# Largest ROM accepted (8 MB, the biggest MBC5 cartridge).
_MAX_ROM_BYTES: int = 8 * 1024 * 1024


class CoreFactory:
    """Create an execution core from a path or the ``demo`` keyword."""

    @staticmethod
    def create(
        core: str,
        rom_path: Optional[str] = None,
        *,
        relocate_every: int = 0,
    ) -> CoreAdapter:
        """Build and return a core with its instance already created.

        Parameters
        ----------
        core:
            ``"demo"`` or the filesystem path of a WebAssembly module.
        rom_path:
            Optional ROM image passed to the core's constructor.
        relocate_every:
            Demo core only: grow its memory region every *n* ticks.

        Raises
        ------
        CoreLoadError
            If the module or ROM cannot be read, or the module is unusable.
        """
        rom = CoreFactory.read_rom(rom_path) if rom_path else None

        if core == DEMO_CORE:
            logger.info("Creating demo core (relocate_every=%d)", relocate_every)
            return DemoCore(relocate_every=relocate_every, rom=rom)

        path = os.path.expanduser(core)
        ext = os.path.splitext(path)[1].lower()
        if ext not in _MODULE_EXTENSIONS:
            raise CoreLoadError(
                f"unrecognised core {core!r}; expected 'demo' or a .wasm/.wat file"
            )
        if not os.path.isfile(path):
            raise CoreLoadError(f"module not found: {path}")

        # wasmtime is only needed for real modules.
        from gbdriver.shell.services.wasm_core import WasmCore

        logger.info("Loading wasm core from %s", path)
        return WasmCore(path, rom=rom)

    @staticmethod
    def read_rom(rom_path: str) -> bytes:
        """Read a ROM image, rejecting missing or oversized files."""
        path = os.path.expanduser(rom_path)
        try:
            size = os.path.getsize(path)
        except OSError as exc:
            raise CoreLoadError(f"cannot read ROM {path}: {exc}") from exc
        if size > _MAX_ROM_BYTES:
            raise CoreLoadError(f"ROM {path} is {size} bytes; limit is {_MAX_ROM_BYTES}")
        with open(path, "rb") as f:
            data = f.read()
        logger.info("Read ROM %s (%d bytes)", path, len(data))
        return data

    @staticmethod
    def describe(core: str, rom_path: Optional[str] = None) -> dict[str, object]:
        """Create the core and return its :meth:`CoreAdapter.describe` summary."""
        return CoreFactory.create(core, rom_path).describe()
