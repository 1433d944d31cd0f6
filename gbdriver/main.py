"""
gbdriver -- frame-paced host driver for a Game Boy emulation core.

Main entry point.  Parses command-line arguments, loads the execution
core, and launches the pygame display window.

Usage examples::

    # Run a compiled core
    python -m gbdriver pkg/emulator_bg.wasm

    # Pass a ROM to the core and start at one frame per 10 refreshes
    python -m gbdriver pkg/emulator_bg.wasm --rom roms/game.gb --slowdown 10

    # Built-in test-pattern core, main screen only
    python -m gbdriver demo --no-tileset

    # Print the core's exports and buffer locations without a window
    python -m gbdriver pkg/emulator_bg.wasm --info
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from gbdriver.core.errors import CoreLoadError, DriverError
from gbdriver.shell.services.core_factory import CoreFactory
from gbdriver.shell.throttle import Throttle


# ---------------------------------------------------------------------------
# CLI definition
# ---------------------------------------------------------------------------

def _key_repeat(text: str) -> tuple[int, int]:
    """Parse ``DELAY,INTERVAL`` (milliseconds) or ``0`` to disable."""
    if text.strip() == "0":
        return (0, 0)
    try:
        delay, interval = (int(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected DELAY,INTERVAL in ms or 0, got {text!r}"
        ) from None
    if delay < 0 or interval < 0:
        raise argparse.ArgumentTypeError("key repeat values must be non-negative")
    return (delay, interval)


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser."""
    parser = argparse.ArgumentParser(
        prog="gbdriver",
        description=(
            "gbdriver -- drive a Game Boy emulation core one frame per "
            "display refresh and show its output in a pygame window."
        ),
    )

    parser.add_argument(
        "core",
        help="Path to the core's .wasm module, or 'demo' for the built-in test pattern.",
    )
    parser.add_argument(
        "--rom", "-r",
        default=None,
        metavar="PATH",
        help="ROM image passed to the core when it is created.",
    )

    # Pacing
    parser.add_argument(
        "--slowdown",
        type=int,
        default=1,
        metavar="N",
        help="Run one emulated frame every N refreshes.  Default: 1 (full speed).",
    )
    parser.add_argument(
        "--max-slowdown",
        type=int,
        default=60,
        metavar="N",
        help="Slowdown factor at the right end of the speed slider.  Default: 60.",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=60,
        help="Host refresh rate in Hz.  Default: 60.",
    )

    # Display
    parser.add_argument(
        "--scale", "-s",
        type=int,
        default=3,
        help="Display scale factor (1-8).  Default: 3.",
    )
    parser.add_argument(
        "--no-tileset",
        action="store_true",
        default=False,
        help="Only show the main screen.",
    )

    # Input
    parser.add_argument(
        "--key-repeat",
        type=_key_repeat,
        default=(500, 33),
        metavar="DELAY,INTERVAL",
        help="Held-key repeat in ms, or 0 to disable.  Default: 500,33.",
    )

    # Debugging / info
    parser.add_argument(
        "--frames",
        type=int,
        default=None,
        metavar="N",
        help="Exit after N refresh callbacks.",
    )
    parser.add_argument(
        "--relocate-every",
        type=int,
        default=0,
        metavar="N",
        help="Demo core only: move its output buffers every N ticks.",
    )
    parser.add_argument(
        "--info",
        action="store_true",
        default=False,
        help="Print core exports and buffer locations, then exit.",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="count",
        default=0,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG).",
    )

    return parser


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def _configure_logging(verbosity: int) -> None:
    """Set up the root logger based on requested verbosity."""
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Info mode
# ---------------------------------------------------------------------------

def _print_core_info(core) -> None:
    """Print human-readable metadata for a loaded core."""
    print("gbdriver Core Information")
    print("=" * 40)
    for key, value in core.describe().items():
        label = key.replace("_", " ").title()
        print(f"  {label:20s}: {value}")
    print("=" * 40)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` to use ``sys.argv``.

    Returns
    -------
    int
        Exit code (0 on success, 1 if loading failed or the driver halted).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    logger = logging.getLogger("gbdriver.main")

    try:
        throttle = Throttle(args.slowdown)
    except DriverError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        core = CoreFactory.create(
            args.core,
            rom_path=args.rom,
            relocate_every=args.relocate_every,
        )
    except CoreLoadError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except DriverError as exc:
        logger.exception("Failed to create core")
        print(f"Error creating core: {exc}", file=sys.stderr)
        return 1

    if args.info:
        _print_core_info(core)
        return 0

    include_tileset = not args.no_tileset
    if include_tileset and not core.has_tileset:
        logger.info("Core has no tileset output; showing the main screen only")
        include_tileset = False

    # Imported late so --info works without a display.
    from gbdriver.platform.window import Window

    logger.info("Starting emulation ...")
    try:
        window = Window(
            core,
            throttle,
            scale=args.scale,
            fps=args.fps,
            include_tileset=include_tileset,
            key_repeat=args.key_repeat,
            max_slowdown=args.max_slowdown,
            max_frames=args.frames,
        )
        window.run()
    except KeyboardInterrupt:
        return 0

    if window.scheduler.halted:
        print(f"Fatal error: {window.scheduler.fatal_error}", file=sys.stderr)
        return 1

    logger.info("Exited cleanly")
    return 0


if __name__ == "__main__":
    sys.exit(main())
