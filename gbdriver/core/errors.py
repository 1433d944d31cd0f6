"""Exception hierarchy for gbdriver."""


class DriverError(Exception):
    """Base class for every error raised by the driver."""


class FatalFrameError(DriverError):
    """A per-frame failure after which no later frame can be trusted.

    The frame scheduler halts permanently when it sees one of these.
    """


class BufferBoundsError(FatalFrameError):
    """An output descriptor points outside the current memory region."""

    def __init__(self, name: str, pointer: int, length: int, region_size: int) -> None:
        self.name = name
        self.pointer = pointer
        self.length = length
        self.region_size = region_size
        super().__init__(
            f"{name}: range [{pointer}, {pointer + length}) outside "
            f"memory region of {region_size} bytes"
        )


class GeometryMismatchError(FatalFrameError):
    """An extracted byte view does not match the declared display geometry."""

    def __init__(self, name: str, expected: int, actual: int) -> None:
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{name}: expected {expected} bytes, got {actual}"
        )


class ThrottleError(DriverError, ValueError):
    """A slowdown factor that is not an integer."""


class CoreLoadError(DriverError):
    """The execution core could not be loaded or is missing an export."""


class CoreTrapError(DriverError):
    """The execution core trapped while running."""
