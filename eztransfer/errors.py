# eztransfer/errors.py


class StyleTransferError(Exception):
    """Base class for every failure that aborts a style-transfer job."""


class InvalidDimensions(StyleTransferError):
    """The content frame is zero-sized or too small to be processed."""

    def __init__(self, width: int, height: int, reason: str = ""):
        self.width = width
        self.height = height
        message = f"Invalid frame dimensions {width}x{height}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InferenceError(StyleTransferError):
    """The underlying model call failed."""

    def __init__(self, message: str, tile_index=None):
        self.tile_index = tile_index
        super().__init__(message)


class ShapeMismatch(InferenceError):
    """A model returned a tensor whose shape differs from the expected one."""

    def __init__(self, name: str, expected, actual, tile_index=None):
        self.name = name
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(
            f"Unexpected {name} shape: expected {self.expected}, got {self.actual}",
            tile_index=tile_index,
        )


class InferenceTimeout(InferenceError):
    """A single tile inference call exceeded the configured timeout."""


class JobCancelled(StyleTransferError):
    """The job was cancelled before all tiles were dispatched."""

    def __init__(self, completed_tiles: int, total_tiles: int):
        self.completed_tiles = completed_tiles
        self.total_tiles = total_tiles
        super().__init__(
            f"Job cancelled after {completed_tiles}/{total_tiles} tiles."
        )
