# eztransfer/frame.py
from typing import Tuple

import numpy as np

from .errors import InvalidDimensions


class Frame:
    """
    Read-only wrapper around an H x W x C uint8 pixel buffer (C is 3 or 4, RGB(A)).
    The caller's array is never written to: the frame keeps a non-writeable view
    and every accessor that hands pixels out returns a copy.
    """

    def __init__(self, pixels: np.ndarray):
        if not isinstance(pixels, np.ndarray):
            raise TypeError(f"Frame expects a numpy array, got {type(pixels).__name__}")
        if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
            raise ValueError(
                f"Frame expects an HxWx3 or HxWx4 array, got shape {pixels.shape}"
            )
        if pixels.dtype != np.uint8:
            raise ValueError(f"Frame expects uint8 pixels, got {pixels.dtype}")

        self._pixels = pixels.view()
        self._pixels.flags.writeable = False

    @classmethod
    def from_array(cls, image) -> "Frame":
        if isinstance(image, Frame):
            return image
        return cls(np.asarray(image))

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def channels(self) -> int:
        return self._pixels.shape[2]

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def pixels(self) -> np.ndarray:
        """Read-only view of the underlying buffer."""
        return self._pixels

    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def validate(self, min_dimension: int = 0):
        """Raises InvalidDimensions for zero-sized frames or frames below min_dimension."""
        if self.is_empty():
            raise InvalidDimensions(self.width, self.height, "frame is empty")
        if min(self.width, self.height) < min_dimension:
            raise InvalidDimensions(
                self.width,
                self.height,
                f"both sides must be at least {min_dimension}px",
            )

    def crop_rgb(self, x: int, y: int, width: int, height: int) -> np.ndarray:
        """Returns a float32 copy of the RGB region in [0, 1], alpha channel dropped."""
        region = self._pixels[y : y + height, x : x + width, :3]
        if region.shape[:2] != (height, width):
            raise ValueError(
                f"Region ({x}, {y}, {width}, {height}) exceeds frame bounds {self.size}"
            )
        return region.astype(np.float32) / 255.0

    def to_rgb(self) -> np.ndarray:
        """Returns a writeable uint8 RGB copy of the frame."""
        return np.array(self._pixels[..., :3], dtype=np.uint8, copy=True)

    def __repr__(self) -> str:
        return f"Frame(width={self.width}, height={self.height}, channels={self.channels})"


def make_placeholder(width: int, height: int, color=(0, 0, 0)) -> np.ndarray:
    """Creates a flat-coloured H x W x 3 uint8 image, used in place of a failed result."""
    placeholder = np.empty((max(height, 0), max(width, 0), 3), dtype=np.uint8)
    placeholder[...] = np.asarray(color, dtype=np.uint8)
    return placeholder
