# eztransfer/utils/io_utils.py
import time
from pathlib import Path
from typing import Tuple, Union

import cv2
import imageio.v2 as imageio
import numpy as np
from PIL import Image

IMG_EXTENSIONS = (".png", ".jpg", ".jpeg", ".webp", ".bmp")
EXIF_ORIENTATION_TAG = 0x0112


def read_exif_orientation(path: Union[str, Path]) -> int:
    """Returns the EXIF orientation of an image file, 1 (normal) when absent."""
    try:
        with Image.open(path) as img:
            return int(img.getexif().get(EXIF_ORIENTATION_TAG, 1))
    except Exception as e:
        raise IOError(f"Error reading EXIF data of {path}: {e}")


def apply_exif_orientation(image: np.ndarray, orientation: int) -> np.ndarray:
    """
    Rotates/flips an image so that it is displayed upright for the given EXIF
    orientation value (0 and 1 leave it untouched).
    """
    if orientation in (0, 1):
        return image
    if orientation == 2:  # mirrored horizontally
        return image[:, ::-1].copy()
    if orientation == 3:  # rotated 180
        return np.rot90(image, 2).copy()
    if orientation == 4:  # mirrored vertically
        return image[::-1].copy()
    if orientation == 5:  # transposed
        return np.swapaxes(image, 0, 1).copy()
    if orientation == 6:  # rotated 90 clockwise
        return np.rot90(image, -1).copy()
    if orientation == 7:  # transversed
        return np.swapaxes(image[::-1, ::-1], 0, 1).copy()
    if orientation == 8:  # rotated 270 clockwise
        return np.rot90(image, 1).copy()
    raise ValueError(f"Invalid EXIF orientation {orientation}")


def read_image(path: Union[str, Path]) -> np.ndarray:
    """Reads an image as upright RGB (or RGBA) uint8, honouring its EXIF orientation."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    try:
        img = np.asarray(imageio.imread(path))
        if img.ndim == 2:  # Handle Grayscale
            img = cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
        elif img.shape[-1] == 2:  # Handle Grayscale + alpha
            img = cv2.cvtColor(img[..., 0], cv2.COLOR_GRAY2RGB)
        if img.dtype != np.uint8:
            img = cv2.normalize(img, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    except Exception as e:
        raise IOError(f"Error reading image at {path}: {e}")

    return apply_exif_orientation(img, read_exif_orientation(path))


def read_image_size(path: Union[str, Path]) -> Tuple[int, int]:
    """Returns the upright (width, height) of an image without decoding its pixels."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")
    try:
        with Image.open(path) as img:
            width, height = img.size
            orientation = int(img.getexif().get(EXIF_ORIENTATION_TAG, 1))
    except Exception as e:
        raise IOError(f"Error reading image header of {path}: {e}")

    if orientation in (5, 6, 7, 8):
        return height, width
    return width, height


def write_image(path: Union[str, Path], image: np.ndarray):
    """Writes an RGB(A) uint8 image to disk, creating parent directories as needed."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() in (".jpg", ".jpeg") and image.ndim == 3 and image.shape[-1] == 4:
            image = cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)  # JPEG has no alpha
        imageio.imwrite(path, image)
    except Exception as e:
        raise IOError(f"Error writing image to {path}: {e}")


def build_output_path(output_path: Union[str, Path], name: str) -> Path:
    """
    Resolves where a result should be written. A path with an image extension is
    used as is; anything else is treated as a directory that receives a
    timestamped `<name>_<millis>.jpg`.
    """
    output_path = Path(output_path)
    if output_path.suffix.lower() in IMG_EXTENSIONS:
        return output_path
    return output_path / f"{name}_{int(time.time() * 1000)}.jpg"
