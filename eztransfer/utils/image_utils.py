# eztransfer/utils/image_utils.py
import cv2
import numpy as np


def _interpolation_for(src_shape, dst_size):
    # INTER_AREA for shrinking, INTER_LINEAR for enlarging
    src_h, src_w = src_shape[:2]
    dst_w, dst_h = dst_size
    if dst_w * dst_h < src_w * src_h:
        return cv2.INTER_AREA
    return cv2.INTER_LINEAR


def resize_to_square(image: np.ndarray, size: int) -> np.ndarray:
    """Resizes an image to size x size, ignoring its aspect ratio (model input)."""
    if image.shape[:2] == (size, size):
        return image
    return cv2.resize(
        image, (size, size), interpolation=_interpolation_for(image.shape, (size, size))
    )


def scale_image(image: np.ndarray, factor: float) -> np.ndarray:
    """Scales an image by `factor`, rounding the new size up to keep at least one pixel."""
    if factor == 1.0:
        return image
    h, w = image.shape[:2]
    new_w = max(1, int(np.ceil(w * factor)))
    new_h = max(1, int(np.ceil(h * factor)))
    print(f"Scaling image from ({w}x{h}) to ({new_w}x{new_h}).")
    return cv2.resize(
        image, (new_w, new_h), interpolation=_interpolation_for(image.shape, (new_w, new_h))
    )


def limit_max_dimension(image: np.ndarray, max_dimension: int) -> np.ndarray:
    """Downscales an image so that its longest side is at most `max_dimension`."""
    h, w = image.shape[:2]
    longest = max(h, w)
    if longest <= max_dimension:
        return image
    return scale_image(image, max_dimension / longest)


def to_float(image: np.ndarray) -> np.ndarray:
    """uint8 [0, 255] -> float32 [0, 1]"""
    return image.astype(np.float32) / 255.0


def to_uint8(image: np.ndarray) -> np.ndarray:
    """float [0, 1] -> uint8 [0, 255], truncating like the model output quantisation."""
    return (np.clip(image, 0.0, 1.0) * 255.0).astype(np.uint8)


def blend_with_original(
    original: np.ndarray, styled: np.ndarray, ratio: float
) -> np.ndarray:
    """
    Mixes the styled result back with the original content.

    Args:
        original: H x W x 3 uint8 content image.
        styled: H x W x 3 uint8 stylized image of the same size.
        ratio: Weight of the styled image in [0, 1]; 1.0 returns `styled` unchanged.
    """
    if not 0.0 <= ratio <= 1.0:
        raise ValueError(f"Blend ratio must be in [0, 1], got {ratio}")
    if original.shape != styled.shape:
        raise ValueError(
            f"Cannot blend images of different shapes: {original.shape} vs {styled.shape}"
        )
    if ratio == 1.0:
        return styled
    return cv2.addWeighted(styled, ratio, original, 1.0 - ratio, 0.0)
