from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from conftest import random_image
from eztransfer.utils import io_utils
from eztransfer.utils.image_utils import blend_with_original, limit_max_dimension, scale_image

# 2 rows x 3 cols, one distinct value per pixel
GRID = np.arange(6, dtype=np.uint8).reshape(2, 3, 1)


def _save_with_orientation(path: Path, image: np.ndarray, orientation: int) -> None:
    exif = Image.Exif()
    exif[io_utils.EXIF_ORIENTATION_TAG] = orientation
    Image.fromarray(image).save(path, exif=exif.tobytes())


def test_png_round_trip(tmp_path) -> None:
    image = random_image(9, 13)
    path = tmp_path / "nested" / "frame.png"

    io_utils.write_image(path, image)

    np.testing.assert_array_equal(io_utils.read_image(path), image)


@pytest.mark.parametrize(
    "orientation,expected",
    [
        (1, [[0, 1, 2], [3, 4, 5]]),
        (2, [[2, 1, 0], [5, 4, 3]]),
        (3, [[5, 4, 3], [2, 1, 0]]),
        (4, [[3, 4, 5], [0, 1, 2]]),
        (5, [[0, 3], [1, 4], [2, 5]]),
        (6, [[3, 0], [4, 1], [5, 2]]),
        (7, [[5, 2], [4, 1], [3, 0]]),
        (8, [[2, 5], [1, 4], [0, 3]]),
    ],
)
def test_exif_orientation_makes_image_upright(orientation: int, expected) -> None:
    upright = io_utils.apply_exif_orientation(GRID, orientation)
    assert upright[..., 0].tolist() == expected


def test_invalid_orientation_is_rejected() -> None:
    with pytest.raises(ValueError):
        io_utils.apply_exif_orientation(GRID, 9)


def test_rotated_jpeg_is_read_upright(tmp_path) -> None:
    path = tmp_path / "portrait.jpg"
    _save_with_orientation(path, random_image(4, 6), orientation=6)

    assert io_utils.read_exif_orientation(path) == 6
    assert io_utils.read_image(path).shape == (6, 4, 3)
    assert io_utils.read_image_size(path) == (4, 6)


def test_image_size_without_orientation(tmp_path) -> None:
    path = tmp_path / "landscape.png"
    io_utils.write_image(path, random_image(5, 8))

    assert io_utils.read_exif_orientation(path) == 1
    assert io_utils.read_image_size(path) == (8, 5)


def test_grayscale_is_read_as_rgb(tmp_path) -> None:
    path = tmp_path / "gray.png"
    Image.fromarray(random_image(5, 7)[..., 0]).save(path)

    image = io_utils.read_image(path)

    assert image.shape == (5, 7, 3)
    assert np.array_equal(image[..., 0], image[..., 2])


def test_missing_image_raises(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        io_utils.read_image(tmp_path / "missing.png")
    with pytest.raises(FileNotFoundError):
        io_utils.read_image_size(tmp_path / "missing.png")


def test_output_path_with_extension_is_kept(tmp_path) -> None:
    target = tmp_path / "result.png"
    assert io_utils.build_output_path(target, "project") == target


def test_output_directory_gets_timestamped_name(tmp_path) -> None:
    target = io_utils.build_output_path(tmp_path, "project")

    assert target.parent == tmp_path
    assert target.suffix == ".jpg"
    prefix, millis = target.stem.rsplit("_", 1)
    assert prefix == "project"
    assert millis.isdigit()


def test_rgba_is_flattened_for_jpeg(tmp_path) -> None:
    path = tmp_path / "with_alpha.jpg"
    io_utils.write_image(path, random_image(8, 8, channels=4))

    assert io_utils.read_image(path).shape == (8, 8, 3)


def test_scale_image_rounds_size_up() -> None:
    scaled = scale_image(random_image(10, 15), 0.5)
    assert scaled.shape == (5, 8, 3)


def test_limit_max_dimension_keeps_aspect_ratio() -> None:
    image = random_image(40, 100)

    assert limit_max_dimension(image, 200) is image
    assert limit_max_dimension(image, 50).shape == (20, 50, 3)


def test_blend_with_original_mixes_linearly() -> None:
    original = np.full((2, 2, 3), 100, dtype=np.uint8)
    styled = np.full((2, 2, 3), 200, dtype=np.uint8)

    assert np.all(blend_with_original(original, styled, 0.25) == 125)
    assert blend_with_original(original, styled, 1.0) is styled
    with pytest.raises(ValueError):
        blend_with_original(original, styled[:1], 0.5)
