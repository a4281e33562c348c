# eztransfer/stitching.py
"""
Seam stitching of styled tiles into one full-resolution image.

Each styled tile carries an alpha channel that fades its leading edges (left
when it is not in the first column, top when it is not in the first row) from
0 to opaque across the overlap band. Tiles are then drawn with plain
source-over compositing in row-major order, so every faded edge lands on a
neighbour that has already been drawn fully opaque there, and the overlap band
becomes a linear cross-fade between the two tiles.

The blend is encoded entirely in the per-tile alpha plus the draw order:
drawing tiles in any other order silently corrupts the seams, which is why
SeamStitcher.stitch refuses tiles that are not in row-major order.
"""

from typing import Iterable, List

import numpy as np

from .consts import ALPHA_OPAQUE, round_half_up
from .tiling import Tile
from .utils.image_utils import to_uint8


def compute_alpha_mask(
    width: int, height: int, overlap: int, fade_left: bool, fade_top: bool
) -> np.ndarray:
    """
    Builds the H x W uint8 alpha mask of a tile.

    With d_alpha = round(255 / overlap), alpha ramps as x * d_alpha across the
    first `overlap` columns when fade_left is set, and as y * d_alpha across the
    first `overlap` rows when fade_top is set. In the corner where both bands
    meet the smaller of the two ramps wins. Everything else is opaque.
    """
    alpha_left = np.full(width, ALPHA_OPAQUE, dtype=np.int32)
    alpha_top = np.full(height, ALPHA_OPAQUE, dtype=np.int32)

    if overlap > 0:
        d_alpha = round_half_up(ALPHA_OPAQUE / overlap)
        if fade_left:
            band = min(overlap, width)
            alpha_left[:band] = np.minimum(np.arange(band) * d_alpha, ALPHA_OPAQUE)
        if fade_top:
            band = min(overlap, height)
            alpha_top[:band] = np.minimum(np.arange(band) * d_alpha, ALPHA_OPAQUE)

    # Outside its band each ramp is opaque, so the minimum reproduces the
    # corner / top-band / left-band / interior cases in one step.
    alpha = np.minimum(alpha_top[:, None], alpha_left[None, :])
    return alpha.astype(np.uint8)


class StyledTile:
    """Output of the transfer model for one tile, quantised to 8 bits plus alpha."""

    def __init__(self, tile: Tile, pixels: np.ndarray, alpha: np.ndarray):
        if pixels.shape != (tile.height, tile.width, 3):
            raise ValueError(
                f"Styled tile pixels have shape {pixels.shape}, "
                f"expected {(tile.height, tile.width, 3)}"
            )
        if alpha.shape != (tile.height, tile.width):
            raise ValueError(
                f"Styled tile alpha has shape {alpha.shape}, "
                f"expected {(tile.height, tile.width)}"
            )
        self.tile = tile
        self.pixels = pixels
        self.alpha = alpha

    @classmethod
    def from_output(cls, tile: Tile, output: np.ndarray, overlap: int) -> "StyledTile":
        """Quantises a float [0, 1] model output (already cropped to the tile) and derives its alpha."""
        pixels = to_uint8(output)
        alpha = compute_alpha_mask(
            tile.width, tile.height, overlap, tile.fade_left, tile.fade_top
        )
        return cls(tile, pixels, alpha)

    def to_rgba(self) -> np.ndarray:
        return np.dstack([self.pixels, self.alpha])

    def __repr__(self) -> str:
        return f"StyledTile(index={self.tile.index}, row={self.tile.row}, col={self.tile.col})"


class Canvas:
    """
    Accumulation buffer for the stitched image. Starts fully transparent and is
    only ever modified through source-over composites.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        # Premultiplied colour and coverage, both in [0, 1].
        self._color = np.zeros((height, width, 3), dtype=np.float32)
        self._alpha = np.zeros((height, width, 1), dtype=np.float32)

    def composite(self, pixels: np.ndarray, alpha: np.ndarray, x: int, y: int):
        """Draws an RGB + alpha patch at (x, y) with source-over blending."""
        h, w = alpha.shape
        if x < 0 or y < 0 or x + w > self.width or y + h > self.height:
            raise ValueError(
                f"Patch {w}x{h} at ({x}, {y}) does not fit a {self.width}x{self.height} canvas"
            )

        src_alpha = alpha.astype(np.float32)[..., None] / 255.0
        src_color = pixels.astype(np.float32) / 255.0

        dst_color = self._color[y : y + h, x : x + w]
        dst_alpha = self._alpha[y : y + h, x : x + w]

        dst_color[...] = src_color * src_alpha + dst_color * (1.0 - src_alpha)
        dst_alpha[...] = src_alpha + dst_alpha * (1.0 - src_alpha)

    def coverage(self) -> np.ndarray:
        """Accumulated opacity per pixel, H x W float in [0, 1]."""
        return self._alpha[..., 0].copy()

    def to_image(self) -> np.ndarray:
        """Un-premultiplies the accumulated colour and returns an H x W x 3 uint8 image."""
        color = np.divide(
            self._color,
            self._alpha,
            out=np.zeros_like(self._color),
            where=self._alpha > 0,
        )
        return np.clip(np.rint(color * 255.0), 0, 255).astype(np.uint8)


class SeamStitcher:
    """Composites styled tiles, in grid order, onto a canvas of the frame's size."""

    def stitch(
        self, styled_tiles: Iterable[StyledTile], width: int, height: int
    ) -> np.ndarray:
        styled_tiles = list(styled_tiles)
        self._check_row_major(styled_tiles)

        canvas = Canvas(width, height)
        for styled in styled_tiles:
            canvas.composite(
                styled.pixels, styled.alpha, styled.tile.origin_x, styled.tile.origin_y
            )
        return canvas.to_image()

    @staticmethod
    def _check_row_major(styled_tiles: List[StyledTile]):
        keys = [(s.tile.row, s.tile.col) for s in styled_tiles]
        if any(a >= b for a, b in zip(keys, keys[1:])):
            raise ValueError(
                "Styled tiles must be composited in row-major grid order; got "
                f"{keys}"
            )
