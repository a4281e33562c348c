# eztransfer/tiling.py
import math
from dataclasses import dataclass
from typing import Iterator, List

import numpy as np

from .errors import InvalidDimensions


@dataclass(frozen=True)
class Tile:
    """A square window of the content frame, sized to the transfer model input."""

    index: int
    row: int
    col: int
    origin_x: int
    origin_y: int
    width: int
    height: int
    fade_left: bool
    fade_top: bool

    @property
    def box(self):
        """(x1, y1, x2, y2) in frame coordinates, end-exclusive."""
        return (
            self.origin_x,
            self.origin_y,
            self.origin_x + self.width,
            self.origin_y + self.height,
        )


class TileGrid:
    """
    Tiles of a frame in row-major order (row ascending, then column ascending).
    The order is the compositing order used by the seam stitcher.
    """

    def __init__(
        self,
        frame_width: int,
        frame_height: int,
        tile_dim: int,
        overlap: int,
        rows: int,
        cols: int,
        tiles: List[Tile],
    ):
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.tile_dim = tile_dim
        self.overlap = overlap
        self.rows = rows
        self.cols = cols
        self.tiles = tiles

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.tiles)

    def __getitem__(self, index: int) -> Tile:
        return self.tiles[index]

    def coverage_map(self) -> np.ndarray:
        """Number of tiles covering each pixel of the frame, as an H x W int array."""
        coverage = np.zeros((self.frame_height, self.frame_width), dtype=np.int32)
        for tile in self.tiles:
            x1, y1, x2, y2 = tile.box
            coverage[y1:y2, x1:x2] += 1
        return coverage

    def __repr__(self) -> str:
        return (
            f"TileGrid(frame={self.frame_width}x{self.frame_height}, "
            f"tile_dim={self.tile_dim}, overlap={self.overlap}, "
            f"rows={self.rows}, cols={self.cols})"
        )


def _count_along_axis(length: int, tile_dim: int, overlap: int) -> int:
    stride = tile_dim - overlap
    return max(1, math.ceil((length - overlap) / stride))


def _origin_along_axis(index: int, length: int, tile_dim: int, overlap: int) -> int:
    # The last tile is shifted inward so that it stays full-size and in bounds.
    origin = index * (tile_dim - overlap)
    return max(0, min(origin, length - tile_dim))


def partition_frame(width: int, height: int, tile_dim: int, overlap: int) -> TileGrid:
    """
    Computes the grid of overlapping tiles covering a width x height frame.

    Args:
        width (int): Frame width in pixels.
        height (int): Frame height in pixels.
        tile_dim (int): Edge length of the square model input.
        overlap (int): Width of the blend band shared by neighbouring tiles.

    Returns:
        TileGrid: The tiles in row-major order.

    A frame smaller than tile_dim along an axis yields a single tile spanning
    that whole axis; the orchestrator pads it to the model input size.
    """
    if width <= 0 or height <= 0:
        raise InvalidDimensions(width, height, "frame is empty")
    if tile_dim <= 0:
        raise ValueError(f"tile_dim must be positive, got {tile_dim}")
    if not 0 <= overlap < tile_dim:
        raise ValueError(
            f"overlap must be in [0, tile_dim), got overlap={overlap}, tile_dim={tile_dim}"
        )

    cols = _count_along_axis(width, tile_dim, overlap)
    rows = _count_along_axis(height, tile_dim, overlap)
    tile_width = min(tile_dim, width)
    tile_height = min(tile_dim, height)

    tiles: List[Tile] = []
    for row in range(rows):
        origin_y = _origin_along_axis(row, height, tile_dim, overlap)
        for col in range(cols):
            origin_x = _origin_along_axis(col, width, tile_dim, overlap)
            tiles.append(
                Tile(
                    index=len(tiles),
                    row=row,
                    col=col,
                    origin_x=origin_x,
                    origin_y=origin_y,
                    width=tile_width,
                    height=tile_height,
                    fade_left=col > 0,
                    fade_top=row > 0,
                )
            )

    return TileGrid(width, height, tile_dim, overlap, rows, cols, tiles)
