# eztransfer/engines/transfer_engine.py
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional

import numpy as np
from tqdm import tqdm

from ..consts import round_half_up
from ..errors import InferenceError, InferenceTimeout, JobCancelled, ShapeMismatch
from ..frame import Frame
from ..stitching import StyledTile
from ..tiling import Tile, TileGrid
from ..utils.timer import InferenceTimer
from .backends import ModelContext
from .base import BaseEngine
from .bottleneck_engine import StyleBottleneck


class TileTransferEngine(BaseEngine):
    """
    Runs the transfer stage over every tile of a grid, strictly in grid order,
    and reports progress after each tile.
    """

    def __init__(
        self,
        models: ModelContext,
        tile_dim: int,
        overlap: int,
        inference_timeout: Optional[float] = None,
        show_progress: bool = True,
        timer: Optional[InferenceTimer] = None,
    ):
        """
        Args:
            models (ModelContext): Provides the guarded transfer capability.
            tile_dim (int): Edge length of the square transfer-stage input.
            overlap (int): Blend band width, used to derive each tile's alpha.
            inference_timeout (Optional[float]): Per-tile limit in seconds. None waits forever.
            show_progress (bool): Display a tqdm progress bar over the tiles.
            timer (Optional[InferenceTimer]): Collects per-tile timings when given.
        """
        self.models = models
        self.tile_dim = tile_dim
        self.overlap = overlap
        self.inference_timeout = inference_timeout
        self.show_progress = show_progress
        self.timer = timer

    def compute(
        self,
        frame: Frame,
        grid: TileGrid,
        bottleneck: StyleBottleneck,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[StyledTile]:
        """
        Styles each tile of `grid` and returns the styled tiles in grid order.

        Cancellation is checked before every tile dispatch; a call that has
        already started is allowed to finish first. Any failure stops the loop
        and propagates, so no later tile is ever dispatched.
        """
        total = len(grid)
        styled_tiles: List[StyledTile] = []

        executor = None
        if self.inference_timeout is not None:
            executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tile-inference")

        try:
            for tile in tqdm(grid, desc="Styling tiles", disable=not self.show_progress):
                if cancel_event is not None and cancel_event.is_set():
                    raise JobCancelled(len(styled_tiles), total)

                styled_tiles.append(self._style_tile(frame, tile, bottleneck, executor))

                if progress_callback is not None:
                    progress_callback(round_half_up((tile.index + 1) * 100 / total))
        finally:
            if executor is not None:
                # A timed-out call cannot be interrupted, so do not wait for it.
                executor.shutdown(wait=False)

        return styled_tiles

    def _style_tile(
        self,
        frame: Frame,
        tile: Tile,
        bottleneck: StyleBottleneck,
        executor: Optional[ThreadPoolExecutor],
    ) -> StyledTile:
        pixels = frame.crop_rgb(tile.origin_x, tile.origin_y, tile.width, tile.height)
        model_input = self._pad_to_model_input(pixels)

        try:
            if self.timer is not None:
                with self.timer.time_operation("transfer"):
                    raw = self._infer(model_input, bottleneck, tile, executor)
            else:
                raw = self._infer(model_input, bottleneck, tile, executor)
            output = self._validate_output(raw, tile)
        except InferenceError as e:
            if e.tile_index is None:
                e.tile_index = tile.index
            raise

        return StyledTile.from_output(
            tile, output[: tile.height, : tile.width], self.overlap
        )

    def _pad_to_model_input(self, pixels: np.ndarray) -> np.ndarray:
        # Tiles of frames smaller than the model input are edge-padded to full
        # size; the output is cropped back to the tile afterwards.
        h, w = pixels.shape[:2]
        if (h, w) == (self.tile_dim, self.tile_dim):
            return pixels
        return np.pad(
            pixels,
            ((0, self.tile_dim - h), (0, self.tile_dim - w), (0, 0)),
            mode="edge",
        )

    def _infer(
        self,
        model_input: np.ndarray,
        bottleneck: StyleBottleneck,
        tile: Tile,
        executor: Optional[ThreadPoolExecutor],
    ):
        if executor is None:
            return self.models.transfer(model_input, bottleneck.vector)

        future = executor.submit(self.models.transfer, model_input, bottleneck.vector)
        try:
            return future.result(timeout=self.inference_timeout)
        except FutureTimeoutError as e:
            raise InferenceTimeout(
                f"Transfer of tile {tile.index} exceeded {self.inference_timeout}s",
                tile_index=tile.index,
            ) from e

    def _validate_output(self, raw, tile: Tile) -> np.ndarray:
        expected = (self.tile_dim, self.tile_dim, 3)
        try:
            output = np.asarray(raw, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InferenceError(
                f"Transfer stage returned a non-numeric result for tile {tile.index}: {e}",
                tile_index=tile.index,
            ) from e

        # A leading batch axis of 1 is accepted.
        if output.ndim == 4 and output.shape[0] == 1:
            output = output[0]
        if output.shape != expected:
            raise ShapeMismatch("styled tile", expected, output.shape, tile_index=tile.index)
        return output
