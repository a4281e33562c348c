# eztransfer/pipeline.py
import threading
from typing import Callable, List, Optional

import numpy as np

from .config import ModelConfig, PipelineConfig, TilingConfig
from .consts import SMALL_FRAME_REJECT
from .engines.backends import ModelContext
from .engines.bottleneck_engine import BottleneckEngine
from .engines.transfer_engine import TileTransferEngine
from .errors import InvalidDimensions, StyleTransferError
from .frame import Frame, make_placeholder
from .stitching import SeamStitcher
from .tiling import partition_frame
from .utils.image_utils import blend_with_original
from .utils.timer import InferenceTimer


class TransferResult:
    """
    Outcome of one style-transfer job. On failure `image` is a flat placeholder
    of the requested size and `error` holds the exception that aborted the job.
    """

    def __init__(
        self,
        image: np.ndarray,
        error: Optional[StyleTransferError] = None,
        progress: Optional[List[int]] = None,
    ):
        self.image = image
        self.error = error
        self.progress = progress if progress is not None else []

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error

    def __repr__(self) -> str:
        h, w = self.image.shape[:2]
        status = "ok" if self.success else f"failed: {self.error!r}"
        return f"TransferResult({w}x{h}, {status})"


class StyleTransferPipeline:
    """
    Orchestrates one style-transfer job: validate the content frame, partition it
    into tiles, extract the style bottleneck once, style every tile in grid order
    and stitch the tiles back together. Any failure yields a placeholder image.
    """

    def __init__(
        self,
        models: ModelContext,
        tiling: Optional[TilingConfig] = None,
        model_config: Optional[ModelConfig] = None,
        pipeline_config: Optional[PipelineConfig] = None,
    ):
        self.models = models
        self.tiling = tiling or TilingConfig()
        self.model_config = model_config or ModelConfig()
        self.config = pipeline_config or PipelineConfig()

        self.timer = InferenceTimer() if self.config.benchmark else None
        self.bottleneck_engine = BottleneckEngine(
            models,
            style_dim=self.model_config.style_dim,
            bottleneck_length=self.model_config.bottleneck_length,
            timer=self.timer,
        )
        self.transfer_engine = TileTransferEngine(
            models,
            tile_dim=self.tiling.tile_dim,
            overlap=self.tiling.overlap,
            inference_timeout=self.config.inference_timeout,
            show_progress=self.config.show_progress,
            timer=self.timer,
        )
        self.stitcher = SeamStitcher()

    def run(
        self,
        content,
        style_image,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TransferResult:
        """
        Main entry point for a single job.

        Args:
            content: H x W x 3/4 uint8 RGB(A) content image (array or Frame). Never modified.
            style_image: H x W x 3/4 uint8 RGB(A) style reference.
            progress_callback: Receives an integer percentage after each tile.
            cancel_event: When set, the job stops before dispatching the next tile.

        Returns:
            TransferResult: The stitched image, or a placeholder plus the error.
        """
        progress: List[int] = []

        def _report(value: int):
            progress.append(value)
            if progress_callback is not None:
                progress_callback(value)

        if self.timer is not None:
            self.timer.reset()

        try:
            frame = self._load_frame(content)
            image = self._run_job(frame, style_image, _report, cancel_event)
        except StyleTransferError as e:
            print(f"[ERROR] Style transfer aborted: {e}")
            width, height = _requested_size(content)
            placeholder = make_placeholder(width, height, self.config.fallback_color)
            return TransferResult(placeholder, error=e, progress=progress)

        if self.timer is not None:
            self.timer.print_summary()
        return TransferResult(image, progress=progress)

    def _run_job(
        self,
        frame: Frame,
        style_image,
        report: Callable[[int], None],
        cancel_event: Optional[threading.Event],
    ) -> np.ndarray:
        self._validate_frame(frame)

        grid = partition_frame(
            frame.width, frame.height, self.tiling.tile_dim, self.tiling.overlap
        )
        print(
            f"Styling {frame.width}x{frame.height} image in {len(grid)} tiles "
            f"({grid.rows} rows x {grid.cols} cols)."
        )

        # Computed once and shared read-only by every tile of this job.
        bottleneck = self.bottleneck_engine.compute(style_image)

        styled_tiles = self.transfer_engine.compute(
            frame, grid, bottleneck, progress_callback=report, cancel_event=cancel_event
        )
        image = self.stitcher.stitch(styled_tiles, frame.width, frame.height)

        if self.config.blend_ratio < 1.0:
            image = blend_with_original(frame.to_rgb(), image, self.config.blend_ratio)
        return image

    @staticmethod
    def _load_frame(content) -> Frame:
        try:
            return Frame.from_array(content)
        except (TypeError, ValueError) as e:
            width, height = _requested_size(content)
            raise InvalidDimensions(width, height, f"unusable content image: {e}") from e

    def _validate_frame(self, frame: Frame):
        frame.validate(self.config.min_dimension)
        tile_dim = self.tiling.tile_dim
        if frame.width >= tile_dim and frame.height >= tile_dim:
            return
        if self.tiling.small_frame_policy == SMALL_FRAME_REJECT:
            raise InvalidDimensions(
                frame.width,
                frame.height,
                f"frame is smaller than one {tile_dim}x{tile_dim} tile",
            )
        print(
            f"[WARNING] Frame {frame.width}x{frame.height} is smaller than the "
            f"{tile_dim}x{tile_dim} model input. Its tiles will be edge-padded."
        )


def _requested_size(content):
    """(width, height) of whatever the caller passed, (0, 0) when it has no 2-D extent."""
    if isinstance(content, Frame):
        return content.size
    try:
        shape = np.shape(content)
    except ValueError:  # ragged nested sequences
        return 0, 0
    if len(shape) < 2:
        return 0, 0
    return int(shape[1]), int(shape[0])
