import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .config import ModelConfig, PipelineConfig, TilingConfig
from .consts import (
    BOTTLENECK_SIZE,
    CONTENT_IMAGE_SIZE,
    FALLBACK_COLOR,
    OVERLAP_SIZE,
    SMALL_FRAME_PAD,
    STYLE_IMAGE_SIZE,
)
from .engines.backends import ModelContext, TorchScriptBackend
from .pipeline import StyleTransferPipeline, TransferResult


class RunConfig:
    """
    Bundles the common style transfer parameters for ease of use, so that the
    API can be driven without writing a YAML project file.
    """

    def __init__(
        self,
        tile_dim: int = CONTENT_IMAGE_SIZE,
        overlap: int = OVERLAP_SIZE,
        style_dim: int = STYLE_IMAGE_SIZE,
        bottleneck_length: int = BOTTLENECK_SIZE,
        small_frame_policy: str = SMALL_FRAME_PAD,
        blend_ratio: float = 1.0,
        fallback_color: Tuple[int, int, int] = FALLBACK_COLOR,
        inference_timeout: Optional[float] = None,
        min_dimension: int = 0,
        show_progress: bool = True,
        benchmark: bool = False,
    ):
        # Tiling params
        self.tile_dim = tile_dim
        self.overlap = overlap
        self.small_frame_policy = small_frame_policy

        # Model params
        self.style_dim = style_dim
        self.bottleneck_length = bottleneck_length

        # Pipeline params
        self.blend_ratio = blend_ratio
        self.fallback_color = fallback_color
        self.inference_timeout = inference_timeout
        self.min_dimension = min_dimension
        self.show_progress = show_progress
        self.benchmark = benchmark

    def tiling_config(self) -> TilingConfig:
        return TilingConfig(
            tile_dim=self.tile_dim,
            overlap=self.overlap,
            small_frame_policy=self.small_frame_policy,
        )

    def model_config(self, **overrides) -> ModelConfig:
        return ModelConfig(
            style_dim=self.style_dim,
            bottleneck_length=self.bottleneck_length,
            **overrides,
        )

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            blend_ratio=self.blend_ratio,
            fallback_color=self.fallback_color,
            inference_timeout=self.inference_timeout,
            min_dimension=self.min_dimension,
            show_progress=self.show_progress,
            benchmark=self.benchmark,
        )


class StyleTransfer:
    """
    A high-level API for tiled style transfer on in-memory images.

    The two model stages are given as plain callables (or loaded from
    TorchScript files with `from_model_files`) and live as long as this object.
    """

    def __init__(
        self,
        predict: Callable,
        transfer: Callable,
        config: Optional[RunConfig] = None,
        on_close: Optional[Callable[[], None]] = None,
        model_config: Optional[ModelConfig] = None,
    ):
        """
        Args:
            predict (Callable): style_image -> bottleneck.
            transfer (Callable): (tile_image, bottleneck) -> stylized tile.
            config (RunConfig): An object containing the tiling and pipeline parameters.
            on_close (Optional[Callable]): Called once when the models are released.
        """
        self.config = config or RunConfig()
        self.models = ModelContext(predict, transfer, on_close=on_close)
        self.pipeline = StyleTransferPipeline(
            self.models,
            tiling=self.config.tiling_config(),
            model_config=model_config or self.config.model_config(),
            pipeline_config=self.config.pipeline_config(),
        )

    @classmethod
    def from_model_files(
        cls,
        predict_model_path: str,
        transfer_model_path: str,
        config: Optional[RunConfig] = None,
        device: str = "auto",
    ) -> "StyleTransfer":
        config = config or RunConfig()
        model_config = config.model_config(
            predict_model_path=predict_model_path,
            transfer_model_path=transfer_model_path,
            device=device,
        )
        backend = TorchScriptBackend(model_config)
        return cls(
            backend.predict,
            backend.transfer,
            config=config,
            on_close=backend.close,
            model_config=model_config,
        )

    def run(
        self,
        content: np.ndarray,
        style_image: np.ndarray,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> TransferResult:
        """
        Styles one content image.

        Returns:
            TransferResult: `image` holds the stylized RGB image, or a placeholder
                of the same size when `error` is set.
        """
        return self.pipeline.run(
            content,
            style_image,
            progress_callback=progress_callback,
            cancel_event=cancel_event,
        )

    def run_batch(
        self,
        contents: Sequence[np.ndarray],
        style_image: np.ndarray,
        max_workers: int = 2,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[TransferResult]:
        """
        Styles several content images as independent concurrent jobs. Model calls
        are serialised by the shared model context. Results keep the input order.
        """
        if not contents:
            return []

        with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(contents)))) as pool:
            futures = [
                pool.submit(self.run, content, style_image, None, cancel_event)
                for content in contents
            ]
            return [future.result() for future in futures]

    def close(self):
        self.models.close()

    def __enter__(self) -> "StyleTransfer":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
