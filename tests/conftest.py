from __future__ import annotations

import threading
import time
from typing import Optional

import numpy as np
import pytest

from eztransfer.config import ModelConfig, PipelineConfig, TilingConfig
from eztransfer.engines.backends import ModelContext
from eztransfer.pipeline import StyleTransferPipeline

TILE_DIM = 16
OVERLAP = 4
STYLE_DIM = 8
BOTTLENECK_LENGTH = 8


class FakeStyleModels:
    """Deterministic stand-in for the predict and transfer stages that records every call."""

    def __init__(
        self,
        bottleneck_length: int = BOTTLENECK_LENGTH,
        fail_on_tile: Optional[int] = None,
        transfer_shape: Optional[tuple] = None,
        predict_shape: Optional[tuple] = None,
        predict_error: Optional[Exception] = None,
        delay: float = 0.0,
    ) -> None:
        self.bottleneck_length = bottleneck_length
        self.fail_on_tile = fail_on_tile
        self.transfer_shape = transfer_shape
        self.predict_shape = predict_shape
        self.predict_error = predict_error
        self.delay = delay
        self.style_inputs: list[np.ndarray] = []
        self.transfer_inputs: list[np.ndarray] = []
        self.bottlenecks_seen: list[np.ndarray] = []
        self._lock = threading.Lock()

    @property
    def predict_calls(self) -> int:
        return len(self.style_inputs)

    @property
    def transfer_calls(self) -> int:
        return len(self.transfer_inputs)

    def predict(self, style_image: np.ndarray) -> np.ndarray:
        with self._lock:
            self.style_inputs.append(style_image.copy())
        if self.predict_error is not None:
            raise self.predict_error
        means = style_image.mean(axis=(0, 1))
        vector = np.resize(means, self.bottleneck_length).astype(np.float32)
        shape = self.predict_shape or (1, 1, 1, self.bottleneck_length)
        return np.resize(vector, shape)

    def transfer(self, tile_image: np.ndarray, bottleneck: np.ndarray) -> np.ndarray:
        with self._lock:
            index = len(self.transfer_inputs)
            self.transfer_inputs.append(tile_image.copy())
            self.bottlenecks_seen.append(np.array(bottleneck))
        if self.delay:
            time.sleep(self.delay)
        if self.fail_on_tile is not None and index == self.fail_on_tile:
            raise RuntimeError("delegate crashed while running the transfer model")
        if self.transfer_shape is not None:
            return np.zeros(self.transfer_shape, dtype=np.float32)
        return np.clip(1.0 - tile_image * (0.5 + float(bottleneck[0]) / 2.0), 0.0, 1.0)


def identity_transfer(tile_image: np.ndarray, bottleneck: np.ndarray) -> np.ndarray:
    del bottleneck
    return tile_image


def make_pipeline(
    models,
    tile_dim: int = TILE_DIM,
    overlap: int = OVERLAP,
    small_frame_policy: str = "pad",
    transfer=None,
    **pipeline_kwargs,
) -> StyleTransferPipeline:
    pipeline_kwargs.setdefault("show_progress", False)
    context = ModelContext(models.predict, transfer or models.transfer)
    return StyleTransferPipeline(
        context,
        tiling=TilingConfig(
            tile_dim=tile_dim, overlap=overlap, small_frame_policy=small_frame_policy
        ),
        model_config=ModelConfig(style_dim=STYLE_DIM, bottleneck_length=BOTTLENECK_LENGTH),
        pipeline_config=PipelineConfig(**pipeline_kwargs),
    )


def random_image(height: int, width: int, channels: int = 3, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)


@pytest.fixture
def fake_models() -> FakeStyleModels:
    return FakeStyleModels()


@pytest.fixture
def style_image() -> np.ndarray:
    return random_image(20, 30, seed=42)
