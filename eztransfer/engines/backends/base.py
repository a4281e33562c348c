# eztransfer/engines/backends/base.py
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

import numpy as np

from ...errors import InferenceError, StyleTransferError


class BaseModelBackend(ABC):
    """
    Abstract base class for model backends. A backend provides the two stages of
    arbitrary style transfer: `predict` turns a style image into a bottleneck
    vector, `transfer` applies that bottleneck to one content tile.
    """

    def __init__(self):
        self.device = None  # To be set by subclasses

    @abstractmethod
    def predict(self, style_image: np.ndarray) -> np.ndarray:
        """
        Args:
            style_image: H x W x 3 float32 RGB image in [0, 1], already resized
                to the predict-stage input size.

        Returns:
            The raw style bottleneck tensor.
        """
        pass

    @abstractmethod
    def transfer(self, tile_image: np.ndarray, bottleneck: np.ndarray) -> np.ndarray:
        """
        Args:
            tile_image: tile_dim x tile_dim x 3 float32 RGB tile in [0, 1].
            bottleneck: 1-D float32 style bottleneck.

        Returns:
            The stylized tile as a tile_dim x tile_dim x 3 float tensor in [0, 1].
        """
        pass

    def close(self):
        """Releases the resources held by the backend."""
        pass


class ModelContext:
    """
    Owns the two long-lived model capabilities for the lifetime of a caller.

    Any pair of callables with the predict/transfer signatures of
    BaseModelBackend can be used, which keeps backends and test doubles
    interchangeable. Each stage is guarded by its own lock because the
    inference engines behind them are not guaranteed to be reentrant, so jobs
    running on different threads may share one context.
    """

    def __init__(
        self,
        predict: Callable,
        transfer: Callable,
        on_close: Optional[Callable[[], None]] = None,
    ):
        self._predict = predict
        self._transfer = transfer
        self._on_close = on_close
        self._predict_lock = threading.Lock()
        self._transfer_lock = threading.Lock()
        self._closed = False

    @classmethod
    def from_backend(cls, backend: BaseModelBackend) -> "ModelContext":
        return cls(backend.predict, backend.transfer, on_close=backend.close)

    @property
    def closed(self) -> bool:
        return self._closed

    def predict(self, style_image: np.ndarray):
        return self._guarded_call("predict", self._predict_lock, self._predict, style_image)

    def transfer(self, tile_image: np.ndarray, bottleneck: np.ndarray):
        return self._guarded_call(
            "transfer", self._transfer_lock, self._transfer, tile_image, bottleneck
        )

    def _guarded_call(self, stage: str, lock: threading.Lock, fn: Callable, *args):
        if self._closed:
            raise InferenceError(f"Cannot run the {stage} stage: model context is closed.")
        with lock:
            try:
                return fn(*args)
            except StyleTransferError:
                raise
            except Exception as e:
                raise InferenceError(f"{stage} model call failed: {e}") from e

    def close(self):
        if self._closed:
            return
        # Wait for in-flight calls before releasing the models.
        with self._predict_lock, self._transfer_lock:
            self._closed = True
            if self._on_close is not None:
                self._on_close()

    def __enter__(self) -> "ModelContext":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
