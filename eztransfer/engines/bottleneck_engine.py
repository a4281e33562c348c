# eztransfer/engines/bottleneck_engine.py
from typing import Optional

import cv2
import numpy as np

from ..errors import InferenceError, ShapeMismatch
from ..frame import Frame
from ..utils.image_utils import resize_to_square, to_float
from ..utils.timer import InferenceTimer
from .backends import ModelContext
from .base import BaseEngine


class StyleBottleneck:
    """Immutable style descriptor shared read-only by every tile of one job."""

    def __init__(self, vector: np.ndarray):
        vector = np.array(vector, dtype=np.float32, copy=True).reshape(-1)
        vector.flags.writeable = False
        self._vector = vector

    @property
    def vector(self) -> np.ndarray:
        return self._vector

    def __len__(self) -> int:
        return self._vector.shape[0]

    def __eq__(self, other) -> bool:
        if not isinstance(other, StyleBottleneck):
            return NotImplemented
        return np.array_equal(self._vector, other._vector)

    def __repr__(self) -> str:
        return f"StyleBottleneck(length={len(self)})"


class BottleneckEngine(BaseEngine):
    """
    Runs the predict stage on a style reference image. Called once per job; the
    resulting bottleneck is reused unchanged by every tile transfer call.
    """

    def __init__(
        self,
        models: ModelContext,
        style_dim: int,
        bottleneck_length: int,
        timer: Optional[InferenceTimer] = None,
    ):
        self.models = models
        self.style_dim = style_dim
        self.bottleneck_length = bottleneck_length
        self.timer = timer

    def prepare_style_image(self, style_image) -> np.ndarray:
        """Resizes the style reference to the predict-stage input and normalises it to [0, 1]."""
        try:
            style = Frame.from_array(style_image)
        except (TypeError, ValueError) as e:
            raise InferenceError(f"Style image cannot be used for extraction: {e}") from e
        style.validate()
        try:
            resized = resize_to_square(style.to_rgb(), self.style_dim)
        except cv2.error as e:
            raise InferenceError(f"Style image could not be resized: {e}") from e
        return to_float(resized)

    def compute(self, style_image) -> StyleBottleneck:
        """
        Args:
            style_image: H x W x 3/4 uint8 RGB(A) style reference (array or Frame).

        Returns:
            StyleBottleneck: The style descriptor of length `bottleneck_length`.
        """
        style_input = self.prepare_style_image(style_image)

        if self.timer is not None:
            with self.timer.time_operation("predict"):
                raw = self.models.predict(style_input)
        else:
            raw = self.models.predict(style_input)

        return StyleBottleneck(self._validate(raw))

    def _validate(self, raw) -> np.ndarray:
        try:
            output = np.asarray(raw, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise InferenceError(f"Predict stage returned a non-numeric result: {e}") from e

        # Batch and spatial singleton axes (e.g. 1 x 1 x 1 x B) are accepted.
        non_singleton = [d for d in output.shape if d != 1]
        valid = non_singleton == [self.bottleneck_length] or (
            self.bottleneck_length == 1 and output.size == 1
        )
        if not valid:
            raise ShapeMismatch("style bottleneck", (self.bottleneck_length,), output.shape)
        if not np.all(np.isfinite(output)):
            raise InferenceError("Predict stage returned non-finite values.")
        return output.reshape(-1)
