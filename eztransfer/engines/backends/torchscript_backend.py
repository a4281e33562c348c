# eztransfer/engines/backends/torchscript_backend.py
import os

import numpy as np
import torch

from ...config import ModelConfig
from .base import BaseModelBackend, ModelContext


def resolve_device(device: str = "auto") -> torch.device:
    if device == "auto":
        return torch.device("cuda" if torch.cuda.is_available() else "cpu")
    return torch.device(device)


class TorchScriptBackend(BaseModelBackend):
    """
    Runs the predict and transfer stages from two TorchScript modules.

    Both modules take NCHW float tensors in [0, 1]. The predict module maps a
    1 x 3 x S x S style image to a 1 x B x 1 x 1 bottleneck; the transfer module
    maps a 1 x 3 x T x T content tile and that bottleneck to a 1 x 3 x T x T
    stylized tile.
    """

    def __init__(self, model_config: ModelConfig):
        super().__init__()
        print(f"Initializing TorchScript backend (device: {model_config.device})...")
        self.device = resolve_device(model_config.device)
        self.predict_model = self._load_module(model_config.predict_model_path)
        self.transfer_model = self._load_module(model_config.transfer_model_path)
        print(f"TorchScript backend initialized on device: '{self.device}'")

    def _load_module(self, model_path: str) -> torch.jit.ScriptModule:
        if not os.path.exists(model_path):
            raise FileNotFoundError(f"Model file not found: '{model_path}'")
        module = torch.jit.load(model_path, map_location=self.device)
        module.eval()
        return module

    def _image_to_tensor(self, image: np.ndarray) -> torch.Tensor:
        # HWC float -> 1 x C x H x W
        array = np.array(image, dtype=np.float32, copy=True)
        return torch.from_numpy(array).permute(2, 0, 1).unsqueeze(0).to(self.device)

    def predict(self, style_image: np.ndarray) -> np.ndarray:
        with torch.no_grad():
            bottleneck = self.predict_model(self._image_to_tensor(style_image))
        return bottleneck.detach().cpu().numpy()

    def transfer(self, tile_image: np.ndarray, bottleneck: np.ndarray) -> np.ndarray:
        bottleneck_tensor = (
            torch.from_numpy(np.array(bottleneck, dtype=np.float32, copy=True))
            .view(1, -1, 1, 1)
            .to(self.device)
        )
        with torch.no_grad():
            styled = self.transfer_model(self._image_to_tensor(tile_image), bottleneck_tensor)
        # 1 x C x H x W -> H x W x C
        return styled[0].permute(1, 2, 0).detach().cpu().numpy()

    def close(self):
        print("Releasing TorchScript models from memory...")
        del self.predict_model
        del self.transfer_model
        if self.device.type == "cuda":
            torch.cuda.empty_cache()


def load_model_context(model_config: ModelConfig) -> ModelContext:
    """Builds the model context for the backend selected in the configuration."""
    if model_config.backend == "torchscript":
        backend = TorchScriptBackend(model_config)
    else:
        raise ValueError(f"Unsupported backend: {model_config.backend}")
    return ModelContext.from_backend(backend)
