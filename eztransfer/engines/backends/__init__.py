# eztransfer/engines/backends/__init__.py
from .base import BaseModelBackend, ModelContext
from .torchscript_backend import TorchScriptBackend, load_model_context, resolve_device

__all__ = [
    "BaseModelBackend",
    "ModelContext",
    "TorchScriptBackend",
    "load_model_context",
    "resolve_device",
]
