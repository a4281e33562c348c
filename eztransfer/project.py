# eztransfer/project.py
from pathlib import Path
from typing import Optional

import yaml

from .config import MainConfig
from .data import ProjectData
from .engines.backends import ModelContext, load_model_context
from .pipeline import StyleTransferPipeline, TransferResult


class Project:
    def __init__(self, config_path: str, models: Optional[ModelContext] = None):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found at {config_path}")

        self.config = self._load_config()

        # 1. Initialize data manager
        self.data = ProjectData(self.config.project)

        # 2. Load the models, unless the caller supplies its own context
        self._owns_models = models is None
        self.models = models if models is not None else load_model_context(self.config.models)

        # 3. Initialize the style transfer pipeline
        self.pipeline = StyleTransferPipeline(
            self.models,
            tiling=self.config.tiling,
            model_config=self.config.models,
            pipeline_config=self.config.pipeline,
        )

    def _load_config(self) -> MainConfig:
        with open(self.config_path, "r", encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
        return MainConfig(**config_data)

    def run(self) -> TransferResult:
        """
        Runs the pipeline on the configured content and style images and saves
        the output. A failed job still writes the placeholder image, and the
        error is reported on the returned result.
        """
        print("\n--- Starting Style Transfer Pipeline ---")
        content = self.data.get_content_image()
        style = self.data.get_style_image()

        result = self.pipeline.run(content, style)
        self.data.save_output_image(result.image)

        if result.success:
            print("\n--- Project Execution Complete ---")
        else:
            print(f"\n--- Project Execution Failed: {result.error} ---")
        return result

    def close(self):
        if self._owns_models:
            self.models.close()
