from pathlib import Path
from typing import Optional

import numpy as np

from eztransfer.utils import io_utils
from eztransfer.utils.image_utils import limit_max_dimension, scale_image

from .config import ProjectConfig


class ProjectData:
    """
    Manages all data loading and saving for an eztransfer project.
    Acts as the single source of truth for all file I/O operations.
    """

    def __init__(self, config: ProjectConfig):
        self.config = config

        self.content_path = Path(config.content_path)
        self.style_path = Path(config.style_path)
        self.output_path = Path(config.output_path)

        print("Data Manager Initialized:")
        print(f"  - Content: {self.content_path}")
        print(f"  - Style: {self.style_path}")
        print(f"  - Output: {self.output_path}")

        self._content_image: Optional[np.ndarray] = None
        self._style_image: Optional[np.ndarray] = None

    def get_content_image(self, force_reload: bool = False) -> np.ndarray:
        """Loads, downscales as configured, and caches the content photo."""
        if self._content_image is None or force_reload:
            image = io_utils.read_image(self.content_path)
            image = scale_image(image, self.config.content_scale)
            if self.config.max_dimension is not None:
                image = limit_max_dimension(image, self.config.max_dimension)
            self._content_image = image
        return self._content_image

    def get_style_image(self, force_reload: bool = False) -> np.ndarray:
        """Loads and caches the style reference image."""
        if self._style_image is None or force_reload:
            self._style_image = io_utils.read_image(self.style_path)
        return self._style_image

    def save_output_image(self, image: np.ndarray) -> Path:
        """Writes the final image and returns the path it was written to."""
        target = io_utils.build_output_path(self.output_path, self.config.name)
        io_utils.write_image(target, image)
        print(f"Output saved to: {target}")
        return target
