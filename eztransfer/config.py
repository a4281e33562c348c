from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator

from .consts import (
    BOTTLENECK_SIZE,
    CONTENT_IMAGE_SIZE,
    FALLBACK_COLOR,
    OVERLAP_SIZE,
    SMALL_FRAME_PAD,
    SMALL_FRAME_REJECT,
    STYLE_IMAGE_SIZE,
    STYLE_PREDICT_MODEL,
    STYLE_TRANSFER_MODEL,
)


class ProjectConfig(BaseModel):
    name: str = "DefaultProject"
    # --- REQUIRED PATHS ---
    content_path: str
    style_path: str
    output_path: str
    # --- OPTIONAL ---
    # Downscale factor applied to the content photo before styling (1.0 keeps it as is)
    content_scale: float = Field(1.0, gt=0.0, le=1.0)
    # Content larger than this along its longest side is downscaled first. None disables.
    max_dimension: Optional[int] = Field(None, gt=0)


class TilingConfig(BaseModel):
    tile_dim: int = Field(CONTENT_IMAGE_SIZE, gt=0)
    overlap: int = Field(OVERLAP_SIZE, ge=0)
    small_frame_policy: str = SMALL_FRAME_PAD  # 'pad' or 'reject'

    @field_validator("overlap")
    @classmethod
    def overlap_must_be_smaller_than_tile(cls, v, info):
        tile_dim = info.data.get("tile_dim")
        if tile_dim is not None and v >= tile_dim:
            raise ValueError(
                f"overlap ({v}) must be smaller than tile_dim ({tile_dim})"
            )
        return v

    @field_validator("small_frame_policy")
    @classmethod
    def small_frame_policy_must_be_valid(cls, v):
        if v not in [SMALL_FRAME_PAD, SMALL_FRAME_REJECT]:
            raise ValueError("small_frame_policy must be 'pad' or 'reject'")
        return v


class ModelConfig(BaseModel):
    backend: str = "torchscript"
    predict_model_path: str = STYLE_PREDICT_MODEL
    transfer_model_path: str = STYLE_TRANSFER_MODEL
    style_dim: int = Field(STYLE_IMAGE_SIZE, gt=0)
    bottleneck_length: int = Field(BOTTLENECK_SIZE, gt=0)
    device: str = "auto"  # 'auto', 'cpu', 'cuda', 'cuda:1', ...

    @field_validator("backend")
    @classmethod
    def backend_must_be_valid(cls, v):
        if v not in ["torchscript"]:
            raise ValueError("backend must be 'torchscript'")
        return v


class PipelineConfig(BaseModel):
    # 1.0 keeps the styled image, 0.0 returns the original content
    blend_ratio: float = Field(1.0, ge=0.0, le=1.0)
    fallback_color: Tuple[int, int, int] = FALLBACK_COLOR
    # Per-tile inference timeout in seconds. None disables the timeout.
    inference_timeout: Optional[float] = Field(None, gt=0.0)
    min_dimension: int = Field(0, ge=0)
    show_progress: bool = True
    benchmark: bool = False

    @field_validator("fallback_color")
    @classmethod
    def fallback_color_must_be_8bit(cls, v):
        if any(c < 0 or c > 255 for c in v):
            raise ValueError("fallback_color channels must be in [0, 255]")
        return v


class MainConfig(BaseModel):
    project: ProjectConfig
    tiling: TilingConfig = Field(default_factory=TilingConfig)
    models: ModelConfig = Field(default_factory=ModelConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
