# eztransfer/consts.py
"""
Constants and configuration defaults for the eztransfer library.
Centralized location for model sizes and numeric helpers shared by the tiling,
inference and stitching stages.
"""

import math

# --- Model Input/Output Sizes ---
STYLE_IMAGE_SIZE = 256  # predict-stage input (square)
CONTENT_IMAGE_SIZE = 384  # transfer-stage input (square), i.e. the tile edge
BOTTLENECK_SIZE = 100  # length of the style descriptor vector
OVERLAP_SIZE = 50  # width of the blend band between neighbouring tiles

# --- Default Model Files ---
STYLE_PREDICT_MODEL = "models/style_predict_256.pt"
STYLE_TRANSFER_MODEL = "models/style_transfer_384.pt"

# --- Alpha Channel ---
ALPHA_OPAQUE = 255

# --- Fallback ---
# Flat colour (RGB) used for the placeholder image when a job fails.
FALLBACK_COLOR = (0, 0, 0)

# --- Small Frame Policies ---
SMALL_FRAME_PAD = "pad"
SMALL_FRAME_REJECT = "reject"


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, with .5 always rounding away from zero for positives."""
    return int(math.floor(value + 0.5))
