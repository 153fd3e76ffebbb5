"""Constants and configuration for panel image generation."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .schema import AspectRatioType

DEFAULT_ASPECT_RATIO: "AspectRatioType" = "4:5"
MAX_REFERENCE_IMAGES = 5
IMAGE_TEMPERATURE = 1.0
RATE_LIMIT_ACTION = "generatePanelImages"

# Pixel dimensions the image model supports per aspect ratio
ASPECT_RATIO_DIMENSIONS: dict[str, tuple[int, int]] = {
    "4:5": (896, 1120),
    "9:16": (768, 1344),
    "1:1": (1024, 1024),
}

REFERENCE_FRAMING_TEXT = (
    "These are character reference images. The generated image MUST depict the SAME character "
    "with identical appearance (hair style, hair color, face shape, eye shape, clothing style):"
)

# Always appended to the style negatives
BASE_NEGATIVES = "text, watermarks, signatures, blurry, low quality"

NO_IMAGE_ERROR = "No image returned from model"
