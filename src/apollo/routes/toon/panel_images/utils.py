"""Utility functions for panel image generation."""
from __future__ import annotations

import io
from typing import Any

from PIL import Image

from apollo.genai_helper import create_inline_part, create_text_part
from apollo.log_config import logger

from .constants import ASPECT_RATIO_DIMENSIONS, REFERENCE_FRAMING_TEXT
from .references import ReferenceImage
from .schema import AspectRatioType


def _normalize_image(image_bytes: bytes, mime_type: str, aspect_ratio: AspectRatioType) -> tuple[bytes, str]:
    """Resize to the aspect ratio's pixel dimensions and re-encode as PNG.

    The model's raw bytes are returned unchanged when Pillow cannot decode them.
    """
    try:
        width, height = ASPECT_RATIO_DIMENSIONS[aspect_ratio]
        with Image.open(io.BytesIO(image_bytes)) as img:
            img = img.convert("RGBA")
            if img.size != (width, height):
                img = img.resize((width, height), Image.Resampling.LANCZOS)
            output = io.BytesIO()
            img.save(output, format="PNG", optimize=True)
            return output.getvalue(), "image/png"
    except Exception as exc:  # noqa: BLE001
        logger.warning("Failed to normalize panel image size: %s", exc)
        return image_bytes, mime_type


def _build_reference_parts(references: list[ReferenceImage]) -> list[Any]:
    """Framing text followed by one inline part per reference image; empty without references."""
    if not references:
        return []
    parts: list[Any] = [create_text_part(REFERENCE_FRAMING_TEXT)]
    parts.extend(create_inline_part(ref.data, ref.mime_type) for ref in references)
    return parts
