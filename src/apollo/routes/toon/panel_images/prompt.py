from __future__ import annotations

from apollo.routes.toon.storyboard.schema import GlobalStyle

from .constants import ASPECT_RATIO_DIMENSIONS, BASE_NEGATIVES
from .schema import AspectRatioType


def _build_requirements(aspect_ratio: AspectRatioType, has_references: bool) -> list[str]:
    width, height = ASPECT_RATIO_DIMENSIONS[aspect_ratio]
    requirements = [
        "Clean, professional webtoon illustration style",
        "No text, speech bubbles, or captions in the image",
        f"Aspect ratio: {aspect_ratio} ({width}x{height})",
        "High quality, vibrant colors matching the palette",
        "Expressive character emotions and poses",
        "Simple, clean background that doesn't distract from the character",
    ]
    if has_references:
        requirements.append(
            "CRITICAL: The character must match the reference images provided exactly "
            "(same hair, eyes, face shape, clothing)"
        )
    return requirements


def _build_negatives(global_style: GlobalStyle) -> str:
    negatives = global_style.negatives.strip().rstrip(",")
    if not negatives:
        return BASE_NEGATIVES
    return f"{negatives}, {BASE_NEGATIVES}"


def compose_panel_prompt(
    panel_prompt: str,
    global_style: GlobalStyle,
    aspect_ratio: AspectRatioType,
    has_references: bool = True,
) -> str:
    """Build the text prompt for one panel image."""
    requirements = "\n".join(
        f"{number}. {line}"
        for number, line in enumerate(_build_requirements(aspect_ratio, has_references), start=1)
    )
    return f"""Generate a single panel image for an Instagram webtoon (인스타툰).

STYLE: {global_style.artStyle}
COLOR PALETTE: {global_style.colorPalette}
CAMERA GUIDANCE: {global_style.cameraRules}

SCENE DESCRIPTION:
{panel_prompt.strip()}

REQUIREMENTS:
{requirements}

AVOID: {_build_negatives(global_style)}"""
