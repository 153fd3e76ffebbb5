"""Single-panel image generation against the image model."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from google import genai

from apollo.genai_helper import build_user_contents, create_text_part
from apollo.log_config import logger
from apollo.routes.toon.storyboard.schema import GlobalStyle

from .constants import IMAGE_TEMPERATURE, NO_IMAGE_ERROR
from .parser import extract_inline_image
from .prompt import compose_panel_prompt
from .schema import AspectRatioType


@dataclass(frozen=True)
class PanelImageSuccess:
    index: int
    image_bytes: bytes
    mime_type: str


@dataclass(frozen=True)
class PanelImageFailure:
    index: int
    error: str


PanelImageResult = PanelImageSuccess | PanelImageFailure


def build_image_content_config(aspect_ratio: AspectRatioType) -> Any:
    return genai.types.GenerateContentConfig(
        response_modalities=["Text", "Image"],
        temperature=IMAGE_TEMPERATURE,
        image_config=genai.types.ImageConfig(aspect_ratio=aspect_ratio),
        candidate_count=1,
    )


async def generate_panel_image(
    client: Any,
    *,
    index: int,
    plan_text: str,
    global_style: GlobalStyle,
    aspect_ratio: AspectRatioType,
    reference_parts: list[Any],
    model: str,
) -> PanelImageResult:
    """Generate one panel image.

    Reference parts (framing text plus images) go first, the composed text
    prompt last. Every failure, including a response without an image, is
    returned as :class:`PanelImageFailure` and never raised.
    """
    try:
        prompt_text = compose_panel_prompt(
            plan_text,
            global_style,
            aspect_ratio,
            has_references=bool(reference_parts),
        )
        contents = build_user_contents([*reference_parts, create_text_part(prompt_text)])
        response = await client.aio.models.generate_content(
            model=model,
            contents=contents,
            config=build_image_content_config(aspect_ratio),
        )
        image = extract_inline_image(response)
        if image is None:
            logger.warning("Panel %s: %s", index, NO_IMAGE_ERROR)
            return PanelImageFailure(index=index, error=NO_IMAGE_ERROR)
        return PanelImageSuccess(index=index, image_bytes=image.data, mime_type=image.mime_type)
    except Exception as e:  # noqa: BLE001
        logger.error("Panel %s generation failed: %s", index, e)
        return PanelImageFailure(index=index, error=str(e) or type(e).__name__)
