from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any

from apollo.genai_helper import get_response_parts


@dataclass(frozen=True)
class InlineImage:
    data: bytes
    mime_type: str


def _inline_data(part: Any) -> Any:
    if isinstance(part, dict):
        return part.get("inlineData") or part.get("inline_data")
    return getattr(part, "inline_data", None)


def _decode(data: Any) -> bytes | None:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data) or None
    if isinstance(data, str) and data:
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError):
            return None
    return None


def extract_inline_image(response: Any) -> InlineImage | None:
    """First inline image of the first candidate, or ``None`` when the model returned none."""
    for part in get_response_parts(response):
        inline = _inline_data(part)
        if inline is None:
            continue
        if isinstance(inline, dict):
            data = inline.get("data")
            mime = inline.get("mimeType") or inline.get("mime_type")
        else:
            data = getattr(inline, "data", None)
            mime = getattr(inline, "mime_type", None)
        decoded = _decode(data)
        if decoded:
            return InlineImage(data=decoded, mime_type=mime or "image/png")
    return None
