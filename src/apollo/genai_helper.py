"""Common helper functions for Google GenAI integration."""
from __future__ import annotations

from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from google import genai

from apollo.auth.dependencies import get_config
from apollo.config import ApolloConfig
from apollo.log_config import logger

_client: Any | None = None


def _get_gemini_api_key(config: ApolloConfig) -> str:
    provider_cfg = config.providers.get("gemini", {})
    api_key = provider_cfg.get("api_key")
    if not api_key or not isinstance(api_key, str):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Gemini provider api_key is not configured",
        )
    return api_key


def create_genai_client(config: ApolloConfig) -> Any:
    """Create and return a genai Client instance."""
    return genai.Client(api_key=_get_gemini_api_key(config))


def set_genai_client(client: Any | None) -> None:
    """Replace the shared client (``None`` forces re-creation from config)."""
    global _client  # noqa: PLW0603
    _client = client


def get_genai_client(config: Annotated[ApolloConfig, Depends(get_config)]) -> Any:
    """Dependency returning the shared genai client, created on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = create_genai_client(config)
        logger.info("Created genai client")
    return _client


def create_text_part(text: str) -> Any:
    return genai.types.Part.from_text(text=text)


def create_inline_part(data: bytes, mime_type: str) -> Any:
    return genai.types.Part.from_bytes(data=data, mime_type=mime_type)


def build_user_contents(parts: list[Any]) -> list[Any]:
    """Wrap parts as a single user turn."""
    return [genai.types.Content(role="user", parts=parts)]


def _field(value: Any, *names: str) -> Any:
    """Read the first present attribute or mapping key from ``names``."""
    for name in names:
        if isinstance(value, dict):
            if name in value:
                return value[name]
        else:
            found = getattr(value, name, None)
            if found is not None:
                return found
    return None


def get_response_parts(response: Any) -> list[Any]:
    """Get content parts of the first candidate of a Gemini response."""
    candidates = _field(response, "candidates") or []
    if not candidates:
        return []
    content = _field(candidates[0], "content")
    if content is None:
        return []
    return list(_field(content, "parts") or [])


def get_response_text(response: Any) -> str:
    """Extract text from a genai response, preferring the SDK's ``text`` accessor."""
    try:
        text = getattr(response, "text", None)
    except (ValueError, AttributeError):
        text = None
    if isinstance(response, dict):
        text = response.get("text")
    if isinstance(text, str) and text.strip():
        return text.strip()
    fragments: list[str] = []
    for part in get_response_parts(response):
        value = _field(part, "text")
        if isinstance(value, str) and value.strip():
            fragments.append(value.strip())
    return "\n".join(fragments).strip()
