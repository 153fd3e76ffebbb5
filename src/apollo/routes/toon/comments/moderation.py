"""Rule-based comment moderation.

Moderation never rejects a comment. It only flags it, and flagged comments
are hidden from public listings.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .constants import BANNED_WORDS, REPEATED_CHAR_PATTERN, SPAM_PATTERNS, URL_PATTERN

FlagReason = Literal["banned_word", "url_detected", "repeated_chars", "spam_pattern"]


@dataclass(frozen=True)
class ModerationResult:
    flagged: bool
    reason: FlagReason | None = None


def moderate_content(text: str) -> ModerationResult:
    """Check ``text`` against the rules in order and report the first one that matches."""
    if not text:
        return ModerationResult(flagged=False)

    lowered = text.lower()
    if any(word.lower() in lowered for word in BANNED_WORDS):
        return ModerationResult(flagged=True, reason="banned_word")
    if URL_PATTERN.search(text):
        return ModerationResult(flagged=True, reason="url_detected")
    if REPEATED_CHAR_PATTERN.search(text):
        return ModerationResult(flagged=True, reason="repeated_chars")
    if any(pattern.search(text) for pattern in SPAM_PATTERNS):
        return ModerationResult(flagged=True, reason="spam_pattern")
    return ModerationResult(flagged=False)
