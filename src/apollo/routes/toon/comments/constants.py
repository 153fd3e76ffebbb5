"""Constants for anonymous comments."""
from __future__ import annotations

import re

ALLOWED_EMOJIS: tuple[str, ...] = (
    "😀", "😂", "🥹", "😍", "🥰", "😢", "😭", "😱", "🤯", "🤔",
    "👍", "👎", "❤️", "🔥", "✨", "👏", "🙌", "💯", "🎉", "😎",
)

MAX_COMMENT_LENGTH = 80
RATE_LIMIT_ACTION = "comment"

BANNED_WORDS: tuple[str, ...] = (
    "시발", "씨발", "병신", "지랄", "개새끼", "좆", "닥쳐", "썅", "미친년", "미친놈",
    "fuck", "shit", "bitch", "asshole", "dick", "pussy", "cunt",
)

URL_PATTERN = re.compile(r"(https?://|www\.|\.com|\.net|\.org|\.kr|\.io)", re.IGNORECASE)

# the same character five or more times in a row
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{4,}")

SPAM_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"카톡|카카오톡|텔레그램", re.IGNORECASE),
    re.compile(r"\d{3}[-\s]?\d{3,4}[-\s]?\d{4}"),
    re.compile(r"광고|홍보|할인|이벤트"),
)

UUID_V4_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
