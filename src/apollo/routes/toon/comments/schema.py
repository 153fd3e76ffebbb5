from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .constants import ALLOWED_EMOJIS, MAX_COMMENT_LENGTH, UUID_V4_PATTERN


class CommentRequest(BaseModel):
    episodeId: str = Field(min_length=1, max_length=128)
    emoji: str
    text: str = ""
    anonId: str

    @field_validator("emoji")
    @classmethod
    def _allowed_emoji(cls, value: str) -> str:
        if value not in ALLOWED_EMOJIS:
            msg = "Emoji is not allowed"
            raise ValueError(msg)
        return value

    @field_validator("text", mode="before")
    @classmethod
    def _trim_text(cls, value: object) -> object:
        if value is None:
            return ""
        if isinstance(value, str):
            value = value.strip()
            if len(value) > MAX_COMMENT_LENGTH:
                msg = f"Comment must be at most {MAX_COMMENT_LENGTH} characters"
                raise ValueError(msg)
        return value

    @field_validator("anonId")
    @classmethod
    def _uuid_v4(cls, value: str) -> str:
        if not UUID_V4_PATTERN.match(value):
            msg = "anonId must be a UUID v4"
            raise ValueError(msg)
        return value


class CommentResponse(BaseModel):
    success: bool
    commentId: str
    flagged: bool
    remainingMinute: int
    remainingDay: int


class CommentItem(BaseModel):
    id: str
    emoji: str
    text: str
    createdAt: str | None = None


class CommentListResponse(BaseModel):
    items: list[CommentItem]
