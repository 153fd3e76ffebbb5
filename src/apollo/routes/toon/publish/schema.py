from __future__ import annotations

from pydantic import BaseModel, Field


class PublishRequest(BaseModel):
    episodeId: str = Field(min_length=1, max_length=128)


class PublishResponse(BaseModel):
    success: bool
    episodeId: str
    status: str
    publishedAt: str | None = None
    alreadyPublished: bool = False
