from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from apollo.routes.toon.storyboard.schema import MAX_CAPTION_LENGTH


class EpisodeSummary(BaseModel):
    id: str
    title: str
    status: str
    panelCount: int
    generatedCount: int
    thumbUrl: str | None = None
    updatedAt: str | None = None


class EpisodeListResponse(BaseModel):
    items: list[EpisodeSummary]


class EpisodeDetail(BaseModel):
    id: str
    title: str
    status: str
    diaryText: str
    panelCount: int
    finalPrompt: dict[str, Any] | None = None
    panels: list[dict[str, Any]]
    thumbPath: str | None = None
    thumbUrl: str | None = None
    createdAt: str | None = None
    updatedAt: str | None = None
    publishedAt: str | None = None


class CaptionEdit(BaseModel):
    index: int = Field(ge=0)
    caption: str = Field(max_length=MAX_CAPTION_LENGTH)

    @field_validator("caption")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class CaptionsUpdateRequest(BaseModel):
    captions: list[CaptionEdit] = Field(min_length=1)


class ReferenceUpload(BaseModel):
    image: str = Field(description="Base64 data URL (data:image/...;base64,...)")


class ReferenceView(BaseModel):
    path: str
    url: str
