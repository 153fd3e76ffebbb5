from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

AspectRatioType = Literal["4:5", "9:16", "1:1"]


class PanelImagesRequest(BaseModel):
    episodeId: str = Field(min_length=1)
    aspectRatio: AspectRatioType = "4:5"
    refImagePaths: list[str] | None = Field(default=None, max_length=5)
    indices: list[int] | None = None

    @field_validator("episodeId")
    @classmethod
    def _strip_episode_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "episodeId is required"
            raise ValueError(msg)
        return value

    @field_validator("indices")
    @classmethod
    def _non_negative(cls, value: list[int] | None) -> list[int] | None:
        if value is not None and any(index < 0 for index in value):
            msg = "indices must be non-negative integers"
            raise ValueError(msg)
        return value


class GeneratedPanel(BaseModel):
    index: int
    imagePath: str
    imageUrl: str


class PanelImagesResponse(BaseModel):
    success: bool
    episodeId: str
    generated: list[GeneratedPanel]
    failed: list[int]
    message: str
