from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

MAX_CAPTION_LENGTH = 30


class GlobalStyle(BaseModel):
    artStyle: str
    colorPalette: str
    cameraRules: str
    typographyRules: str = ""
    negatives: str = ""


class PanelPrompt(BaseModel):
    index: int = Field(ge=0)
    scene: str
    prompt: str
    captionDraft: str = Field(default="", max_length=MAX_CAPTION_LENGTH)


class StoryboardPlan(BaseModel):
    """Plan as returned by the text model."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    summary: str = ""
    global_: GlobalStyle = Field(alias="global")
    panels: list[PanelPrompt] = Field(min_length=1)

    def dump(self) -> dict:
        return self.model_dump(by_alias=True)


class FinalPrompt(StoryboardPlan):
    """Plan as persisted on the episode."""

    characterSheetDigest: str | None = None
    generatedAt: str | None = None


class StoryboardRequest(BaseModel):
    episodeId: str = Field(min_length=1, max_length=128)
    diaryText: str = Field(min_length=10, max_length=5000)
    panelCount: int = Field(default=4, ge=2, le=10)
    characterSheetText: str = Field(min_length=50, max_length=3000)
    refImagePaths: list[str] | None = Field(default=None, max_length=5)


class StoryboardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    episodeId: str
    finalPrompt: StoryboardPlan
    remaining: int
