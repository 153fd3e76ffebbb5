from __future__ import annotations

from pydantic import BaseModel


class PanelView(BaseModel):
    index: int
    imagePath: str
    imageUrl: str
    caption: str = ""


class GalleryItem(BaseModel):
    id: str
    title: str
    thumbPath: str | None = None
    thumbUrl: str | None = None
    panelCount: int
    publishedAt: str | None = None


class GalleryPage(BaseModel):
    items: list[GalleryItem]
    hasMore: bool
    lastId: str | None = None


class PublishedEpisode(BaseModel):
    id: str
    title: str
    summary: str = ""
    panels: list[PanelView]
    thumbUrl: str | None = None
    publishedAt: str | None = None
