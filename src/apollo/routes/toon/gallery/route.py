"""Public, read-only views of published episodes and their comments."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from apollo.db import EPISODE_STATUS_PUBLISHED, Comment, Episode, get_db
from apollo.routes.toon.comments.schema import CommentItem, CommentListResponse
from apollo.storage import BlobStore, get_blob_store

from .schema import GalleryItem, GalleryPage, PanelView, PublishedEpisode

router = APIRouter(prefix="/v1/gallery", tags=["gallery"])


def panel_views(panels: list[dict[str, Any]], blob_store: BlobStore) -> list[PanelView]:
    return [
        PanelView(
            index=panel["index"],
            imagePath=panel["imagePath"],
            imageUrl=blob_store.public_url(panel["imagePath"]),
            caption=panel.get("caption") or "",
        )
        for panel in panels
        if panel.get("imagePath")
    ]


def _thumb_url(episode: Episode, blob_store: BlobStore) -> str | None:
    return blob_store.public_url(episode.thumb_path) if episode.thumb_path else None


def _load_published(db: Session, episode_id: str) -> Episode:
    episode = db.get(Episode, episode_id)
    if episode is None or not episode.is_published:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Episode not found",
        )
    return episode


@router.get("/episodes", response_model=GalleryPage)
async def list_published_episodes(
    limit: int = Query(default=20, ge=1, le=50),
    cursor: str | None = Query(default=None),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> GalleryPage:
    """Published episodes, newest first. ``cursor`` is the ``lastId`` of the previous page."""
    query = db.query(Episode).filter(Episode.status == EPISODE_STATUS_PUBLISHED)
    if cursor:
        anchor = db.get(Episode, cursor)
        if anchor is None or not anchor.is_published or anchor.published_at is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid cursor",
            )
        query = query.filter(
            or_(
                Episode.published_at < anchor.published_at,
                and_(Episode.published_at == anchor.published_at, Episode.id < anchor.id),
            )
        )
    rows = query.order_by(Episode.published_at.desc(), Episode.id.desc()).limit(limit + 1).all()

    has_more = len(rows) > limit
    rows = rows[:limit]
    items = [
        GalleryItem(
            id=episode.id,
            title=episode.title,
            thumbPath=episode.thumb_path,
            thumbUrl=_thumb_url(episode, blob_store),
            panelCount=len(episode.panels or []),
            publishedAt=episode.published_at.isoformat() if episode.published_at else None,
        )
        for episode in rows
    ]
    return GalleryPage(items=items, hasMore=has_more, lastId=rows[-1].id if rows else None)


@router.get("/episodes/{episode_id}", response_model=PublishedEpisode)
async def get_published_episode(
    episode_id: str,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> PublishedEpisode:
    episode = _load_published(db, episode_id)
    summary = (episode.final_prompt or {}).get("summary") or ""
    return PublishedEpisode(
        id=episode.id,
        title=episode.title,
        summary=summary,
        panels=panel_views(episode.panels or [], blob_store),
        thumbUrl=_thumb_url(episode, blob_store),
        publishedAt=episode.published_at.isoformat() if episode.published_at else None,
    )


@router.get("/episodes/{episode_id}/comments", response_model=CommentListResponse)
async def list_comments(
    episode_id: str,
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_db),
) -> CommentListResponse:
    """Unflagged comments of a published episode, newest first."""
    _load_published(db, episode_id)
    rows = (
        db.query(Comment)
        .filter(Comment.episode_id == episode_id, Comment.flagged.is_(False))
        .order_by(Comment.created_at.desc())
        .limit(limit)
        .all()
    )
    return CommentListResponse(
        items=[
            CommentItem(
                id=comment.id,
                emoji=comment.emoji,
                text=comment.text,
                createdAt=comment.created_at.isoformat() if comment.created_at else None,
            )
            for comment in rows
        ]
    )
