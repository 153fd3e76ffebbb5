"""Owner views of episodes, drafts included, caption editing and reference uploads."""
from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from apollo.auth import get_config, verify_caller
from apollo.config import ApolloConfig
from apollo.db import Episode, get_db
from apollo.log_config import logger
from apollo.routes.library.utils import decode_image_upload, new_image_filename
from apollo.routes.utils import ensure_owner, load_episode, utcnow
from apollo.storage import BlobStore, StoragePaths, get_blob_store

from .schema import (
    CaptionsUpdateRequest,
    EpisodeDetail,
    EpisodeListResponse,
    EpisodeSummary,
    ReferenceUpload,
    ReferenceView,
)

router = APIRouter(prefix="/v1/episodes", tags=["episodes"])


def _detail(episode: Episode, blob_store: BlobStore) -> EpisodeDetail:
    data = episode.to_dict()
    panels = [
        {**panel, "imageUrl": blob_store.public_url(panel["imagePath"])}
        for panel in data["panels"]
        if panel.get("imagePath")
    ]
    return EpisodeDetail(
        id=data["id"],
        title=data["title"],
        status=data["status"],
        diaryText=data["diaryText"],
        panelCount=data["panelCount"],
        finalPrompt=data["finalPrompt"],
        panels=panels,
        thumbPath=data["thumbPath"],
        thumbUrl=blob_store.public_url(episode.thumb_path) if episode.thumb_path else None,
        createdAt=data["createdAt"],
        updatedAt=data["updatedAt"],
        publishedAt=data["publishedAt"],
    )


@router.get("", response_model=EpisodeListResponse)
async def list_my_episodes(
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
) -> EpisodeListResponse:
    rows = (
        db.query(Episode)
        .filter(Episode.creator_uid == uid)
        .order_by(Episode.updated_at.desc())
        .all()
    )
    return EpisodeListResponse(
        items=[
            EpisodeSummary(
                id=episode.id,
                title=episode.title,
                status=episode.status,
                panelCount=episode.planned_panel_count or episode.panel_count,
                generatedCount=len(episode.panels or []),
                thumbUrl=blob_store.public_url(episode.thumb_path) if episode.thumb_path else None,
                updatedAt=episode.updated_at.isoformat() if episode.updated_at else None,
            )
            for episode in rows
        ]
    )


@router.get("/{episode_id}", response_model=EpisodeDetail)
async def get_my_episode(
    episode_id: str,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    config: ApolloConfig = Depends(get_config),
) -> EpisodeDetail:
    episode = load_episode(db, episode_id)
    ensure_owner(episode, uid, config)
    return _detail(episode, blob_store)


@router.put("/{episode_id}/captions", response_model=EpisodeDetail)
async def update_captions(
    episode_id: str,
    payload: CaptionsUpdateRequest,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    config: ApolloConfig = Depends(get_config),
) -> EpisodeDetail:
    """Replace the captions of generated panels, addressed by panel index."""
    episode = load_episode(db, episode_id, for_update=True)
    ensure_owner(episode, uid, config)

    panels = [dict(panel) for panel in episode.panels or []]
    by_index = {int(panel["index"]): panel for panel in panels}
    unknown = sorted({edit.index for edit in payload.captions} - by_index.keys())
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No generated panel with index {unknown}",
        )

    for edit in payload.captions:
        by_index[edit.index]["caption"] = edit.caption
    episode.panels = panels
    episode.updated_at = utcnow()
    db.commit()
    logger.info("Updated %s captions on episode %s", len(payload.captions), episode_id)
    return _detail(episode, blob_store)


@router.post("/{episode_id}/refs", response_model=ReferenceView, status_code=status.HTTP_201_CREATED)
async def upload_episode_reference(
    episode_id: str,
    payload: ReferenceUpload,
    uid: str = Depends(verify_caller),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    config: ApolloConfig = Depends(get_config),
) -> ReferenceView:
    """Store a reference image for one episode; the returned path is usable in ``refImagePaths``."""
    episode = load_episode(db, episode_id)
    ensure_owner(episode, uid, config)
    data, extension, mime_type = decode_image_upload(payload.image)

    path = StoragePaths.episode_ref(episode_id, new_image_filename(extension))
    await asyncio.to_thread(blob_store.put, path, data, mime_type)
    url = await asyncio.to_thread(blob_store.make_public, path)
    logger.info("Saved reference image for episode %s (%s bytes)", episode_id, len(data))
    return ReferenceView(path=path, url=url)
