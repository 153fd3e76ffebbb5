from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from apollo.auth import get_client_ip, get_config, verify_caller
from apollo.config import ApolloConfig
from apollo.db import EPISODE_STATUS_PUBLISHED, Episode, get_db
from apollo.log_config import logger
from apollo.rate_limit import RateLimiter, enforce_rate_limit
from apollo.routes.utils import ensure_owner, get_rate_limiter, load_episode, require_final_prompt, utcnow

from .schema import PublishRequest, PublishResponse

router = APIRouter(prefix="/v1/toon", tags=["toon"])

RATE_LIMIT_ACTION = "publishToon"


def _response(episode: Episode, already_published: bool) -> PublishResponse:
    return PublishResponse(
        success=True,
        episodeId=episode.id,
        status=episode.status,
        publishedAt=episode.published_at.isoformat() if episode.published_at else None,
        alreadyPublished=already_published,
    )


def publish_episode(db: Session, episode_id: str, uid: str, config: ApolloConfig) -> PublishResponse:
    """Move an episode from draft to published once every planned panel has an image."""
    episode = load_episode(db, episode_id, for_update=True)
    ensure_owner(episode, uid, config)

    if episode.is_published:
        db.rollback()
        return _response(episode, already_published=True)

    plan = require_final_prompt(episode)
    have = len(episode.panels or [])
    need = len(plan["panels"])
    if have < need:
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail=f"Not all panel images have been generated ({have}/{need})",
        )

    now = utcnow()
    episode.status = EPISODE_STATUS_PUBLISHED
    episode.published_at = now
    episode.updated_at = now
    db.commit()
    logger.info("Published episode %s with %s panels", episode.id, have)
    return _response(episode, already_published=False)


@router.post("/publish", response_model=PublishResponse)
async def publish(
    payload: PublishRequest,
    uid: str = Depends(verify_caller),
    client_ip: str = Depends(get_client_ip),
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    config: ApolloConfig = Depends(get_config),
) -> PublishResponse:
    limit = config.publish_rate_limit
    enforce_rate_limit(rate_limiter, client_ip, RATE_LIMIT_ACTION, limit.max_requests, limit.window_seconds)
    return publish_episode(db, payload.episodeId, uid, config)
