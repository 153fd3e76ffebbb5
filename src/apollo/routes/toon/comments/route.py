from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from apollo.auth import get_config
from apollo.config import ApolloConfig
from apollo.db import Comment, get_db
from apollo.log_config import logger
from apollo.rate_limit import DualRateLimitResult, RateLimiter, hash_text
from apollo.routes.utils import get_rate_limiter, load_episode

from .constants import RATE_LIMIT_ACTION
from .moderation import moderate_content
from .schema import CommentRequest, CommentResponse

router = APIRouter(prefix="/v1/toon", tags=["toon"])


def _raise_rate_limited(result: DualRateLimitResult) -> None:
    if result.error_type == "minute":
        detail = f"Commenting too fast. Please retry in {result.retry_after_seconds} seconds."
    else:
        detail = "Daily comment limit reached. Please try again tomorrow."
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=detail,
        headers={"Retry-After": str(result.retry_after_seconds or 60)},
    )


@router.post("/comments", response_model=CommentResponse)
async def add_comment(
    payload: CommentRequest,
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    config: ApolloConfig = Depends(get_config),
) -> CommentResponse:
    anon_id_hash = hash_text(payload.anonId)

    admission = rate_limiter.check_dual(
        anon_id_hash,
        RATE_LIMIT_ACTION,
        config.comment_limit_per_minute,
        config.comment_limit_per_day,
    )
    if not admission.allowed:
        logger.info("Comment rate limited anon=%s window=%s", anon_id_hash, admission.error_type)
        _raise_rate_limited(admission)

    episode = load_episode(db, payload.episodeId)
    if not episode.is_published:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Comments are only allowed on published episodes",
        )

    moderation = moderate_content(payload.text)
    comment = Comment(
        episode_id=episode.id,
        emoji=payload.emoji,
        text=payload.text,
        anon_id_hash=anon_id_hash,
        flagged=moderation.flagged,
        flag_reason=moderation.reason,
    )
    db.add(comment)
    db.commit()

    logger.info(
        "Comment added",
        extra={
            "episode_id": episode.id,
            "comment_id": comment.id,
            "text_length": len(payload.text),
            "flagged": moderation.flagged,
            "flag_reason": moderation.reason,
        },
    )
    return CommentResponse(
        success=True,
        commentId=comment.id,
        flagged=moderation.flagged,
        remainingMinute=admission.remaining_minute,
        remainingDay=admission.remaining_day,
    )
