from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from google import genai
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from apollo.auth import get_client_ip, get_config, verify_caller
from apollo.config import ApolloConfig
from apollo.db import EPISODE_STATUS_DRAFT, Episode, get_db
from apollo.genai_helper import build_user_contents, create_inline_part, create_text_part, get_genai_client, get_response_text
from apollo.log_config import logger
from apollo.rate_limit import RateLimiter, enforce_rate_limit, hash_text
from apollo.routes.toon.panel_images.references import load_reference_images
from apollo.routes.utils import ensure_owner, ensure_reference_paths, get_rate_limiter, utcnow
from apollo.storage import BlobStore, get_blob_store

from .parser import parse_storyboard
from .prompt import FINAL_PROMPT_SCHEMA, build_system_prompt, build_user_prompt
from .schema import StoryboardPlan, StoryboardRequest, StoryboardResponse

router = APIRouter(prefix="/v1/toon", tags=["toon"])

RATE_LIMIT_ACTION = "generateStoryboard"
STORYBOARD_TEMPERATURE = 0.8
STORYBOARD_TOP_P = 0.95
GENERATION_FAILED_DETAIL = "Failed to generate storyboard"


def _ensure_replannable(episode: Episode | None, uid: str, config: ApolloConfig) -> None:
    if episode is None:
        return
    ensure_owner(episode, uid, config)
    if episode.is_published:
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail="Published episodes cannot be re-planned",
        )


async def _request_storyboard(client: Any, payload: StoryboardRequest, reference_parts: list[Any], model: str) -> str:
    contents = build_user_contents(
        [
            *reference_parts,
            create_text_part(build_user_prompt(payload.diaryText, payload.panelCount, bool(reference_parts))),
        ]
    )
    content_config = genai.types.GenerateContentConfig(
        system_instruction=build_system_prompt(payload.characterSheetText, payload.panelCount),
        response_mime_type="application/json",
        response_schema=FINAL_PROMPT_SCHEMA,
        temperature=STORYBOARD_TEMPERATURE,
        top_p=STORYBOARD_TOP_P,
        candidate_count=1,
    )
    response = await client.aio.models.generate_content(model=model, contents=contents, config=content_config)
    return get_response_text(response)


def _save_plan(db: Session, payload: StoryboardRequest, plan: StoryboardPlan, uid: str, config: ApolloConfig) -> None:
    """Create the episode or overwrite its plan; panels of a previous plan are discarded."""
    now = utcnow()
    final_prompt = {
        **plan.dump(),
        "characterSheetDigest": hash_text(payload.characterSheetText),
        "generatedAt": now.isoformat(),
    }
    episode = (
        db.query(Episode)
        .filter(Episode.id == payload.episodeId)
        .populate_existing()
        .with_for_update()
        .first()
    )
    _ensure_replannable(episode, uid, config)
    if episode is None:
        episode = Episode(
            id=payload.episodeId,
            status=EPISODE_STATUS_DRAFT,
            creator_uid=uid,
            created_at=now,
        )
        db.add(episode)
    episode.title = plan.title
    episode.diary_text = payload.diaryText
    episode.panel_count = payload.panelCount
    episode.final_prompt = final_prompt
    episode.panels = []
    episode.thumb_path = None
    episode.updated_at = now
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Episode was created concurrently. Please retry.",
        ) from e


@router.post("/storyboard", response_model=StoryboardResponse)
async def generate_storyboard(
    payload: StoryboardRequest,
    uid: str = Depends(verify_caller),
    client_ip: str = Depends(get_client_ip),
    db: Session = Depends(get_db),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    blob_store: BlobStore = Depends(get_blob_store),
    client: Any = Depends(get_genai_client),
    config: ApolloConfig = Depends(get_config),
) -> StoryboardResponse:
    limit = config.storyboard_rate_limit
    admission = enforce_rate_limit(rate_limiter, client_ip, RATE_LIMIT_ACTION, limit.max_requests, limit.window_seconds)

    _ensure_replannable(db.get(Episode, payload.episodeId), uid, config)
    ensure_reference_paths(payload.refImagePaths, uid, payload.episodeId)
    # release the read transaction before the model call
    db.commit()

    references = await load_reference_images(blob_store, payload.refImagePaths)
    reference_parts = [create_inline_part(ref.data, ref.mime_type) for ref in references]

    logger.info(
        "Planning storyboard episode=%s panels=%s refs=%s",
        payload.episodeId,
        payload.panelCount,
        len(reference_parts),
    )
    try:
        text = await _request_storyboard(client, payload, reference_parts, config.text_model)
    except Exception as e:  # noqa: BLE001
        logger.error("Storyboard model call failed for episode %s: %s", payload.episodeId, e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=GENERATION_FAILED_DETAIL,
        ) from e

    result = parse_storyboard(text, payload.panelCount)
    if not result.ok or result.plan is None:
        logger.error(
            "Rejected storyboard response",
            extra={"episode_id": payload.episodeId, "errors": result.errors},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=GENERATION_FAILED_DETAIL,
        )

    _save_plan(db, payload, result.plan, uid, config)
    logger.info("Storyboard saved episode=%s title=%s", payload.episodeId, result.plan.title)

    return StoryboardResponse(
        success=True,
        episodeId=payload.episodeId,
        finalPrompt=result.plan,
        remaining=admission.remaining,
    )
