"""Panel image generation for one episode.

Admission, loading and authorization happen before any model call. The
planned panels are then generated with bounded parallelism, each success is
uploaded to its deterministic blob path, and the successes are merged into
the episode's panel list by index. A panel that fails never fails the
request; its index is reported in ``failed`` instead.
"""
from __future__ import annotations

import asyncio
import functools
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from apollo.config import ApolloConfig
from apollo.log_config import logger
from apollo.rate_limit import RateLimiter, enforce_rate_limit, hash_text
from apollo.routes.toon.storyboard.schema import FinalPrompt, PanelPrompt
from apollo.routes.utils import (
    compute_thumb_path,
    ensure_owner,
    ensure_reference_paths,
    load_episode,
    merge_panels,
    require_final_prompt,
    utcnow,
)
from apollo.storage import BlobStore, StoragePaths

from .constants import RATE_LIMIT_ACTION
from .executor import TaskError, run_bounded
from .generator import PanelImageFailure, PanelImageResult, PanelImageSuccess, generate_panel_image
from .references import load_reference_images
from .schema import AspectRatioType, GeneratedPanel, PanelImagesRequest, PanelImagesResponse
from .utils import _build_reference_parts, _normalize_image


def resolve_target_indices(panels: list[PanelPrompt], indices: list[int] | None) -> list[int]:
    """Indices to generate: the requested ones inside the plan (deduplicated, order kept), or every planned index."""
    if indices is None:
        return [panel.index for panel in panels]
    seen: set[int] = set()
    targets: list[int] = []
    for index in indices:
        if 0 <= index < len(panels) and index not in seen:
            seen.add(index)
            targets.append(index)
    return targets


def build_result_message(generated: int, failed: list[int]) -> str:
    if failed:
        joined = ", ".join(str(index) for index in failed)
        return f"{generated} generated, {len(failed)} failed. Failed panels: [{joined}]"
    return f"{generated} panel images generated"


class PanelImagesOrchestrator:
    """Runs one panel-images request end to end."""

    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        client: Any,
        rate_limiter: RateLimiter,
        config: ApolloConfig,
    ) -> None:
        self.db = db
        self.blob_store = blob_store
        self.client = client
        self.rate_limiter = rate_limiter
        self.config = config

    def _load_plan(self, episode_id: str, uid: str) -> FinalPrompt:
        episode = load_episode(self.db, episode_id)
        ensure_owner(episode, uid, self.config)
        raw_plan = require_final_prompt(episode)
        try:
            plan = FinalPrompt.model_validate(raw_plan)
        except ValidationError as e:
            logger.error("Stored storyboard for episode %s is invalid: %s", episode_id, e)
            raise HTTPException(
                status_code=status.HTTP_412_PRECONDITION_FAILED,
                detail="Stored storyboard is invalid. Plan the storyboard again.",
            ) from e
        # release the read transaction before the long-running fan-out
        self.db.commit()
        return plan

    async def _generate(
        self,
        plan: FinalPrompt,
        targets: list[int],
        aspect_ratio: AspectRatioType,
        reference_parts: list[Any],
    ) -> list[PanelImageResult]:
        prompts = {panel.index: panel for panel in plan.panels}
        tasks = []
        for index in targets:
            panel_prompt = prompts.get(index)
            if panel_prompt is None:
                tasks.append(functools.partial(_missing_prompt, index))
                continue
            tasks.append(
                functools.partial(
                    generate_panel_image,
                    self.client,
                    index=index,
                    plan_text=panel_prompt.prompt,
                    global_style=plan.global_,
                    aspect_ratio=aspect_ratio,
                    reference_parts=reference_parts,
                    model=self.config.image_model,
                )
            )

        outcomes = await run_bounded(tasks, self.config.panel_concurrency)
        results: list[PanelImageResult] = []
        for index, outcome in zip(targets, outcomes, strict=True):
            if isinstance(outcome, TaskError):
                results.append(PanelImageFailure(index=index, error=str(outcome.error)))
            else:
                results.append(outcome)
        return results

    def _upload(self, episode_id: str, result: PanelImageSuccess, aspect_ratio: AspectRatioType) -> tuple[str, str]:
        path = StoragePaths.episode_panel(episode_id, result.index)
        data, content_type = _normalize_image(result.image_bytes, result.mime_type, aspect_ratio)
        self.blob_store.put(path, data, content_type)
        url = self.blob_store.make_public(path)
        return path, url

    def _persist(self, episode_id: str, uploaded: list[dict[str, Any]], plan: FinalPrompt) -> None:
        """Merge uploaded panels into the latest stored panel list under a row lock."""
        episode = load_episode(self.db, episode_id, for_update=True)
        existing = list(episode.panels or [])
        existing_captions = {int(panel["index"]): panel.get("caption") for panel in existing}
        drafts = {panel.index: panel.captionDraft for panel in plan.panels}
        updates = [
            {
                "index": item["index"],
                "imagePath": item["imagePath"],
                "caption": existing_captions.get(item["index"]) or drafts.get(item["index"], ""),
            }
            for item in uploaded
        ]
        merged = merge_panels(existing, updates)
        episode.panels = merged
        thumb_path = compute_thumb_path(merged)
        if thumb_path:
            episode.thumb_path = thumb_path
        episode.updated_at = utcnow()
        self.db.commit()
        logger.info(
            "Episode panels updated",
            extra={"episode_id": episode_id, "panel_count": len(merged), "thumb_path": thumb_path},
        )

    async def run(self, payload: PanelImagesRequest, *, uid: str, client_ip: str) -> PanelImagesResponse:
        limit = self.config.panel_images_rate_limit
        enforce_rate_limit(
            self.rate_limiter,
            client_ip,
            RATE_LIMIT_ACTION,
            limit.max_requests,
            limit.window_seconds,
        )

        episode_id = payload.episodeId
        plan = self._load_plan(episode_id, uid)
        ensure_reference_paths(payload.refImagePaths, uid, episode_id)

        targets = resolve_target_indices(plan.panels, payload.indices)
        if not targets:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No panels to generate",
            )
        logger.info(
            "Generating panels episode=%s targets=%s total=%s",
            episode_id,
            targets,
            len(plan.panels),
        )

        references = await load_reference_images(self.blob_store, payload.refImagePaths)
        reference_parts = _build_reference_parts(references)

        results = await self._generate(plan, targets, payload.aspectRatio, reference_parts)

        generated: list[GeneratedPanel] = []
        failed: list[int] = []
        for result in results:
            if isinstance(result, PanelImageFailure):
                logger.error("Panel %s failed: %s", result.index, result.error)
                failed.append(result.index)
                continue
            try:
                path, url = await asyncio.to_thread(self._upload, episode_id, result, payload.aspectRatio)
            except Exception as e:  # noqa: BLE001
                logger.error("Panel %s upload failed: %s", result.index, e)
                failed.append(result.index)
                continue
            generated.append(GeneratedPanel(index=result.index, imagePath=path, imageUrl=url))

        if generated:
            self._persist(episode_id, [item.model_dump() for item in generated], plan)

        logger.info(
            "Panel generation completed episode=%s client=%s generated=%s failed=%s",
            episode_id,
            hash_text(client_ip),
            len(generated),
            len(failed),
        )
        return PanelImagesResponse(
            success=not failed,
            episodeId=episode_id,
            generated=generated,
            failed=failed,
            message=build_result_message(len(generated), failed),
        )


async def _missing_prompt(index: int) -> PanelImageResult:
    return PanelImageFailure(index=index, error="Panel prompt not found")
