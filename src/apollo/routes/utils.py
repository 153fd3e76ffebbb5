from collections.abc import Iterable
from pathlib import PurePosixPath
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from apollo.config import ApolloConfig
from apollo.db import Episode, get_db
from apollo.log_config import logger
from apollo.rate_limit import RateLimiter
from apollo.storage import StoragePaths


def utcnow() -> datetime:
    return datetime.now(UTC)


def get_rate_limiter(db: Annotated[Session, Depends(get_db)]) -> RateLimiter:
    """Dependency returning a limiter bound to the request's session."""
    return RateLimiter(db)


def load_episode(db: Session, episode_id: str, *, for_update: bool = False) -> Episode:
    """Load an episode by id or raise 404."""
    query = db.query(Episode).filter(Episode.id == episode_id)
    if for_update:
        query = query.populate_existing().with_for_update()
    episode = query.first()
    if episode is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Episode not found",
        )
    return episode


def ensure_owner(episode: Episode, uid: str, config: ApolloConfig) -> None:
    """Reject callers other than the episode's creator.

    With ``conceal_foreign_episodes`` the rejection is a 404 so that episode
    ids owned by other users cannot be probed.
    """
    if episode.creator_uid == uid:
        return
    logger.info("Rejected access to foreign episode %s", episode.id)
    if config.conceal_foreign_episodes:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Episode not found",
        )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You can only modify your own episodes",
    )


def require_final_prompt(episode: Episode) -> dict[str, Any]:
    """Return the episode's storyboard plan or raise 412 when it has none."""
    if not episode.final_prompt or not episode.final_prompt.get("panels"):
        raise HTTPException(
            status_code=status.HTTP_412_PRECONDITION_FAILED,
            detail="Episode has no storyboard yet. Plan the storyboard first.",
        )
    return episode.final_prompt


def merge_panels(existing: Iterable[dict[str, Any]], updates: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Replace panels by index with ``updates``, keep the rest, sort by index.

    The result never contains two panels with the same index, and merging the
    same updates twice yields the same list.
    """
    merged: dict[int, dict[str, Any]] = {}
    for panel in existing:
        merged[int(panel["index"])] = dict(panel)
    for panel in updates:
        merged[int(panel["index"])] = dict(panel)
    return [merged[index] for index in sorted(merged)]


def compute_thumb_path(panels: Iterable[dict[str, Any]]) -> str | None:
    """Image path of panel 0, if that panel exists."""
    for panel in panels:
        if panel.get("index") == 0:
            return panel.get("imagePath")
    return None


def ensure_reference_paths(paths: Iterable[str] | None, uid: str, episode_id: str) -> None:
    """Reject reference paths outside the caller's library and the episode's own refs."""
    allowed = (
        PurePosixPath(StoragePaths.library_image(uid, "")),
        PurePosixPath(StoragePaths.episode_ref(episode_id, "")),
    )
    rejected = []
    for path in paths or []:
        candidate = PurePosixPath(path.strip().lstrip("/"))
        if ".." in candidate.parts or candidate.parent not in allowed:
            rejected.append(path)
    if rejected:
        logger.info("Rejected %s reference paths for episode %s", len(rejected), episode_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reference images must come from your library or this episode's references",
        )
