"""Document models for episodes, comments, rate-limit counters and the reference library."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

EPISODE_STATUS_DRAFT = "draft"
EPISODE_STATUS_PUBLISHED = "published"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all tables."""


class Episode(Base):
    """One diary-to-comic authoring unit."""

    __tablename__ = "episodes"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    status: Mapped[str] = mapped_column(String(16), default=EPISODE_STATUS_DRAFT, index=True)
    title: Mapped[str] = mapped_column(String(200), default="")
    diary_text: Mapped[str] = mapped_column(Text)
    panel_count: Mapped[int] = mapped_column(Integer)
    final_prompt: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    panels: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list)
    thumb_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    creator_uid: Mapped[str] = mapped_column(String(128), index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    comments = relationship("Comment", back_populates="episode", cascade="all, delete-orphan")

    @property
    def is_published(self) -> bool:
        return self.status == EPISODE_STATUS_PUBLISHED

    @property
    def planned_panel_count(self) -> int:
        if not self.final_prompt:
            return 0
        return len(self.final_prompt.get("panels") or [])

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "status": self.status,
            "title": self.title,
            "diaryText": self.diary_text,
            "panelCount": self.panel_count,
            "finalPrompt": self.final_prompt,
            "panels": list(self.panels or []),
            "thumbPath": self.thumb_path,
            "creatorUid": self.creator_uid,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
        }


class Comment(Base):
    """Anonymous emoji comment on a published episode. Never mutated after creation."""

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    episode_id: Mapped[str] = mapped_column(ForeignKey("episodes.id", ondelete="CASCADE"), index=True)
    emoji: Mapped[str] = mapped_column(String(16))
    text: Mapped[str] = mapped_column(String(80), default="")
    anon_id_hash: Mapped[str] = mapped_column(String(64), index=True)
    flagged: Mapped[bool] = mapped_column(default=False)
    flag_reason: Mapped[str | None] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)

    episode = relationship("Episode", back_populates="comments")

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        moderation: dict[str, Any] = {"flagged": self.flagged}
        if self.flag_reason:
            moderation["reason"] = self.flag_reason
        return {
            "id": self.id,
            "emoji": self.emoji,
            "text": self.text,
            "anonIdHash": self.anon_id_hash,
            "moderation": moderation,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class RateLimitRecord(Base):
    """Admission counters keyed by a one-way hash of identity and action.

    ``count``/``window_start_ms`` hold the single (or short) window and
    ``day_count``/``day_window_start_ms`` the long window of dual limits.
    """

    __tablename__ = "rate_limits"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, default=0)
    window_start_ms: Mapped[int] = mapped_column(BigInteger)
    day_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    day_window_start_ms: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class LibraryImage(Base):
    """A user's saved reference image."""

    __tablename__ = "library_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    name: Mapped[str] = mapped_column(String(100))
    storage_path: Mapped[str] = mapped_column(String(512))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "storagePath": self.storage_path,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
