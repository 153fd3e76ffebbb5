from apollo.db.models import (
    EPISODE_STATUS_DRAFT,
    EPISODE_STATUS_PUBLISHED,
    Base,
    Comment,
    Episode,
    LibraryImage,
    RateLimitRecord,
)
from apollo.db.session import get_db, get_engine, init_db

__all__ = [
    "EPISODE_STATUS_DRAFT",
    "EPISODE_STATUS_PUBLISHED",
    "Base",
    "Comment",
    "Episode",
    "LibraryImage",
    "RateLimitRecord",
    "get_db",
    "get_engine",
    "init_db",
]
