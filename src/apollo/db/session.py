from collections.abc import Generator
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from apollo.log_config import logger

_engine: Engine | None = None
_SessionLocal: sessionmaker[Session] | None = None

ALEMBIC_DIR = Path(__file__).resolve().parent.parent / "alembic"


def _create_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def run_migrations(database_url: str) -> None:
    """Upgrade the database schema to the latest Alembic revision."""
    alembic_cfg = AlembicConfig()
    alembic_cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    command.upgrade(alembic_cfg, "head")


def init_db(database_url: str, auto_migrate: bool = True) -> Engine:
    """Create the engine and session factory, migrating the schema when requested."""
    global _engine, _SessionLocal  # noqa: PLW0603
    _engine = _create_engine(database_url)
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    if auto_migrate:
        logger.info("Running database migrations")
        run_migrations(database_url)
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        msg = "Database not initialized"
        raise RuntimeError(msg)
    return _engine


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for one request."""
    if _SessionLocal is None:
        msg = "Database not initialized"
        raise RuntimeError(msg)
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()
