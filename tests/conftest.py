from collections.abc import Callable, Generator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from apollo.auth.tokens import sign_access_token
from apollo.config import ApolloConfig
from apollo.db import EPISODE_STATUS_DRAFT, EPISODE_STATUS_PUBLISHED, Base, Episode, get_engine
from apollo.genai_helper import get_genai_client
from apollo.routes.utils import utcnow
from apollo.server import create_app
from fakes import OWNER_UID, FakeGenaiClient, InMemoryBlobStore, make_plan


@pytest.fixture
def config(tmp_path: Path) -> ApolloConfig:
    return ApolloConfig(
        database_url="sqlite:///:memory:",
        auto_migrate=False,
        jwt_secret="test-secret",
        providers={"gemini": {"api_key": "test-api-key"}},
        storage_backend="local",
        storage_dir=str(tmp_path / "storage"),
    )


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def fake_genai() -> FakeGenaiClient:
    return FakeGenaiClient()


@pytest.fixture
def app(config: ApolloConfig, blob_store: InMemoryBlobStore, fake_genai: FakeGenaiClient) -> FastAPI:
    app = create_app(config, blob_store=blob_store)
    Base.metadata.create_all(get_engine())
    app.dependency_overrides[get_genai_client] = lambda: fake_genai
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(app: FastAPI) -> Generator[Session, None, None]:
    session = sessionmaker(bind=get_engine(), expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def auth_header(config: ApolloConfig) -> Callable[[str], dict[str, str]]:
    def _header(uid: str = OWNER_UID) -> dict[str, str]:
        return {"Authorization": f"Bearer {sign_access_token(config, uid)}"}

    return _header


@pytest.fixture
def owner_header(auth_header: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth_header(OWNER_UID)


@pytest.fixture
def seed_episode(db_session: Session) -> Callable[..., Episode]:
    def _seed(
        episode_id: str = "ep-1",
        *,
        creator_uid: str = OWNER_UID,
        panel_count: int = 4,
        plan: dict[str, Any] | None | bool = True,
        panels: list[dict[str, Any]] | None = None,
        published: bool = False,
        published_at: datetime | None = None,
    ) -> Episode:
        now = utcnow()
        final_prompt = make_plan(panel_count) if plan is True else (plan or None)
        episode = Episode(
            id=episode_id,
            status=EPISODE_STATUS_PUBLISHED if published else EPISODE_STATUS_DRAFT,
            title=(final_prompt or {}).get("title", ""),
            diary_text="오늘은 늦잠을 자서 회사에 지각했다.",
            panel_count=panel_count,
            final_prompt=final_prompt,
            panels=panels or [],
            thumb_path=next((p["imagePath"] for p in panels or [] if p["index"] == 0), None),
            creator_uid=creator_uid,
            created_at=now,
            updated_at=now,
            published_at=(published_at or now) if published else None,
        )
        db_session.add(episode)
        db_session.commit()
        return episode

    return _seed


@pytest.fixture
def load_episode_row(db_session: Session) -> Callable[[str], Episode | None]:
    def _load(episode_id: str) -> Episode | None:
        db_session.expire_all()
        return db_session.get(Episode, episode_id)

    return _load
