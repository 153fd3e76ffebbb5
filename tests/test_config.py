from pathlib import Path

import pytest

from apollo.config import load_config


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(Path(__file__).parent)

    config = load_config()

    assert config.panel_concurrency == 2
    assert config.panel_images_rate_limit.max_requests == 10
    assert config.storyboard_rate_limit.max_requests == 5
    assert config.publish_rate_limit.max_requests == 3
    assert config.comment_limit_per_minute == 3
    assert config.comment_limit_per_day == 30
    assert config.conceal_foreign_episodes is False


def test_yaml_file_with_env_references(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_GEMINI_KEY", "secret-key")
    config_file = tmp_path / "config.yml"
    config_file.write_text(
        """
database_url: sqlite:///apollo.db
providers:
  gemini:
    api_key: ${TEST_GEMINI_KEY}
    unused: ${APOLLO_TEST_UNSET_VARIABLE}
panel_images_rate_limit:
  max_requests: 4
  window_seconds: 30
cors_origins:
  - https://apollo.example
""",
        encoding="utf-8",
    )

    config = load_config(str(config_file))

    assert config.database_url == "sqlite:///apollo.db"
    assert config.providers["gemini"]["api_key"] == "secret-key"
    assert config.providers["gemini"]["unused"] == "${APOLLO_TEST_UNSET_VARIABLE}"
    assert config.panel_images_rate_limit.max_requests == 4
    assert config.panel_images_rate_limit.window_seconds == 30
    assert config.cors_origins == ["https://apollo.example"]


def test_missing_file_falls_back_to_defaults(tmp_path: Path) -> None:
    config = load_config(str(tmp_path / "missing.yml"))

    assert config.storage_backend == "local"


def test_environment_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APOLLO_PANEL_CONCURRENCY", "4")
    monkeypatch.setenv("APOLLO_CONCEAL_FOREIGN_EPISODES", "true")
    monkeypatch.setenv("APOLLO_PUBLISH_RATE_LIMIT__MAX_REQUESTS", "9")

    config = load_config()

    assert config.panel_concurrency == 4
    assert config.conceal_foreign_episodes is True
    assert config.publish_rate_limit.max_requests == 9
