"""Tests for layered .env loading."""

import os

import pytest

from dlsync.core.config import load_layered_env


@pytest.fixture
def clean_keys(monkeypatch):
    """Register the keys with monkeypatch so writes to os.environ are undone."""
    for key in ("DB", "REALM_APPID", "SENTRY_DSN"):
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)


def test_project_env_overrides_user_env(tmp_path, clean_keys) -> None:
    user_env = tmp_path / "user.env"
    user_env.write_text("DB=user\nREALM_APPID=user-app\n")
    project = tmp_path / "project"
    project.mkdir()
    (project / ".env").write_text("DB=project\n")

    load_layered_env(project_dir=project, user_env_paths=[user_env])

    assert os.environ["DB"] == "project"
    assert os.environ["REALM_APPID"] == "user-app"


def test_os_env_wins(tmp_path, clean_keys, monkeypatch) -> None:
    monkeypatch.setenv("DB", "os")
    (tmp_path / ".env").write_text("DB=file\n")

    load_layered_env(project_dir=tmp_path, user_env_paths=[])

    assert os.environ["DB"] == "os"


def test_env_local_overrides_env(tmp_path, clean_keys) -> None:
    (tmp_path / ".env").write_text("SENTRY_DSN=https://a@sentry.example/1\n")
    (tmp_path / ".env.local").write_text("SENTRY_DSN=https://b@sentry.example/2\n")

    load_layered_env(project_dir=tmp_path, user_env_paths=[])

    assert os.environ["SENTRY_DSN"] == "https://b@sentry.example/2"
