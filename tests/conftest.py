from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from vidproc.core.config import get_settings
from vidproc.main import create_app
from tests.fakes import FakeMediaEditor, FakeMediaProbe

API_TOKEN = "test-secret"


@pytest.fixture(autouse=True)
def configure_environment(monkeypatch, tmp_path):
    db_path = tmp_path / "vidproc_test.db"
    storage_path = tmp_path / "videos"

    # Alias targets are patched too so values copied by get_settings() are undone.
    monkeypatch.setenv("VIDPROC_ENV", "test")
    monkeypatch.setenv("VIDPROC_ENVIRONMENT", "test")
    monkeypatch.setenv("VIDPROC_LOG_LEVEL", "debug")
    monkeypatch.setenv("VIDPROC_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("VIDPROC_DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("VIDPROC_STORAGE_PATH", str(storage_path))
    monkeypatch.setenv("VIDPROC_VIDEO_STORAGE_PATH", str(storage_path))
    monkeypatch.setenv("VIDPROC_API_TOKEN", API_TOKEN)

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def settings(configure_environment):
    return get_settings()


@pytest.fixture()
def media_probe() -> FakeMediaProbe:
    return FakeMediaProbe()


@pytest.fixture()
def media_editor() -> FakeMediaEditor:
    return FakeMediaEditor()


@pytest.fixture()
def client(configure_environment, media_probe, media_editor):
    app = create_app(probe=media_probe, editor=media_editor)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {API_TOKEN}"}
