from __future__ import annotations

import os

import pytest

from clouddeck.common import config
from clouddeck.common.config import Settings, get_settings
from clouddeck.infra.storage.connection import ConnectionManager, ConnectionParams
from tests.services.mock_store import MockObjectStore

_ENV_PREFIXES = ("S3_", "UPLOAD_", "PART_", "PRESIGN_", "SHARE_", "LIST_", "LOG_")


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES) or key == "ENABLE_METRICS":
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config, "ENV_FILE", tmp_path / ".env")
    get_settings.cache_clear()  # type: ignore[attr-defined]
    yield
    get_settings.cache_clear()  # type: ignore[attr-defined]


@pytest.fixture()
def settings() -> Settings:
    return Settings()


@pytest.fixture()
def params() -> ConnectionParams:
    return ConnectionParams(
        access_key="AKIATEST",
        secret_key="secret",
        bucket="test-bucket",
        region="us-east-1",
    )


@pytest.fixture()
def store() -> MockObjectStore:
    return MockObjectStore()


@pytest.fixture()
def connections(store, params) -> ConnectionManager:
    manager = ConnectionManager(store_factory=lambda _params: store)
    manager.initialize(params)
    return manager
