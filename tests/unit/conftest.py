"""Shared fixtures for unit tests."""

import os
import threading
from collections.abc import Generator
from typing import Any

import pytest
from pytest_mock import MockerFixture, MockType
from sqlalchemy.engine import Engine

from user_api.core.config import Settings, get_settings
from user_api.core.context import RequestContext
from user_api.core.error_context import _get_sensitive_fields
from user_api.infrastructure.database.pool import _data_source_manager


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Provide a real Settings object built from test environment values."""
    monkeypatch.setenv("APP_NAME", "TestApp")
    monkeypatch.setenv("APP_VERSION", "1.0.0")
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("DEBUG", "false")
    monkeypatch.setenv("API_HOST", "127.0.0.1")
    monkeypatch.setenv("API_PORT", "3000")
    return Settings()


@pytest.fixture
def db_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Set a complete set of DB_* variables."""
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "5433")
    monkeypatch.setenv("DB_NAME", "users")
    monkeypatch.setenv("DB_USER", "api")
    monkeypatch.setenv("DB_PASSWORD", "hunter2")
    return monkeypatch


@pytest.fixture
def mock_engine(mocker: MockerFixture) -> MockType:
    """Engine double whose read and write scopes yield the same connection.

    The connection is available as ``mock_engine.conn``.
    """
    engine = mocker.MagicMock(spec=Engine)
    conn = mocker.MagicMock(name="connection")

    engine.connect.return_value.__enter__.return_value = conn
    engine.connect.return_value.__exit__.return_value = False
    engine.begin.return_value.__enter__.return_value = conn
    engine.begin.return_value.__exit__.return_value = False
    engine.conn = conn
    return engine


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[pytest.MonkeyPatch]:
    """Backup and restore environment variables to prevent test interference.

    Cloud variables are left alone; detection tests set them explicitly.
    """
    original_env = os.environ.copy()

    env_prefixes = [
        "APP_",
        "API_",
        "DB_",
        "ENVIRONMENT",
        "DEBUG",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "AWS_EXECUTION_ENV",
        "AWS_LAMBDA_FUNCTION_NAME",
    ]
    for key in list(os.environ.keys()):
        if any(key.startswith(prefix) for prefix in env_prefixes):
            monkeypatch.delenv(key, raising=False)

    yield monkeypatch

    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture(autouse=True)
def clean_data_source() -> Generator[None]:
    """Drop the process-wide engine so each test builds its own."""
    _data_source_manager.reset()
    yield
    _data_source_manager.reset()


@pytest.fixture
def thread_sync() -> dict[str, Any]:
    """Provide thread synchronization utilities for thread safety tests."""

    def create_barrier(n: int) -> threading.Barrier:
        return threading.Barrier(n)

    def create_results() -> list[Any]:
        return []

    return {
        "barrier": create_barrier,
        "event": threading.Event,
        "lock": threading.Lock,
        "create_results": create_results,
    }
