"""Shared fixtures for integration tests.

The data access layer, user service, handlers and local app run against an
in-memory SQLite engine injected in place of the PostgreSQL pool. The
statements they issue are plain SQL both databases accept.
"""

from collections.abc import Callable, Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from user_api.core.config import LogConfig, ObservabilityConfig, Settings, get_settings
from user_api.core.context import RequestContext
from user_api.infrastructure.database.data_service import DataService
from user_api.users.models import User
from user_api.users.service import UserService


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def engine() -> Generator[Engine]:
    """In-memory database with the ``"User"`` and ``notes`` tables."""
    db = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    with db.begin() as conn:
        conn.execute(
            text(
                'CREATE TABLE "User" ('
                "id INTEGER PRIMARY KEY, "
                "username TEXT NOT NULL, "
                "email TEXT NOT NULL)"
            )
        )
        conn.execute(
            text(
                "CREATE TABLE notes ("
                "id INTEGER PRIMARY KEY, "
                "userid INTEGER NOT NULL, "
                "body TEXT NOT NULL)"
            )
        )
    yield db
    db.dispose()


@pytest.fixture
def add_user(engine: Engine) -> Callable[..., None]:
    """Insert a user row directly, bypassing the data access layer."""

    def _add(user_id: int, username: str, email: str) -> None:
        with engine.begin() as conn:
            conn.execute(
                text('INSERT INTO "User" (id, username, email) VALUES (:i, :u, :e)'),
                {"i": user_id, "u": username, "e": email},
            )

    return _add


@pytest.fixture
def data_service(engine: Engine) -> DataService[Any]:
    return DataService[Any](engine)


@pytest.fixture
def user_service(engine: Engine) -> UserService:
    return UserService(DataService[User](engine))


@pytest.fixture
def test_settings() -> Settings:
    """Settings with tracing off and plain console logs."""
    return Settings(
        log_config=LogConfig(log_formatter_type="console", log_level="WARNING"),
        observability_config=ObservabilityConfig(enable_tracing=False),
    )


@pytest.fixture
def client(test_settings: Settings, engine: Engine) -> Generator[TestClient]:
    """Local FastAPI app serving from the SQLite engine."""
    from user_api.api.main import create_app

    with TestClient(create_app(test_settings, engine)) as test_client:
        yield test_client
