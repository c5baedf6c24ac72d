"""Process-wide connection pool for the serverless handlers.

Each handler process keeps exactly one pooled SQLAlchemy engine alive for
its whole lifetime so that warm invocations reuse open connections instead
of paying the connection handshake on every request.

Core functionality:
- **Lazy construction**: The engine is built on first access from the DB_*
  environment variables
- **Thread safety**: Double-checked locking guarantees a single construction
  even when several threads race on first use
- **Small pools**: Two connections at most, one kept idle, 5 second borrow
  timeout; the platform scales out by adding processes
- **Health checks**: Database connectivity validation for the local server
- **Query monitoring**: Optional slow query detection through cursor events

Building the engine never opens a connection. An unreachable database
surfaces on the first borrow, not at construction time.

The pool is never closed explicitly: the process owns it until the runtime
reclaims the container.
"""

import threading
import time
from typing import Any
from weakref import WeakKeyDictionary

from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.engine.interfaces import DBAPICursor, ExecutionContext
from sqlalchemy.exc import SQLAlchemyError

from user_api.core.config import DatabaseConfig, get_settings
from user_api.core.context import RequestContext
from user_api.core.error_context import sanitize_sql_params
from user_api.core.exceptions import ConfigurationError
from user_api.infrastructure.constants import (
    CONNECT_TIMEOUT_SECONDS,
    MAX_LOGGED_STATEMENT_LENGTH,
    POOL_RECYCLE_SECONDS,
)

# Store query start times for execution contexts
_query_start_times: WeakKeyDictionary[ExecutionContext, float] = WeakKeyDictionary()


def _before_cursor_execute(
    _conn: Connection,
    _cursor: DBAPICursor,
    _statement: str,
    _parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    _executemany: bool,
) -> None:
    """Track query start time for slow query detection."""
    _query_start_times[context] = time.perf_counter()


def _after_cursor_execute(
    _conn: Connection,
    cursor: DBAPICursor,
    statement: str,
    parameters: dict[str, Any] | list[Any] | tuple[Any, ...] | None,
    context: ExecutionContext,
    executemany: bool,
) -> None:
    """Log queries slower than the configured threshold.

    Args:
        _conn: Database connection (unused).
        cursor: Database cursor, used for the affected row count.
        statement: SQL statement that was executed.
        parameters: Query parameters.
        context: SQLAlchemy execution context.
        executemany: Whether this was an executemany operation.
    """
    threshold_ms = get_settings().log_config.slow_query_threshold_ms

    start_time = _query_start_times.pop(context, None)
    if start_time is None:
        return

    duration_ms = (time.perf_counter() - start_time) * 1000
    if duration_ms < threshold_ms:
        return

    rows_affected = getattr(cursor, "rowcount", -1)
    if rows_affected is None:
        rows_affected = -1

    clean_statement = " ".join(statement.split())[:MAX_LOGGED_STATEMENT_LENGTH]

    logger.warning(
        "Slow query detected: {}... Duration: {:.2f}ms Rows: {}",
        clean_statement[:100],
        round(duration_ms, 2),
        rows_affected,
        query=clean_statement,
        duration_ms=round(duration_ms, 2),
        rows_affected=rows_affected,
        parameters=sanitize_sql_params(parameters),
        correlation_id=RequestContext.get_correlation_id(),
        executemany=executemany,
        threshold_ms=threshold_ms,
    )


def _load_database_config() -> DatabaseConfig:
    """Read the DB_* variables, rejecting incomplete or malformed values.

    Raises:
        ConfigurationError: If DB_HOST or DB_NAME is missing, or a value
            fails validation (for example a non-numeric DB_PORT).
    """
    try:
        db_config = DatabaseConfig()
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Invalid database configuration",
            context={"errors": [err["loc"] for err in e.errors()]},
            cause=e,
        ) from e

    missing = [
        name
        for name, value in (("DB_HOST", db_config.host), ("DB_NAME", db_config.name))
        if not value
    ]
    if missing:
        raise ConfigurationError(
            f"Missing required database configuration: {', '.join(missing)}",
            context={"missing": missing},
        )

    return db_config


def create_data_source(db_config: DatabaseConfig | None = None) -> Engine:
    """Create a pooled SQLAlchemy engine from the database configuration.

    Args:
        db_config: Optional configuration; read from the environment when
            not provided.

    Returns:
        Engine: Configured engine. No connection is opened yet.

    Raises:
        ConfigurationError: If the configuration is incomplete or invalid.
    """
    db_config = db_config or _load_database_config()

    url = URL.create(
        db_config.driver,
        username=db_config.user,
        password=db_config.password,
        host=db_config.host,
        port=db_config.port,
        database=db_config.name,
    )

    engine = create_engine(
        url,
        pool_size=db_config.min_idle,
        max_overflow=max(db_config.max_pool_size - db_config.min_idle, 0),
        pool_timeout=db_config.pool_timeout_seconds,
        pool_pre_ping=db_config.pool_pre_ping,
        pool_recycle=POOL_RECYCLE_SECONDS,
        echo=db_config.echo,
        connect_args={"connect_timeout": CONNECT_TIMEOUT_SECONDS},
    )

    settings = get_settings()
    if settings.log_config.enable_sql_logging:
        event.listen(engine, "before_cursor_execute", _before_cursor_execute)
        event.listen(engine, "after_cursor_execute", _after_cursor_execute)
        logger.info("Registered slow query event listeners")

    logger.info(
        "Created data source for {} - max_pool_size: {}, min_idle: {}, timeout: {}ms",
        db_config.url,
        db_config.max_pool_size,
        db_config.min_idle,
        db_config.connection_timeout_ms,
    )

    return engine


class _DataSourceManager:
    """Internal class holding the process-wide engine.

    This class provides a singleton pattern without using global statements,
    which is preferred by our linting rules.
    """

    def __init__(self) -> None:
        self._engine: Engine | None = None
        self._lock = threading.Lock()

    def get_data_source(self) -> Engine:
        """Get or create the engine instance.

        Returns:
            Engine: The engine instance.
        """
        if self._engine is None:
            with self._lock:
                # Double-checked locking pattern
                if self._engine is None:
                    self._engine = create_data_source()
        return self._engine

    def reset(self) -> None:
        """Reset the manager state. Used primarily for testing."""
        with self._lock:
            self._engine = None


# Singleton instance
_data_source_manager = _DataSourceManager()


def get_data_source() -> Engine:
    """Get or create the process-wide pooled engine.

    Returns:
        Engine: The shared engine instance.

    Raises:
        ConfigurationError: If DB_HOST or DB_NAME is missing or invalid.
    """
    return _data_source_manager.get_data_source()


def check_database_connection(engine: Engine | None = None) -> tuple[bool, str | None]:
    """Check if the database connection is available.

    Used by the local server's health endpoint.

    Args:
        engine: Engine to probe; the shared engine when omitted.

    Returns:
        tuple[bool, str | None]: A tuple containing:
            - bool: True if connection successful, False otherwise
            - str | None: Error message if connection failed, None if successful
    """
    try:
        engine = engine or get_data_source()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).scalar()
    except (SQLAlchemyError, ConfigurationError) as e:
        return False, str(e)
    else:
        return True, None
