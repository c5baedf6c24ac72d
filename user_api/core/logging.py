"""Structured logging for the Lambda handlers and the local server.

This module configures Loguru for structured, contextual logging with an
output format that suits where the code runs.

Formatter types:
- **console**: Human-readable with inline context (local development)
- **json**: Generic structured format (self-hosted)
- **aws**: CloudWatch Logs Insights optimized format (Lambda)

Standard library logging (SQLAlchemy, uvicorn) is intercepted and routed
through Loguru so that every line shares the same format and carries the
correlation ID bound by the request handlers.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Final, cast

import orjson
from loguru import logger

from user_api.core.config import get_settings
from user_api.core.constants import REDACTED

if TYPE_CHECKING:
    from loguru import Message

    from user_api.core.config import Settings


class _LoggingState:
    """Simple state holder to track if logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

# Shown first, in this order, by the console formatter
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "handler",
    "method",
    "path",
    "status_code",
    "duration_ms",
)


def _escape(value: object) -> str:
    """Escape braces so loguru does not treat them as format fields."""
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_priority_field(field: str, value: object) -> str:
    """Format a priority field for display."""
    if field == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        value = str(value)[:CORRELATION_ID_DISPLAY_LENGTH]
    elif field == "duration_ms":
        value = f"{value}ms"
    return _escape(value)


def _format_extra_field(key: str, value: object) -> str:
    """Format an extra field for display, redacting configured sensitive keys."""
    str_value = str(value)
    if key in get_settings().log_config.sensitive_fields:
        str_value = REDACTED
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def _format_context_fields(extra: dict[str, Any]) -> list[str]:
    """Format all context fields from extra data.

    Args:
        extra: Extra fields from the log record.

    Returns:
        list[str]: List of formatted context parts.
    """
    context_parts = [
        f"<yellow>{_format_priority_field(field, extra[field])}</yellow>"
        for field in PRIORITY_FIELDS
        if extra.get(field) is not None
    ]

    for key, value in extra.items():
        if key not in PRIORITY_FIELDS and not key.startswith("_") and value is not None:
            context_parts.append(f"<dim>{_format_extra_field(key, value)}</dim>")

    return context_parts


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format log record for console with all context fields visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Formatted log string with context.
    """
    try:
        timestamp = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        parts = [
            f"<green>{timestamp}</green>",
            f"<level>{record['level'].name: <8}</level>",
            f"<cyan>{record['name']}:{record['function']}:{record['line']}</cyan>",
        ]

        if context_parts := _format_context_fields(record.get("extra", {})):
            parts.append(" ".join(f"[{part}]" for part in context_parts))

        parts.append(_escape(record.get("message", "")))

        if record.get("exception"):
            parts.append("\n{exception}")

        return " | ".join(parts) + "\n"
    except (AttributeError, TypeError, ValueError, KeyError) as e:
        # Fallback to default format if anything goes wrong
        logger.trace(f"Failed to format log record: {e}")
        return DEFAULT_LOG_FORMAT + "\n"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru.

    SQLAlchemy, the Lambda runtime bootstrap and uvicorn log through the
    standard library; this handler forwards their records to Loguru.
    """

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _exception_info(record: dict[str, Any]) -> dict[str, Any] | None:
    """Extract exception details from a Loguru record."""
    exc = record.get("exception")
    if not exc:
        return None
    return {
        "type": exc.type.__name__ if exc.type else None,
        "message": str(exc.value) if exc.value else None,
    }


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format log record as generic JSON.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    if extra := record.get("extra", {}):
        log_entry.update({k: v for k, v in extra.items() if not k.startswith("_")})

    if exception := _exception_info(record):
        log_entry["exception"] = exception

    return orjson.dumps(
        log_entry, default=str, option=orjson.OPT_NON_STR_KEYS
    ).decode() + "\n"


def serialize_for_aws(record: dict[str, Any]) -> str:
    """Format log record for AWS CloudWatch.

    Follows the CloudWatch Logs Insights conventions so that requestId and
    traceId can be queried directly.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry for AWS with newline.
    """
    log_entry: dict[str, Any] = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }

    # Lambda runtime metadata
    if function_name := os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
        log_entry["functionName"] = function_name

    if extra := record.get("extra", {}):
        if correlation_id := extra.get("correlation_id"):
            log_entry["traceId"] = correlation_id

        if request_id := extra.get("aws_request_id"):
            log_entry["requestId"] = request_id

        for key, value in extra.items():
            if not key.startswith("_") and key not in log_entry:
                log_entry[key] = value

    if error := _exception_info(record):
        log_entry["error"] = error

    return orjson.dumps(
        log_entry, default=str, option=orjson.OPT_NON_STR_KEYS
    ).decode() + "\n"


# Structured formatters; anything else logs through format_console_with_context
LOG_FORMATTERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "json": serialize_for_json,
    "aws": serialize_for_aws,
}


def setup_logging(settings: Settings) -> None:
    """Configure Loguru with pluggable formatters.

    Safe to call from every handler module: only the first call in a
    process has any effect.

    Args:
        settings: Application settings containing log configuration.
    """
    if _state.configured:
        return

    logger.remove()

    formatter_type = settings.log_config.log_formatter_type or "console"
    formatter = LOG_FORMATTERS.get(formatter_type)

    if formatter is None:
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: Message) -> None:
            """Custom sink that formats and writes structured logs."""
            sys.stdout.write(formatter(cast("dict[str, Any]", message.record)))
            sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            # Lambda freezes the process between invocations; write synchronously
            enqueue=False,
            diagnose=False,
            backtrace=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers = [InterceptHandler()]
        uvicorn_logger.propagate = False

    logging.getLogger("urllib3.connectionpool").disabled = True

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        formatter_type=formatter_type,
        log_level=settings.log_config.log_level,
    )

    _state.configured = True
