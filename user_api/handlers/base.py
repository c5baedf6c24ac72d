"""Shared request lifecycle for the API Gateway handlers.

Every handler invocation goes through ``BaseHandler.handle``:

1. Resolve the correlation ID (``X-Correlation-ID`` header, else the Lambda
   request ID, else a new UUID) and bind it to the request context
2. Open a tracing span and a contextualized logger for the invocation
3. Run the concrete handler's ``process``
4. Translate failures into envelopes: ``ValidationError`` to 400,
   ``NotFoundError`` to 404, anything else to 500
5. Wrap the envelope in the proxy integration response shape; if that
   fails, answer with a fixed 500 body that needs no serialization

The request context is cleared on exit because warm processes serve many
invocations.
"""

from __future__ import annotations

import re
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Final

from loguru import logger

from user_api.core.config import get_settings
from user_api.core.constants import CORRELATION_ID_HEADER, JSON_CONTENT_TYPE
from user_api.core.context import RequestContext, generate_correlation_id
from user_api.core.error_context import sanitize_error_context, sanitize_headers
from user_api.core.exceptions import NotFoundError, UserApiError, ValidationError
from user_api.core.logging import setup_logging
from user_api.core.observability import setup_tracing, trace_operation
from user_api.core.types import GatewayEvent, GatewayResponse
from user_api.handlers.constants import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)
from user_api.handlers.schemas import ApiResponse
from user_api.users.service import UserService

if TYPE_CHECKING:
    from collections.abc import Callable

    from loguru import Logger

_DECIMAL_INTEGER: Final = re.compile(r"[+-]?[0-9]+")

# Written without serialization so it can be returned when building the
# regular envelope fails
FALLBACK_ERROR_BODY: Final = (
    '{"statusCode":500,"isSuccessful":false,'
    '"message":"Internal Server Error","data":null}'
)


def get_query_params(event: GatewayEvent) -> dict[str, str]:
    """Return the event's query string parameters, never None."""
    return event.get("queryStringParameters") or {}


def is_decimal_integer(raw: str) -> bool:
    """Whether ``raw`` is an optionally signed run of ASCII digits."""
    return _DECIMAL_INTEGER.fullmatch(raw) is not None


def get_header(event: GatewayEvent, name: str) -> str | None:
    """Look up a header case-insensitively."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def resolve_correlation_id(event: GatewayEvent, context: Any) -> str:
    """Pick the correlation ID for an invocation."""
    return (
        get_header(event, CORRELATION_ID_HEADER)
        or getattr(context, "aws_request_id", None)
        or generate_correlation_id()
    )


def to_gateway_response(response: ApiResponse[Any]) -> GatewayResponse:
    """Wrap an envelope in the API Gateway proxy response shape."""
    return {
        "statusCode": response.status_code,
        "headers": {"Content-Type": JSON_CONTENT_TYPE},
        "body": response.to_json().decode(),
    }


def fallback_error_response() -> GatewayResponse:
    return {
        "statusCode": HTTP_500_INTERNAL_SERVER_ERROR,
        "headers": {"Content-Type": JSON_CONTENT_TYPE},
        "body": FALLBACK_ERROR_BODY,
    }


def configure_runtime() -> None:
    """Set up logging and tracing for a handler process."""
    settings = get_settings()
    setup_logging(settings)
    setup_tracing(settings)


def invoke(
    factory: Callable[[], BaseHandler], event: GatewayEvent, context: Any
) -> GatewayResponse:
    """Run one Lambda invocation on the handler built by ``factory``.

    A handler that cannot be built (for example because the settings fail
    validation) yields the fallback 500 envelope; the next invocation
    tries again.
    """
    try:
        handler = factory()
    except Exception as e:
        logger.opt(exception=e).error(
            "Handler initialization failed: {}", type(e).__name__
        )
        return fallback_error_response()

    return handler.handle(event, context)


class BaseHandler(ABC):
    """Base class for API Gateway request handlers.

    Subclasses implement ``process`` and raise ``ValidationError`` or
    ``NotFoundError`` for client errors.

    Args:
        user_service: Service used to read users. A service over the
            process-wide pool is created when omitted.
    """

    name: ClassVar[str] = "handler"

    def __init__(self, user_service: UserService | None = None) -> None:
        self.user_service = user_service or UserService()

    @abstractmethod
    def process(self, event: GatewayEvent, log: Logger) -> ApiResponse[Any]:
        """Handle a validated invocation and return the success envelope.

        Args:
            event: API Gateway proxy event.
            log: Logger bound to the invocation's correlation ID.
        """

    def handle(self, event: GatewayEvent, context: Any = None) -> GatewayResponse:
        """Run one invocation end to end.

        Args:
            event: API Gateway proxy event.
            context: Lambda context object, if any.

        Returns:
            GatewayResponse: ``statusCode``, ``headers`` and JSON ``body``.
            The fallback 500 envelope when the response cannot be built.
        """
        correlation_id = resolve_correlation_id(event, context)
        RequestContext.set_correlation_id(correlation_id)
        start_time = time.perf_counter()
        log = logger.bind(correlation_id=correlation_id, handler=self.name)

        try:
            with (
                logger.contextualize(
                    correlation_id=correlation_id,
                    handler=self.name,
                    aws_request_id=getattr(context, "aws_request_id", None),
                ),
                trace_operation(f"handler.{self.name}", handler=self.name) as span,
            ):
                log.info(
                    "Request started",
                    method=event.get("httpMethod"),
                    path=event.get("path"),
                    query_params=get_query_params(event),
                    headers=sanitize_headers(event.get("headers")),
                )

                response = self._dispatch(event, log)

                span.set_attribute("http.status_code", response.status_code)
                log.info(
                    "Request completed",
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                )
                return to_gateway_response(response)
        except Exception as e:
            logger.opt(exception=e).error(
                "Failed to build response in {}: {}", self.name, type(e).__name__
            )
            return fallback_error_response()
        finally:
            RequestContext.clear()

    def _dispatch(self, event: GatewayEvent, log: Logger) -> ApiResponse[Any]:
        try:
            return self.process(event, log)
        except ValidationError as e:
            log.warning("Request validation failed: {}", e.message)
            return ApiResponse[None].of(HTTP_400_BAD_REQUEST, e.message)
        except NotFoundError as e:
            log.info("Resource not found: {}", e.message)
            return ApiResponse[None].of(HTTP_404_NOT_FOUND, e.message)
        except Exception as e:
            message = e.message if isinstance(e, UserApiError) else str(e)
            log.opt(exception=e).error(
                "Unhandled error in {}: {}",
                self.name,
                type(e).__name__,
                error_context=sanitize_error_context(e),
            )
            return ApiResponse[None].of(
                HTTP_500_INTERNAL_SERVER_ERROR, f"Internal Server Error: {message}"
            )
