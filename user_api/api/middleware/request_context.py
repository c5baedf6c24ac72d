"""Request context middleware for the local development server.

Extracts or generates the correlation ID of each HTTP request, binds it to
the request context and to Loguru, and echoes it on the response. The
handlers behind ``/users`` receive the same ID through the gateway event
they are given, so local logs look like the deployed ones.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from user_api.core.constants import CORRELATION_ID_HEADER
from user_api.core.context import RequestContext, generate_correlation_id


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to manage request context and correlation IDs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        request.state.correlation_id = correlation_id
        RequestContext.set_correlation_id(correlation_id)

        with logger.contextualize(correlation_id=correlation_id):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response
