"""Local development server wrapping the API Gateway handlers.

Deployed, the API is two Lambda functions behind API Gateway. Locally the
same handlers are served by FastAPI:

- ``GET /ping``: liveness probe
- ``GET /health``: database connectivity check
- ``GET /users``: translated into a gateway proxy event and dispatched to
  ``GetUserHandler`` when ``id`` is present, else to ``GetAllUsersHandler``;
  the handler's status, headers and body are returned unchanged
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from loguru import logger
from sqlalchemy.engine import Engine

from user_api.api.middleware.request_context import RequestContextMiddleware
from user_api.core.config import Settings, get_settings
from user_api.core.constants import CORRELATION_ID_HEADER
from user_api.core.logging import setup_logging
from user_api.core.observability import instrument_app, setup_tracing
from user_api.core.types import GatewayEvent
from user_api.handlers.get_all_users import GetAllUsersHandler
from user_api.handlers.get_user import GetUserHandler
from user_api.infrastructure.database.data_service import DataService
from user_api.infrastructure.database.pool import check_database_connection
from user_api.users.models import User
from user_api.users.service import UserService


def build_gateway_event(request: Request) -> GatewayEvent:
    """Translate an HTTP request into an API Gateway proxy event."""
    headers = dict(request.headers)
    correlation_id = getattr(request.state, "correlation_id", None)
    if correlation_id:
        headers[CORRELATION_ID_HEADER] = correlation_id

    return {
        "httpMethod": request.method,
        "path": request.url.path,
        "headers": headers,
        "queryStringParameters": dict(request.query_params) or None,
    }


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().
        engine: Optional engine to serve from instead of the process-wide pool.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    user_service = UserService(DataService[User](engine))
    get_user = GetUserHandler(user_service)
    get_all_users = GetAllUsersHandler(user_service)

    @asynccontextmanager
    async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
        is_healthy, error_msg = check_database_connection(engine)
        if is_healthy:
            logger.info("Database connection successful")
        else:
            # The pool tolerates an unreachable database; requests will fail instead
            logger.warning("Database not reachable at startup: {}", error_msg)

        logger.info(
            "Application startup complete - {} v{}",
            app_instance.title,
            app_instance.version,
        )
        yield
        logger.info("Application shutdown complete")

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    application.add_middleware(RequestContextMiddleware)

    @application.get("/ping")
    def ping() -> dict[str, str]:
        return {"message": "pong"}

    @application.get("/health")
    def health() -> dict[str, object]:
        """Report database connectivity; "degraded" rather than down on failure."""
        is_healthy, error_msg = check_database_connection(engine)
        if not is_healthy:
            logger.warning("Database health check failed: {}", error_msg)

        return {"status": "healthy" if is_healthy else "degraded", "database": is_healthy}

    @application.get("/users")
    def users(request: Request) -> Response:
        """Serve either handler through a synthesized gateway event."""
        event = build_gateway_event(request)
        handler = get_user if "id" in request.query_params else get_all_users
        result = handler.handle(event)

        return Response(
            content=result["body"],
            status_code=result["statusCode"],
            headers=result["headers"],
        )

    instrument_app(application, settings, engine)

    return application


app = create_app()
