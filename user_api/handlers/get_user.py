"""Handler for ``GET /users?id=<id>``."""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Any

from user_api.core.exceptions import NotFoundError, ValidationError
from user_api.core.observability import add_span_attributes
from user_api.core.types import GatewayEvent, GatewayResponse
from user_api.handlers.base import (
    BaseHandler,
    configure_runtime,
    get_query_params,
    invoke,
    is_decimal_integer,
)
from user_api.handlers.constants import HTTP_200_OK, MAX_USER_ID, MIN_USER_ID
from user_api.handlers.schemas import ApiResponse
from user_api.users.models import UserDTO

if TYPE_CHECKING:
    from loguru import Logger


def parse_user_id(raw: str | None) -> int:
    """Parse the ``id`` query parameter as a signed 64-bit integer.

    Raises:
        ValidationError: If the parameter is missing, not a decimal
            integer, or outside the 64-bit range.
    """
    if raw is None:
        raise ValidationError("Missing 'id' parameter")

    if not is_decimal_integer(raw):
        raise ValidationError(
            "Invalid ID format: must be a number", context={"id": raw}
        )

    user_id = int(raw)
    if not MIN_USER_ID <= user_id <= MAX_USER_ID:
        raise ValidationError(
            "Invalid ID format: must be a number", context={"id": raw}
        )

    return user_id


class GetUserHandler(BaseHandler):
    """Returns a single user by identifier."""

    name = "get_user"

    def process(self, event: GatewayEvent, log: Logger) -> ApiResponse[UserDTO]:
        user_id = parse_user_id(get_query_params(event).get("id"))
        add_span_attributes(user_id=user_id)

        user = self.user_service.get_user_by_id(user_id, log)
        if user is None:
            raise NotFoundError(
                f"User not found with ID: {user_id}", context={"id": user_id}
            )

        return ApiResponse[UserDTO].of(HTTP_200_OK, "User found", user)


@cache
def _get_handler() -> GetUserHandler:
    configure_runtime()
    return GetUserHandler()


def get_user_handler(event: GatewayEvent, context: Any) -> GatewayResponse:
    """AWS Lambda entry point; one handler instance per process."""
    return invoke(_get_handler, event, context)
