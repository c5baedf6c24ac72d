"""Handler for ``GET /users?pageSize=<n>&pageNumber=<n>``."""

from __future__ import annotations

from functools import cache
from typing import TYPE_CHECKING, Any

from user_api.core.exceptions import ValidationError
from user_api.core.observability import add_span_attributes
from user_api.core.types import GatewayEvent, GatewayResponse
from user_api.handlers.base import (
    BaseHandler,
    configure_runtime,
    get_query_params,
    invoke,
    is_decimal_integer,
)
from user_api.handlers.constants import (
    DEFAULT_PAGE_NUMBER,
    DEFAULT_PAGE_SIZE,
    HTTP_200_OK,
    MAX_PAGE_PARAM,
)
from user_api.handlers.schemas import ApiResponse
from user_api.users.models import UserDTO

if TYPE_CHECKING:
    from loguru import Logger


def parse_page_param(raw: str | None, default: int) -> int:
    """Parse one pagination parameter, falling back to ``default`` when absent.

    Raises:
        ValidationError: If the value is not a 32-bit decimal integer or
            is not strictly positive.
    """
    if raw is None:
        return default

    if not is_decimal_integer(raw):
        raise ValidationError(
            "Pagination parameters must be numeric", context={"value": raw}
        )

    value = int(raw)
    # Page values are 32-bit
    if not -MAX_PAGE_PARAM - 1 <= value <= MAX_PAGE_PARAM:
        raise ValidationError(
            "Pagination parameters must be numeric", context={"value": raw}
        )

    if value < 1:
        raise ValidationError(
            "Pagination parameters must be positive", context={"value": raw}
        )

    return value


class GetAllUsersHandler(BaseHandler):
    """Returns one page of users."""

    name = "get_all_users"

    def process(
        self, event: GatewayEvent, log: Logger
    ) -> ApiResponse[list[UserDTO]]:
        params = get_query_params(event)
        page_size = parse_page_param(params.get("pageSize"), DEFAULT_PAGE_SIZE)
        page_number = parse_page_param(params.get("pageNumber"), DEFAULT_PAGE_NUMBER)
        add_span_attributes(page_size=page_size, page_number=page_number)

        users = self.user_service.get_all_users(page_size, page_number, log)

        return ApiResponse[list[UserDTO]].of(
            HTTP_200_OK, "Users retrieved successfully", users
        )


@cache
def _get_handler() -> GetAllUsersHandler:
    configure_runtime()
    return GetAllUsersHandler()


def get_all_users_handler(event: GatewayEvent, context: Any) -> GatewayResponse:
    """AWS Lambda entry point; one handler instance per process."""
    return invoke(_get_handler, event, context)
