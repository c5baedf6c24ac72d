"""User read operations on top of the generic data access layer."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger

from user_api.infrastructure.constants import USER_TABLE
from user_api.infrastructure.database.data_service import DataService
from user_api.users.mappers import map_user_row, to_dto
from user_api.users.models import User, UserDTO

if TYPE_CHECKING:
    from loguru import Logger


class UserService:
    """Reads users and converts them to their transport shape.

    Failures from the data access layer (``DbError``, ``MappingError``,
    ``ArgumentError``) pass through unchanged; the request handlers decide
    how to report them.

    Args:
        data_service: Data access layer to read from. A service over the
            process-wide pool is created when omitted.
    """

    def __init__(self, data_service: DataService[User] | None = None) -> None:
        self.data_service = data_service or DataService[User]()

    def get_user_by_id(self, user_id: int, log: Logger | None = None) -> UserDTO | None:
        """Fetch one user by primary key.

        Args:
            user_id: Identifier of the user.
            log: Logger carrying the caller's request context.

        Returns:
            UserDTO | None: The user, or None when no row matches.
        """
        log = log or logger
        log.debug("Fetching user by ID: {}", user_id)

        user = self.data_service.read(USER_TABLE, "id", user_id, map_user_row)
        if user is None:
            log.debug("User not found with ID: {}", user_id)
            return None

        return to_dto(user)

    def get_all_users(
        self, page_size: int, page_number: int, log: Logger | None = None
    ) -> list[UserDTO]:
        """Fetch one page of users in the table's natural order.

        Returns:
            list[UserDTO]: Up to ``page_size`` users; empty past the last page.
        """
        log = log or logger
        log.debug("Fetching users page {} (size {})", page_number, page_size)

        users = self.data_service.read_paginated(
            USER_TABLE, page_size, page_number, map_user_row
        )
        log.debug("Fetched {} users", len(users))

        return [to_dto(user) for user in users]
