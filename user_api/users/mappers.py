"""Row and DTO mapping functions for users."""

from typing import Any

from sqlalchemy.engine import Row

from user_api.users.models import User, UserDTO


def map_user_row(row: Row[Any]) -> User:
    """Project a positioned ``"User"`` row onto a User.

    Raises:
        AttributeError: If a column is missing from the row.
        pydantic.ValidationError: If a column value does not validate.
    """
    return User(id=row.id, username=row.username, email=row.email)


def to_dto(user: User) -> UserDTO:
    return UserDTO(id=user.id, username=user.username, email=user.email)
