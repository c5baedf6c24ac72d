"""Response envelope shared by every request handler.

All handler bodies are an ``ApiResponse`` serialized with camelCase keys:

    {"statusCode": 200, "isSuccessful": true, "message": "User found",
     "data": {"id": 42, "username": "ada", "email": "a@x"}}
"""

from typing import Generic, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from user_api.handlers.constants import HTTP_400_BAD_REQUEST

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """Uniform response envelope.

    Attributes:
        status_code: HTTP status code, repeated in the body.
        is_successful: True exactly when ``status_code`` is below 400.
        message: Human-readable outcome.
        data: Payload, or None for failures.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    status_code: int = Field(ge=100, le=599)
    is_successful: bool
    message: str
    data: DataT | None = None

    @classmethod
    def of(
        cls, status_code: int, message: str, data: DataT | None = None
    ) -> "ApiResponse[DataT]":
        """Build an envelope whose success flag follows the status code."""
        return cls(
            status_code=status_code,
            is_successful=status_code < HTTP_400_BAD_REQUEST,
            message=message,
            data=data,
        )

    def to_json(self) -> bytes:
        """Serialize with camelCase keys in declaration order."""
        return orjson.dumps(self.model_dump(by_alias=True, mode="json"))
