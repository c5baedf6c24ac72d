"""User domain record and its transport shape."""

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """A row of the ``"User"`` table."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Primary key")
    username: str = Field(min_length=1, description="Login name")
    email: str = Field(description="Contact email address")


class UserDTO(BaseModel):
    """User as returned to API clients.

    Kept separate from ``User`` so the persisted shape can change without
    touching the response contract.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
