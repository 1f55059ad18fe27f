from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from specialisttalk.core.db import MongoModel
from specialisttalk.utils import now

# Marks a user with no outstanding password recovery request
RECOVERY_TOKEN_SENTINEL = "-"


class User(MongoModel):
    """User domain model with credentials.

    Indexed on email - unique, username - unique, recovery_token.
    """

    email: str
    username: str
    name: str = ""
    last_name: str = ""
    password_hash: str  # bcrypt hash
    recovery_token: str = RECOVERY_TOKEN_SENTINEL
    owner: str  # authorization marker, never overwritten by partial updates
    created_at: datetime = Field(default_factory=now)


class UserView(BaseModel):
    """User account information (API representation)."""

    id: UUID = Field(..., description="User ID")
    email: str = Field(..., description="Email address")
    username: str = Field(..., description="Username")
    name: str = Field(..., description="First name")
    lastname: str = Field(..., description="Last name")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        """Create view model from domain model."""
        return cls(id=user.id, email=user.email, username=user.username, name=user.name, lastname=user.last_name)
