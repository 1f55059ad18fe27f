"""Session management models."""

from datetime import datetime
from typing import NewType
from uuid import UUID

from pydantic import BaseModel, Field

from specialisttalk.utils import now

AuthToken = NewType("AuthToken", str)


class Session(BaseModel):
    """User authentication session.

    Stored in Redis as JSON under ``session:<auth_token>`` with a TTL.
    """

    user_id: UUID
    username: str
    created_at: datetime = Field(default_factory=now)
