import asyncio
import secrets
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import DuplicateKeyError

from specialisttalk.core.core import Service
from specialisttalk.core.modules.user import passwords
from specialisttalk.core.modules.user.models import User
from specialisttalk.core.modules.user.validators import (
    check_password_policy,
    normalize_email,
    validate_email,
    validate_username,
)
from specialisttalk.errors import AuthenticationError, ConflictError, NotFoundError

logger = structlog.get_logger(__name__)

# Fields a partial update may never touch
PROTECTED_FIELDS = frozenset({"owner", "_id", "id"})


class UserService(Service):
    """Credential store backed by the ``users`` collection."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]], redis: aioredis.Redis) -> None:
        super().__init__(database, redis)
        self._collection = database.get_collection("users")
        self._dummy_hash: str | None = None

    async def get_user(self, user_id: UUID) -> User:
        """Get user by ID."""
        doc = await self._collection.find_one({"_id": user_id})
        if doc is None:
            raise NotFoundError(f"User '{user_id}' not found")
        return User.model_validate(doc)

    async def find_by_email_optional(self, email: str) -> User | None:
        doc = await self._collection.find_one({"email": normalize_email(email)})
        return User.model_validate(doc) if doc is not None else None

    async def find_by_email(self, email: str) -> User:
        """Get user by email. Raises NotFoundError if not found."""
        user = await self.find_by_email_optional(email)
        if user is None:
            raise NotFoundError(f"User '{email}' not found")
        return user

    async def insert(self, user: User) -> User:
        """Insert a new user, relying on the unique indexes to reject duplicates."""
        try:
            await self._collection.insert_one(user.to_mongo())
        except DuplicateKeyError as e:
            raise ConflictError("user already exists") from e
        return user

    async def update_by_query(self, patch: dict[str, Any], query: dict[str, Any]) -> int:
        """Apply a partial update to every user matching query, return the matched count."""
        res = await self._collection.update_many(query, {"$set": _strip_protected(patch)})
        return res.matched_count

    async def consume_by_query(self, patch: dict[str, Any], query: dict[str, Any]) -> User | None:
        """Atomically apply a partial update to one user matching query and return it."""
        doc = await self._collection.find_one_and_update(
            query,
            {"$set": _strip_protected(patch)},
            return_document=ReturnDocument.AFTER,
        )
        return User.model_validate(doc) if doc is not None else None

    async def create_user(self, email: str, password: str, username: str, name: str = "", last_name: str = "") -> User:
        """Register a user: uniqueness and policy checks first, nothing is written on failure."""
        email = validate_email(email)
        if await self.find_by_email_optional(email) is not None:
            raise AuthenticationError("user already exists")

        username = validate_username(username)
        check_password_policy(password, self.config.password_policy)
        password_hash = await self.hash_password(password)

        user = User(
            email=email,
            username=username,
            name=name.strip(),
            last_name=last_name.strip(),
            password_hash=password_hash,
            owner=username,
        )
        await self.insert(user)
        logger.info("user_signed_up", user_id=str(user.id), username=username)
        return user

    async def verify_password(self, email: str, password: str) -> User | None:
        """Return the user when password matches, None for unknown email or wrong password."""
        user = await self.find_by_email_optional(email)
        # Unknown emails are checked against a dummy hash of the same cost
        password_hash = user.password_hash if user is not None else await self._get_dummy_hash()
        if not await asyncio.to_thread(passwords.check_password, password_hash, password):
            return None
        return user

    async def hash_password(self, password: str) -> str:
        """bcrypt is deliberately slow, keep it off the event loop."""
        return await asyncio.to_thread(passwords.hash_password, password, self.config.bcrypt_rounds)

    async def _get_dummy_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await self.hash_password(secrets.token_urlsafe(16))
        return self._dummy_hash

    async def on_start(self) -> None:
        """Create indexes."""
        await self._collection.create_index([("email", 1)], unique=True)
        await self._collection.create_index([("username", 1)], unique=True)
        await self._collection.create_index([("recovery_token", 1)])
        logger.debug("user_service_started")


def _strip_protected(patch: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in patch.items() if key not in PROTECTED_FIELDS}
