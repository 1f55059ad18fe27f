from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as aioredis
import structlog
from pymongo import AsyncMongoClient
from redis.exceptions import RedisError

from specialisttalk.config import Config
from specialisttalk.core.core import Core
from specialisttalk.core.modules.session.models import AuthToken
from specialisttalk.core.modules.user.models import User, UserView
from specialisttalk.errors import AuthenticationError

logger = structlog.get_logger(__name__)


class App:
    """Facade for all authentication workflows, the only entry point used by the web layer."""

    def __init__(
        self,
        config: Config,
        mongo_client: AsyncMongoClient[dict[str, Any]] | None = None,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self._core = Core(config, mongo_client=mongo_client, redis=redis)

    @property
    def config(self) -> Config:
        return self._core.config

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        """Check if authentication token is valid."""
        return await self._core.services.session.is_auth_token_valid(auth_token)

    async def sign_up(
        self, email: str, password: str, username: str, name: str = "", last_name: str = ""
    ) -> tuple[AuthToken, UserView]:
        """Register a user and open a session for it."""
        user = await self._core.services.user.create_user(email, password, username, name, last_name)
        return await self._open_session(user)

    async def sign_in(self, email: str, password: str) -> tuple[AuthToken, UserView]:
        """Authenticate user and create session."""
        user = await self._core.services.user.verify_password(email, password)
        if user is None:
            raise AuthenticationError("password: password is not valid")
        return await self._open_session(user)

    async def request_recovery(self, email: str) -> None:
        """Issue a recovery token. Delivery of the token happens out of band."""
        await self._core.services.recovery.request_recovery(email)

    async def reset_password(self, token: str, password: str) -> None:
        """Consume a recovery token and set a new password."""
        await self._core.services.recovery.reset_password(token, password)

    async def get_current_user(self, auth_token: AuthToken) -> UserView:
        """Get current authenticated user profile."""
        user = await self._core.services.session.get_authenticated_user(auth_token)
        return UserView.from_domain(user)

    async def sign_out(self, auth_token: AuthToken | None) -> None:
        """Revoke the session, best-effort.

        Sign-out is idempotent from the client's point of view: an unknown
        token or a storage failure still ends in success.
        """
        if not auth_token:
            return
        session_service = self._core.services.session
        try:
            session = await session_service.get_session(auth_token)
        except AuthenticationError:
            return
        except RedisError:
            logger.warning("sign_out_lookup_failed", exc_info=True)
            return

        try:
            await session_service.invalidate_session(auth_token)
        except RedisError:
            logger.warning("sign_out_revoke_failed", exc_info=True)
        await session_service.notify_disconnect(session.username)

    async def _open_session(self, user: User) -> tuple[AuthToken, UserView]:
        token = await self._core.services.session.create_session(user)
        return token, UserView.from_domain(user)
