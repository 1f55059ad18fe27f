import secrets
from uuid import UUID

import structlog
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from specialisttalk.core.core import Service
from specialisttalk.core.modules.session.models import AuthToken, Session
from specialisttalk.core.modules.user.models import User
from specialisttalk.errors import AuthenticationError, NotFoundError

logger = structlog.get_logger(__name__)


def session_key(auth_token: str) -> str:
    return f"session:{auth_token}"


def user_sessions_key(user_id: UUID) -> str:
    return f"user_sessions:{user_id}"


class SessionService(Service):
    """Service for managing user sessions in Redis."""

    async def create_session(self, user: User) -> AuthToken:
        auth_token = AuthToken(secrets.token_urlsafe(32))
        ttl = self.config.session_ttl_seconds
        session = Session(user_id=user.id, username=user.username)
        index_key = user_sessions_key(user.id)
        # Session and its index entry are written in one MULTI/EXEC
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(session_key(auth_token), session.model_dump_json(), ex=ttl)
            pipe.sadd(index_key, auth_token)
            pipe.expire(index_key, ttl)
            await pipe.execute()
        logger.debug("session_created", user_id=str(user.id))
        return auth_token

    async def get_session(self, auth_token: AuthToken) -> Session:
        raw = await self.redis.get(session_key(auth_token))
        if raw is None:
            raise AuthenticationError("Invalid or expired session")
        try:
            return Session.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning("session_malformed")
            raise AuthenticationError("Invalid or expired session") from e

    async def get_authenticated_user(self, auth_token: AuthToken) -> User:
        session = await self.get_session(auth_token)
        try:
            return await self.core.services.user.get_user(session.user_id)
        except NotFoundError as e:
            raise AuthenticationError("Invalid or expired session") from e

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        try:
            await self.get_session(auth_token)
        except AuthenticationError:
            return False
        return True

    async def invalidate_session(self, auth_token: AuthToken) -> None:
        """Invalidate a session. Unknown tokens are ignored."""
        raw = await self.redis.getdel(session_key(auth_token))
        if raw is None:
            return
        try:
            session = Session.model_validate_json(raw)
        except PydanticValidationError:
            return
        await self.redis.srem(user_sessions_key(session.user_id), auth_token)
        logger.debug("session_revoked", user_id=str(session.user_id))

    async def invalidate_user_sessions(self, user_id: UUID) -> int:
        """Revoke every session of a user, return how many were live."""
        index_key = user_sessions_key(user_id)
        tokens = await self.redis.smembers(index_key)
        removed = 0
        if tokens:
            removed = await self.redis.delete(*(session_key(token) for token in tokens))
        await self.redis.delete(index_key)
        logger.info("user_sessions_revoked", user_id=str(user_id), count=removed)
        return int(removed)

    async def notify_disconnect(self, username: str) -> None:
        """Tell chat workers to drop the user's live connections."""
        try:
            await self.redis.publish(self.config.disconnect_channel, username)
        except RedisError:
            logger.warning("disconnect_notify_failed", username=username, exc_info=True)
