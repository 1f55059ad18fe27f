import structlog
from redis.exceptions import RedisError

from specialisttalk.core.core import Service
from specialisttalk.core.modules.user.models import RECOVERY_TOKEN_SENTINEL, User
from specialisttalk.core.modules.user.validators import check_password_policy, normalize_email
from specialisttalk.errors import NotAcceptableError, PolicyViolationError
from specialisttalk.utils import random_alphanum

logger = structlog.get_logger(__name__)

RECOVERY_TOKEN_LENGTH = 40


class RecoveryService(Service):
    """Issues and consumes single-use password recovery tokens.

    A user is either idle (``recovery_token`` holds the sentinel) or pending
    (``recovery_token`` holds the last issued token). A new request replaces
    any pending token, so only the most recently delivered token works.
    Consumption is a single atomic find-and-update keyed on the token, so a
    token can reset the password at most once.
    """

    async def request_recovery(self, email: str) -> str | None:
        """Issue a fresh token for the user, return it or None when email is unknown."""
        email = normalize_email(email)
        if not email:
            raise NotAcceptableError("email is required")

        token = random_alphanum(RECOVERY_TOKEN_LENGTH)
        matched = await self.core.services.user.update_by_query({"recovery_token": token}, {"email": email})
        if matched == 0:
            logger.info("recovery_requested_unknown_email")
            return None
        logger.info("recovery_requested")
        return token

    async def reset_password(self, token: str, password: str) -> User:
        """Replace the password of the user holding token and return the sentinel to its place."""
        if not token or token == RECOVERY_TOKEN_SENTINEL:
            raise NotAcceptableError("token is required")

        try:
            check_password_policy(password, self.config.password_policy)
        except PolicyViolationError as e:
            raise NotAcceptableError(str(e)) from e

        password_hash = await self.core.services.user.hash_password(password)
        user = await self.core.services.user.consume_by_query(
            {"password_hash": password_hash, "recovery_token": RECOVERY_TOKEN_SENTINEL},
            {"recovery_token": token},
        )
        if user is None:
            raise NotAcceptableError("token is not valid")

        # Password is already committed here, session revocation is best-effort
        try:
            await self.core.services.session.invalidate_user_sessions(user.id)
        except RedisError:
            logger.warning("reset_session_revoke_failed", user_id=str(user.id), exc_info=True)
        logger.info("password_reset", user_id=str(user.id))
        return user
