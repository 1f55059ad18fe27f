import secrets
import string
from datetime import UTC, datetime

ALPHANUM_CHARSET = string.ascii_letters + string.digits


def now() -> datetime:
    return datetime.now(UTC)


def random_alphanum(length: int) -> str:
    """Cryptographically random string drawn from [A-Za-z0-9]."""
    return "".join(secrets.choice(ALPHANUM_CHARSET) for _ in range(length))
