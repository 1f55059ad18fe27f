import re
from dataclasses import dataclass

from specialisttalk.errors import PolicyViolationError, ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class PasswordPolicy:
    """Configurable password strength rules."""

    min_length: int = 8
    require_lowercase: bool = True
    require_uppercase: bool = True
    require_digit: bool = True
    require_symbol: bool = True


def check_password_policy(password: str, policy: PasswordPolicy) -> None:
    """Validate password against the configured policy.

    Requirements:
    - At least ``policy.min_length`` characters, at most 72 bytes once UTF-8 encoded
    - No whitespace characters
    - Lowercase, uppercase, digit and symbol characters, each when the policy asks for it

    Raises:
        PolicyViolationError: If password doesn't meet requirements
    """
    if len(password) < policy.min_length or len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise PolicyViolationError("password")

    if any(char.isspace() for char in password):
        raise PolicyViolationError("password")

    if policy.require_lowercase and not any(char.islower() for char in password):
        raise PolicyViolationError("password")
    if policy.require_uppercase and not any(char.isupper() for char in password):
        raise PolicyViolationError("password")
    if policy.require_digit and not any(char.isdigit() for char in password):
        raise PolicyViolationError("password")
    if policy.require_symbol and all(char.isalnum() for char in password):
        raise PolicyViolationError("password")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> str:
    """Return the normalized email or raise ValidationError."""
    email = normalize_email(email)
    if not email:
        raise ValidationError("email: non zero value required")
    if not EMAIL_RE.fullmatch(email):
        raise ValidationError(f"email: {email} does not validate as email")
    return email


def validate_username(username: str) -> str:
    """Return the stripped username or raise ValidationError."""
    username = username.strip()
    if not username:
        raise ValidationError("username: non zero value required")
    if not USERNAME_RE.fullmatch(username):
        raise ValidationError("username: only letters, digits, '.', '_' and '-' are allowed (max 64)")
    return username
