from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


class PolicyViolationError(ValidationError):
    """Raised when a candidate password does not satisfy the password policy.

    The error is scoped to a single field so the message reads
    ``"<field>: the policy is not followed"``.
    """

    def __init__(self, field: str = "password") -> None:
        self.field = field
        super().__init__(f"{field}: the policy is not followed")


class ConflictError(UserError):
    """Raised when a write violates a uniqueness constraint."""


class NotAcceptableError(UserError):
    """Raised when a request is well-formed but cannot be accepted (missing or invalid token, field)."""
