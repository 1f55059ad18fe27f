import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from specialisttalk.errors import (
    AuthenticationError,
    ConflictError,
    NotAcceptableError,
    NotFoundError,
    PolicyViolationError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def create_json_error_response(status_code: int, message: str, error_type: str | None = None) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    if isinstance(exc, AuthenticationError):
        status_code = 401
        error_type = "authentication_error"
    elif isinstance(exc, NotFoundError):
        status_code = 404
        error_type = "not_found"
    elif isinstance(exc, NotAcceptableError):
        status_code = 406
        error_type = "not_acceptable"
    elif isinstance(exc, PolicyViolationError):
        status_code = 400
        error_type = "policy_violation"
    elif isinstance(exc, ValidationError):
        status_code = 400
        error_type = "validation_error"
    elif isinstance(exc, ConflictError):
        status_code = 400
        error_type = "conflict"
    else:
        # Default for any other UserError subclass
        status_code = 400
        error_type = "bad_request"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type)


async def request_validation_error_handler(_: Request, exc: Exception) -> Response:
    """Report unparseable or incomplete request bodies (400 instead of FastAPI's 422)."""
    logger.debug("Request body rejected: %s", exc)
    return create_json_error_response(status_code=400, message="body has not valid format", error_type="bad_request")


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
