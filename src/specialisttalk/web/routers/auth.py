from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from specialisttalk.core.modules.user.models import UserView
from specialisttalk.web.deps import SESSION_COOKIE_NAME, AppDep, AuthTokenDep, PresentedTokenDep
from specialisttalk.web.openapi import ErrorResponse

router = APIRouter(prefix="/auth", tags=["auth"])


class SignUpRequest(BaseModel):
    """Registration request."""

    email: str = Field(..., description="Email address, unique per user")
    password: str = Field(..., description="Password, must follow the password policy")
    username: str = Field(..., description="Username, unique per user")
    name: str = Field("", description="First name")
    lastname: str = Field("", description="Last name")


class SignInRequest(BaseModel):
    """Authentication request."""

    email: str = Field(..., description="Email for authentication")
    password: str = Field(..., description="Password for authentication")


class RecoveryRequest(BaseModel):
    """Password recovery request."""

    email: str = Field("", description="Email of the account to recover")


class ResetRequest(BaseModel):
    """Password reset request."""

    password: str = Field("", description="New password, must follow the password policy")
    token: str = Field("", description="Recovery token received out of band")


class SessionResponse(BaseModel):
    """Authentication response."""

    token: str = Field(..., description="Session token for subsequent requests")
    user: UserView = Field(..., description="Authenticated user")


def _set_session_cookie(response: Response, token: str, max_age: int, secure: bool) -> None:
    """Set cookie for browser-based clients."""
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=max_age,  # matches session TTL
    )


@router.post(
    "/sing-up",
    summary="Register user",
    description="Create an account and open a session for it.",
    operation_id="signUp",
    responses={
        200: {"description": "Account created and authenticated"},
        400: {"model": ErrorResponse, "description": "Invalid body, field, password policy or duplicate username"},
        401: {"model": ErrorResponse, "description": "User already exists"},
    },
)
async def sign_up(data: SignUpRequest, app: AppDep, response: Response) -> SessionResponse:
    token, user = await app.sign_up(data.email, data.password, data.username, data.name, data.lastname)
    _set_session_cookie(response, token, app.config.session_ttl_seconds, app.config.session_cookie_secure)
    return SessionResponse(token=token, user=user)


@router.post(
    "/sing-in",
    summary="Authenticate user",
    description="Authenticate with email and password to receive a session token.",
    operation_id="signIn",
    responses={
        200: {"description": "Successfully authenticated"},
        400: {"model": ErrorResponse, "description": "Invalid body"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
    },
)
async def sign_in(data: SignInRequest, app: AppDep, response: Response) -> SessionResponse:
    token, user = await app.sign_in(data.email, data.password)
    _set_session_cookie(response, token, app.config.session_ttl_seconds, app.config.session_cookie_secure)
    return SessionResponse(token=token, user=user)


@router.post(
    "/recovery",
    summary="Request password recovery",
    description="Issue a single-use recovery token for the account. Responds the same whether or not the email is known.",
    operation_id="requestRecovery",
    status_code=204,
    responses={
        204: {"description": "Recovery requested"},
        406: {"model": ErrorResponse, "description": "Email is required"},
    },
)
async def request_recovery(app: AppDep, data: RecoveryRequest | None = None) -> None:
    # An empty body is accepted and reported by the domain check as a missing email
    if data is None:
        data = RecoveryRequest()
    await app.request_recovery(data.email)


@router.post(
    "/reset",
    summary="Reset password",
    description="Set a new password using a recovery token. The token can be used once.",
    operation_id="resetPassword",
    status_code=204,
    responses={
        204: {"description": "Password changed"},
        406: {"model": ErrorResponse, "description": "Missing or invalid token, or password policy not followed"},
    },
)
async def reset_password(app: AppDep, data: ResetRequest | None = None) -> None:
    if data is None:
        data = ResetRequest()
    await app.reset_password(data.token, data.password)


@router.get(
    "/session",
    summary="Get current session user",
    description="Get the user owning the presented session.",
    operation_id="getSession",
    responses={
        200: {"description": "Current user"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_session(app: AppDep, auth_token: AuthTokenDep) -> UserView:
    return await app.get_current_user(auth_token)


@router.delete(
    "/session",
    summary="End session",
    description="Invalidate the presented session. Always succeeds, even when the session is unknown.",
    operation_id="signOut",
    status_code=204,
    responses={204: {"description": "Session ended"}},
)
async def sign_out(app: AppDep, token: PresentedTokenDep, response: Response) -> None:
    await app.sign_out(token)
    response.delete_cookie(SESSION_COOKIE_NAME)
