from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from specialisttalk.app import App
from specialisttalk.core.modules.session.models import AuthToken
from specialisttalk.errors import AuthenticationError

SESSION_COOKIE_NAME = "token"
API_KEY_HEADER_NAME = "X-API-Key"

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
api_key_scheme = APIKeyHeader(name=API_KEY_HEADER_NAME, auto_error=False)
cookie_scheme = APIKeyCookie(name=SESSION_COOKIE_NAME, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_presented_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    api_key: Annotated[str | None, Depends(api_key_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> AuthToken | None:
    """Get the token the client presented, without validating it.

    Lookup order: Authorization Bearer header, X-API-Key header (web chat client), cookie.
    """
    if credentials and credentials.scheme == "Bearer" and credentials.credentials:
        return AuthToken(credentials.credentials)
    if api_key:
        return AuthToken(api_key)
    if token_cookie:
        return AuthToken(token_cookie)
    return None


async def get_auth_token(
    app: Annotated[App, Depends(get_app)],
    token: Annotated[AuthToken | None, Depends(get_presented_token)],
) -> AuthToken:
    """Get and validate auth token from Authorization Bearer header, X-API-Key header or cookie."""
    if token and await app.is_auth_token_valid(token):
        return token
    raise AuthenticationError


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
AuthTokenDep = Annotated[AuthToken, Depends(get_auth_token)]
PresentedTokenDep = Annotated[AuthToken | None, Depends(get_presented_token)]
