from typing import Any

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from pydantic import BaseModel, Field

from specialisttalk.web.deps import API_KEY_HEADER_NAME, SESSION_COOKIE_NAME

API_PREFIX = "/api/v1"

# Endpoints reachable without a session
PUBLIC_ENDPOINTS = {
    ("POST", f"{API_PREFIX}/auth/sing-up"),
    ("POST", f"{API_PREFIX}/auth/sing-in"),
    ("POST", f"{API_PREFIX}/auth/recovery"),
    ("POST", f"{API_PREFIX}/auth/reset"),
    ("DELETE", f"{API_PREFIX}/auth/session"),
    ("GET", "/health"),
}


def set_custom_openapi(app: FastAPI) -> None:
    def custom_openapi() -> dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        openapi_schema = get_openapi(
            title="SpecialistTalk API",
            version="0.1.0",
            summary="Authentication and session endpoints for SpecialistTalk chat",
            routes=app.routes,
        )

        openapi_schema.setdefault("components", {}).setdefault("securitySchemes", {}).update({
            "BearerAuth": {
                "type": "http",
                "scheme": "bearer",
                "description": "Bearer token authentication (preferred)",
            },
            "ApiKeyHeader": {
                "type": "apiKey",
                "in": "header",
                "name": API_KEY_HEADER_NAME,
                "description": "Session token in a header, as sent by the web chat client",
            },
            "SessionCookie": {
                "type": "apiKey",
                "in": "cookie",
                "name": SESSION_COOKIE_NAME,
                "description": "Session token stored in cookie",
            },
        })

        # Apply security globally (will be overridden for public endpoints)
        openapi_schema["security"] = [
            {"BearerAuth": []},
            {"ApiKeyHeader": []},
            {"SessionCookie": []},
        ]

        for path, path_item in openapi_schema["paths"].items():
            for method, operation in path_item.items():
                if (method.upper(), path) in PUBLIC_ENDPOINTS:
                    operation["security"] = []

        app.openapi_schema = openapi_schema
        return app.openapi_schema

    app.openapi = custom_openapi  # type: ignore[method-assign]


class ErrorResponse(BaseModel):
    """Standard error response format."""

    message: str = Field(..., description="Human-readable error message")
    type: str = Field(..., description="Machine-readable error type")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"message": "password: password is not valid", "type": "authentication_error"},
                {"message": "password: the policy is not followed", "type": "policy_violation"},
                {"message": "token is required", "type": "not_acceptable"},
            ]
        }
    }
