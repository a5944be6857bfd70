"""Clerk JWT verification middleware for FastAPI.

Validates the Bearer token on every request (except public routes) and sets
``request.state.auth``, which route handlers read through ``get_current_user``.

The FitFare owner id travels in the ``fitfare_user_id`` custom claim of the
Clerk session token template.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

import jwt as pyjwt
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from jwt import PyJWKClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.config import Settings, get_settings
from src.dependencies import AuthContext

logger = logging.getLogger("fitfare.auth")

OWNER_CLAIM = "fitfare_user_id"

# Paths that do not require authentication
PUBLIC_PATHS: set[str] = {
    "/health",
    "/docs",
    "/openapi.json",
    "/redoc",
    "/api/v1/webhooks/clerk",
}


def _is_public(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith("/docs") or path.startswith("/redoc")


def _unauthorized(detail: str) -> Response:
    return JSONResponse({"detail": detail}, status_code=401)


def auth_context_from_claims(payload: dict[str, Any]) -> AuthContext:
    """Build the request auth context from verified token claims.

    Raises:
        ValueError: If the owner claim is present but not a UUID.
    """
    raw_owner = payload.get(OWNER_CLAIM)
    owner_id = uuid.UUID(str(raw_owner)) if raw_owner else None
    return AuthContext(
        user_id=payload.get("sub", ""),
        owner_id=owner_id,
        email=payload.get("email"),
        session_id=payload.get("sid"),
    )


class ClerkAuthMiddleware(BaseHTTPMiddleware):
    """Verify Clerk-issued JWTs and populate request.state.auth."""

    def __init__(self, app: Any, settings: Settings | None = None) -> None:
        super().__init__(app)
        self._settings = settings or get_settings()
        self._jwks_client = PyJWKClient(
            self._settings.clerk_jwks_url,
            cache_keys=True,
            lifespan=3600,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # OPTIONS requests pass through (CORS preflight)
        if _is_public(request.url.path) or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header or not auth_header.startswith("Bearer "):
            return _unauthorized("Missing or invalid Authorization header")

        token = auth_header.removeprefix("Bearer ").strip()

        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            payload = pyjwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                options={"verify_aud": False},  # Clerk tokens use azp, not aud
            )
        except pyjwt.ExpiredSignatureError:
            return _unauthorized("Token expired")
        except pyjwt.InvalidTokenError as exc:
            logger.warning("JWT validation failed: %s", exc)
            return _unauthorized("Invalid token")

        try:
            request.state.auth = auth_context_from_claims(payload)
        except ValueError:
            logger.warning("Malformed %s claim for sub=%s", OWNER_CLAIM, payload.get("sub"))
            return _unauthorized("Invalid token")

        return await call_next(request)
