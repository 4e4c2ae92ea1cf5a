"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The session token travels in the Authorization header. Two schemes are
accepted and treated identically:
  Authorization: Token <jwt>   -- the Conduit client convention
  Authorization: Bearer <jwt>  -- generic API clients

get_token() extracts the raw token (or None).
get_current_user() resolves it to a User or raises UnauthorizedError, which
the API exception handler turns into a 401. Missing, malformed, tampered and
expired tokens all produce the same response.

Layer rule: may import from fastapi (this module is part of the FastAPI
dependency injection system). No imports from api/ or core/.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import UnauthorizedError
from auth.models import User
from auth.service import AuthenticationService

_SCHEMES = ("token", "bearer")


def get_auth_service(request: Request) -> AuthenticationService:
    return request.app.state.auth_service


def get_token(request: Request) -> str | None:
    """Return the token from the Authorization header, or None if absent/unparseable."""
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() not in _SCHEMES:
        return None
    credentials = credentials.strip()
    return credentials or None


def get_current_user(request: Request) -> User:
    """Require authentication. Raises UnauthorizedError (HTTP 401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = get_token(request)
    if token is None:
        raise UnauthorizedError()
    return get_auth_service(request).current_user(token)
