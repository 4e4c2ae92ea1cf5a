"""
auth/errors.py -- Exception taxonomy for the authentication core.

Every error carries a stable machine-readable `code`, a user-facing `message`
and the HTTP status the API layer maps it to. The API exception handler turns
any AuthError into the standard {"error": {...}} envelope, so route code
raises these instead of building HTTPException by hand.

Enumeration resistance:
  UnauthorizedError is raised with one fixed message for both "unknown email"
  and "wrong password". InvalidTokenError and ExpiredTokenError subclass it so
  the HTTP surface is identical (401 unauthorized) while tests and logs can
  still tell the two token failures apart.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all errors raised by the authentication core."""

    code: str = "auth_error"
    message: str = "Authentication error."
    status_code: int = 400

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(AuthError):
    """Malformed or missing input. Recoverable by the caller."""

    code = "validation_error"
    message = "Request validation failed."
    status_code = 422


class ConflictError(AuthError):
    """Email or username already taken.

    The message never says which of the two collided.
    """

    code = "conflict"
    message = "Email or username already in use."
    status_code = 409


class NotFoundError(AuthError):
    """No user row matched a keyed lookup. Store-level only."""

    code = "not_found"
    message = "User not found."
    status_code = 404


class UnauthorizedError(AuthError):
    code = "unauthorized"
    message = "Authentication required."
    status_code = 401


class BadCredentialsError(UnauthorizedError):
    """Sign-in failed. Same code and message for unknown email and wrong password."""

    code = "bad_credentials"
    message = "Invalid email or password."


class InvalidTokenError(UnauthorizedError):
    """Token is malformed, carries a bad signature, or names no known user."""


class ExpiredTokenError(UnauthorizedError):
    """Token signature is valid but now > exp. Caller must sign in again."""


class InternalError(AuthError):
    """Store unavailable, or hashing/signing failed. Detail is logged, not returned."""

    code = "internal_error"
    message = "An unexpected error occurred."
    status_code = 500
