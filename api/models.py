"""
API request and response models for Conduit authentication endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Envelope: Conduit clients wrap user payloads in {"user": {...}} both ways.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# Deliberately loose: one "@", no whitespace. Deliverability is not our problem.
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupUser(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=EMAIL_PATTERN)
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72, json_schema_extra={"format": "password"})


class SignupRequest(BaseModel):
    """Request body for POST /api/users."""

    user: SignupUser


class LoginUser(BaseModel):
    email: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=72)


class LoginRequest(BaseModel):
    """Request body for POST /api/users/login."""

    user: LoginUser


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserBody(BaseModel):
    """Public view of a user plus the session token. Never carries the hash."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    token: str
    expires_in: Optional[int] = None

    @classmethod
    def from_user(cls, user: User, token: str, expires_in: Optional[int] = None) -> "UserBody":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            bio=user.bio,
            image=user.image,
            token=token,
            expires_in=expires_in,
        )


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: UserBody


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
