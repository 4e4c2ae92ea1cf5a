"""
api/routes/users.py -- Account and session REST endpoints.

Routes:
  POST /api/users        -- signup; returns the new user and a token (201)
  POST /api/users/login  -- signin; returns the user and a token
  GET  /api/user         -- current user for the presented token

Security:
  [H2] POST /users/login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [C1] AuthenticationService.signin() provides timing equalization. Do NOT
       inline get_by_email() + verify_password() here.
  [M5] Cache-Control: no-store on every response that carries a token.

All handlers are plain `def`, not `async def`: bcrypt is CPU-bound and
FastAPI runs sync handlers in its threadpool, keeping the event loop free.
Errors are raised as auth.errors.AuthError subclasses and rendered by the
exception handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, SignupRequest, UserBody, UserResponse
from auth.dependencies import get_auth_service, get_current_user, get_token
from auth.models import User
from auth.service import AuthenticationService
from core.config import get_settings

_settings = get_settings()

# Auth policy:
# - POST /api/users:        public
# - POST /api/users/login:  public, rate limited
# - GET  /api/user:         requires auth (get_current_user)
router = APIRouter()


def _user_response(status_code: int, user: User, token: str, expires_in: int | None = None) -> JSONResponse:
    body = UserResponse(user=UserBody.from_user(user, token, expires_in))
    resp = JSONResponse(status_code=status_code, content=body.model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/users", response_model=UserResponse, status_code=201)
def signup(
    body: SignupRequest,
    service: AuthenticationService = Depends(get_auth_service),
) -> JSONResponse:
    """Register a new account and sign it in.

    409 if the email or username is already in use (the response does not
    say which). No token is issued when registration fails.
    """
    user, token = service.signup(body.user.email, body.user.username, body.user.password)
    return _user_response(201, user, token, service.session_lifetime)


@router.post("/users/login", response_model=UserResponse)
@limiter.limit(_settings.login_rate_limit)  # [H2]
def login(
    request: Request,
    body: LoginRequest,
    service: AuthenticationService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password return the same 401 bad_credentials
    body, so the endpoint cannot be used to enumerate accounts.
    """
    user, token = service.signin(body.user.email, body.user.password)
    return _user_response(200, user, token, service.session_lifetime)


@router.get("/user", response_model=UserResponse)
def current_user(
    request: Request,
    user: User = Depends(get_current_user),
) -> JSONResponse:
    """Return the authenticated user together with the token they presented."""
    token = get_token(request) or ""
    return _user_response(200, user, token)
