"""
auth/service.py -- AuthenticationService: signup, signin and session tokens.

The service is the only component that knows the hashing scheme and the
signing key. Everything it needs is injected through the constructor:

  store             CredentialStore (or anything with the same methods)
  signing_key       process-wide HMAC key, loaded once at startup by
                    core.config.load_signing_key(); held read-only
  session_lifetime  seconds a token stays valid (one day by default)
  bcrypt_rounds     hashing cost; a deliberate per-request expense
  clock             callable returning epoch seconds; tests pass a fake

Timing equalization [C1]:
  signin() always runs bcrypt, even when the email is unknown, against a
  dummy hash computed once at construction with the same cost. Response time
  therefore does not reveal whether an account exists.

Known limitation:
  Tokens cannot be revoked before expiry (no server-side session state).
  Logging out or changing a password does not invalidate issued tokens.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import TYPE_CHECKING, Callable

from jose.exceptions import JOSEError
from sqlalchemy.exc import SQLAlchemyError

from auth import tokens
from auth.errors import (
    BadCredentialsError,
    ExpiredTokenError,
    InternalError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from auth.models import TokenPayload, User

if TYPE_CHECKING:
    from auth.store import CredentialStore

logger = logging.getLogger("conduit.auth")

ONE_DAY = 60 * 60 * 24


class AuthenticationService:
    def __init__(
        self,
        store: CredentialStore,
        signing_key: bytes,
        session_lifetime: int = ONE_DAY,
        bcrypt_rounds: int = 12,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not signing_key:
            raise ValueError("signing_key must not be empty.")
        if session_lifetime <= 0:
            raise ValueError("session_lifetime must be positive.")
        self._store = store
        self._key = bytes(signing_key)
        self._lifetime = session_lifetime
        self._rounds = bcrypt_rounds
        self._clock = clock
        # Random plaintext: nothing can ever verify against the dummy.
        self._dummy_hash = tokens.hash_password(secrets.token_urlsafe(16), self._rounds)

    def __repr__(self) -> str:
        return f"AuthenticationService(session_lifetime={self._lifetime}, bcrypt_rounds={self._rounds})"

    @property
    def session_lifetime(self) -> int:
        return self._lifetime

    def _now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def hash_password(self, plain: str) -> str:
        """Return a salted bcrypt hash at the configured cost.

        No password policy is enforced. Raises InternalError only if bcrypt
        itself fails.
        """
        try:
            return tokens.hash_password(plain, self._rounds)
        except (ValueError, TypeError) as exc:
            logger.exception("Password hashing failed")
            raise InternalError() from exc

    def verify_password(self, plain: str, hashed: str) -> bool:
        return tokens.verify_password(plain, hashed)

    # ------------------------------------------------------------------
    # Account flows
    # ------------------------------------------------------------------

    def signup(self, email: str, username: str, password: str) -> tuple[User, str]:
        """Create an account and return (user, token).

        Raises ValidationError for blank fields or an over-long password,
        ConflictError if the email or username is taken, InternalError if the
        store is unavailable. No token is issued unless the insert succeeded.
        """
        _require(email, "Email")
        _require(username, "Username")
        if not password:
            raise ValidationError("Password must not be empty.")
        if len(password.encode("utf-8")) > tokens.MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {tokens.MAX_PASSWORD_BYTES} bytes.")

        hashed = self.hash_password(password)
        try:
            user = self._store.create_user(email, username, hashed)
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during signup")
            raise InternalError() from exc

        logger.info("User registered (id=%s)", user.id)
        return user, self.issue_token(user)

    def signin(self, email: str, password: str) -> tuple[User, str]:
        """Authenticate email + password and return (user, token).

        Unknown email and wrong password raise the same BadCredentialsError with
        the same message. bcrypt runs in both cases [C1].
        """
        try:
            user = self._store.get_by_email(email)
        except NotFoundError:
            # Equalize timing -- do NOT return before running bcrypt [C1]
            self.verify_password(password, self._dummy_hash)
            logger.info("Sign-in rejected")
            raise BadCredentialsError() from None
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during signin")
            raise InternalError() from exc

        if not self.verify_password(password, user.hashed_password):
            logger.info("Sign-in rejected")
            raise BadCredentialsError()

        return user, self.issue_token(user)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, user: User) -> str:
        """Sign a token binding user.id for session_lifetime seconds from now."""
        if not user.id:
            raise InternalError("Cannot issue a token for an unsaved user.")
        now = self._now()
        payload = TokenPayload(user_id=user.id, issued_at=now, expires_at=now + self._lifetime)
        try:
            return tokens.encode_token(payload, self._key)
        except JOSEError as exc:
            logger.exception("Token signing failed")
            raise InternalError() from exc

    def decode_token(self, token: str) -> TokenPayload:
        """Verify signature, then expiry, and return the full payload.

        Raises InvalidTokenError for a bad signature or malformed token and
        ExpiredTokenError once now > expires_at. No clock-skew leeway.
        """
        if not token:
            raise InvalidTokenError()
        payload = tokens.decode_token(token, self._key)
        if self._clock() > payload.expires_at:
            raise ExpiredTokenError()
        return payload

    def validate_token(self, token: str) -> str:
        """Return the user id embedded in a valid, unexpired token."""
        return self.decode_token(token).user_id

    def current_user(self, token: str) -> User:
        """Resolve a token to its full User record.

        A validly signed token whose user no longer exists is treated as
        invalid rather than surfacing NotFoundError.
        """
        user_id = self.validate_token(token)
        try:
            return self._store.get_by_id(user_id)
        except NotFoundError:
            raise InvalidTokenError() from None
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during token resolution")
            raise InternalError() from exc


def _require(value: str | None, field: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"{field} must not be empty.")
