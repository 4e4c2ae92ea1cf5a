"""
auth/tokens.py -- Password hashing and JWT encode/decode primitives.

Security design decisions:
  Passwords: bcrypt directly (no passlib wrapper). The cost factor is a
       constructor parameter of AuthenticationService rather than a module
       constant so tests can run at the bcrypt minimum (4) while production
       runs at 12. bcrypt only reads the first 72 bytes of input and current
       releases reject anything longer, so the service refuses such passwords
       with ValidationError before they reach hash_password().

  JWT: python-jose with HS256. The signing key is always passed in by the
       caller -- this module holds no key and reads no configuration.
       decode_token() verifies signature and claim shape only. Expiry is
       checked by the service against its own clock so the expiry boundary
       is testable without sleeping.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import bcrypt
from jose import JWTError, jwt

from auth.errors import InvalidTokenError
from auth.models import TokenPayload

ALGORITHM = "HS256"

# bcrypt silently ignores input past this many bytes; newer releases raise.
MAX_PASSWORD_BYTES = 72


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the given plaintext password.

    A fresh random salt is generated on every call, so hashing the same
    password twice yields two different strings that both verify.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Returns False rather than raising when the stored hash is malformed or
    the password is over the bcrypt length limit.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def encode_token(payload: TokenPayload, key: bytes) -> str:
    """Sign the payload as a compact HS256 JWT (three base64url segments)."""
    return jwt.encode(payload.to_claims(), key, algorithm=ALGORITHM)


def decode_token(token: str, key: bytes) -> TokenPayload:
    """Verify the signature and claim shape of a JWT and return its payload.

    Expiry is NOT checked here. Raises InvalidTokenError on a bad signature,
    a malformed token, or missing/ill-typed sub/iat/exp claims.
    """
    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=[ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise InvalidTokenError() from exc

    sub = claims.get("sub")
    iat = claims.get("iat")
    exp = claims.get("exp")
    if not isinstance(sub, str) or not sub:
        raise InvalidTokenError()
    if not isinstance(iat, int) or not isinstance(exp, int):
        raise InvalidTokenError()
    return TokenPayload(user_id=sub, issued_at=iat, expires_at=exp)
