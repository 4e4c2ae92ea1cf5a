"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store and the
service do the work; these only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered Conduit account.

    id is a UUID4 string assigned by the store at insert time. email and
    username are unique (DB constraint) and have no update path in the core.

    hashed_password is the bcrypt output (salt and cost embedded). It must
    never leave the process -- API response models omit it.
    """

    email: str
    username: str
    hashed_password: str
    id: str | None = None
    bio: str | None = None
    image: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenPayload:
    """Decoded claims of a session token.

    Maps to the JWT registered claims: user_id -> sub, issued_at -> iat,
    expires_at -> exp. All times are integer seconds since the epoch.
    """

    user_id: str
    issued_at: int
    expires_at: int

    def to_claims(self) -> dict:
        return {"sub": self.user_id, "iat": self.issued_at, "exp": self.expires_at}
