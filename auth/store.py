"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_user is the mapper. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) and UNIQUE(username) are enforced by the database, not by a
  check-then-insert in code. Two concurrent signups for the same email both
  reach INSERT; the constraint lets exactly one through and the other gets
  IntegrityError, which create_user() maps to ConflictError.

Errors:
  NotFoundError and ConflictError are raised here. Any other SQLAlchemyError
  (connectivity, locked DB) propagates unmodified -- the service decides how
  to surface it.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError, NotFoundError, ValidationError
from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),  # UUID4, assigned at insert
    Column("email", String(255), nullable=False, unique=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),  # bcrypt, salt + cost embedded
    Column("bio", Text),
    Column("image", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so signin reads are not blocked by signup writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for User records.

    Usage:
        store = CredentialStore("sqlite:///conduit.db")
        user = store.create_user("a@x.com", "alice", hashed)
        same = store.get_by_email("a@x.com")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, email: str, username: str, hashed_password: str) -> User:
        """Insert a new user and return the fully populated record.

        Raises ValidationError if email or username is blank.
        Raises ConflictError if either value is already taken. The message is
        the same for both columns.
        """
        if not email or not email.strip():
            raise ValidationError("Email must not be empty.")
        if not username or not username.strip():
            raise ValidationError("Username must not be empty.")

        now = _now_iso()
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            username=username,
            hashed_password=hashed_password,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        email=user.email,
                        username=user.username,
                        hashed_password=user.hashed_password,
                        bio=user.bio,
                        image=user.image,
                        created_at=user.created_at,
                        updated_at=user.updated_at,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise ConflictError() from exc
        return user

    def get_by_email(self, email: str) -> User:
        """Look up a user by exact email (case-sensitive). Raises NotFoundError if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        if row is None:
            raise NotFoundError()
        return _row_to_user(row)

    def get_by_id(self, user_id: str) -> User:
        """Look up a user by primary key. Raises NotFoundError if absent."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        if row is None:
            raise NotFoundError()
        return _row_to_user(row)

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        hashed_password=row.hashed_password,
        bio=row.bio,
        image=row.image,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
