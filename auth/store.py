"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_profile are the mappers.
Flow and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL [A05].

  UNIQUE(email) is the source of truth for duplicate registrations. The
  flow controller's email_exists() check is a fast path for a friendly
  message; two concurrent registrations for the same email can both pass
  it, and the second INSERT then fails with IntegrityError, surfaced here as
  DuplicateEmailError.

  The password hash is read by exactly one query (get_credentials). The
  profile query selects an explicit column list without it, so the hash is
  excluded at the query boundary rather than filtered afterwards.

DB path: auth/users.db by default (DATABASE_URL overrides).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import DuplicateEmailError
from auth.models import User, UserProfile

logger = logging.getLogger("app.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
)

_PROFILE_COLUMNS = (_users.c.id, _users.c.name, _users.c.email, _users.c.created_at)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. In-memory databases ignore the request.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        user = store.create_user("Jane Doe", "jane@test.com", hasher.hash("secret123"))
        profile = store.get_profile(user.id)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite") and "memory" not in db_url:
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create_user(self, name: str, email: str, password_hash: str) -> User:
        """Insert a new user and return it with its assigned id and created_at.

        Raises DuplicateEmailError if the email is already registered, including
        when a concurrent request inserted it after the caller's existence check.
        """
        created_at = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=name,
                        email=email,
                        password_hash=password_hash,
                        created_at=created_at,
                    )
                )
                user_id = result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateEmailError(email) from exc
        return User(id=user_id, name=name, email=email, created_at=created_at)

    def email_exists(self, email: str) -> bool:
        with self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email)).first()
        return row is not None

    def get_credentials(self, email: str) -> User | None:
        """Look up a user by normalized email, including the password hash.

        Only the login path calls this.
        """
        with self.engine.connect() as conn:
            row = conn.execute(select(_users).where(_users.c.email == email)).first()
        return _row_to_user(row) if row is not None else None

    def get_profile(self, user_id: int) -> UserProfile | None:
        """Look up the non-sensitive projection of a user by primary key."""
        with self.engine.connect() as conn:
            row = conn.execute(select(*_PROFILE_COLUMNS).where(_users.c.id == user_id)).first()
        return _row_to_profile(row) if row is not None else None

    def count_users(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
    )


def _row_to_profile(row) -> UserProfile:
    return UserProfile(id=row.id, name=row.name, email=row.email, created_at=row.created_at)
