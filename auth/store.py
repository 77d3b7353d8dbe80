"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore and RevocationStore are the repositories; _row_to_user is the
mapper. Service and route code never touches SQL.

Both classes satisfy the Protocols in auth/interfaces.py.

Security:
  All queries use bound parameters. No f-strings in SQL.

Failure mapping:
  Unique-constraint violations become DuplicateUser (users) or an idempotent
  no-op (revocations). Every other SQLAlchemy error -- connection failure,
  "database is locked" after DB_TIMEOUT_SECONDS -- becomes StoreUnavailable,
  so a slow or broken database never hangs a request or leaks as a 500.

DB path: auth/gatekeeper_auth.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import DuplicateUser, StoreUnavailable
from auth.models import Role, User

logger = logging.getLogger("gatekeeper.store")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).parent / 'gatekeeper_auth.db'}"
_DEFAULT_TIMEOUT = 5.0

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),  # NULL until first login
    Column("is_active", Integer, nullable=False, server_default="1"),
)

_revoked_tokens = Table(
    "revoked_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token", Text, nullable=False, unique=True),
    Column("revoked_at", String(32), nullable=False),
    Column("expires_at", String(32), index=True),  # embedded exp, for pruning only
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    WAL lets readers proceed while a logout is writing. Set per-connection
    because SQLite PRAGMAs are not inherited by new connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str = _DEFAULT_DB_URL, timeout: float = _DEFAULT_TIMEOUT) -> Engine:
    """Create an engine with a bounded lock wait and the schema in place."""
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_iso(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat()


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate driver failures into StoreUnavailable.

    IntegrityError passes through untouched; each caller decides what a
    unique violation means for its table.
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as exc:
        logger.error("Store operation %s failed: %s", operation, exc.__class__.__name__)
        raise StoreUnavailable(f"{operation}: {exc.__class__.__name__}") from exc


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore()
        user = store.create_user("alice", "a@x.com", hasher.hash("Secret123!"), Role.USER)
        store.find_user_by_email("a@x.com")
        store.close()
    """

    def __init__(
        self,
        db_url: str = _DEFAULT_DB_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        engine: Engine | None = None,
    ) -> None:
        self.engine: Engine = engine if engine is not None else make_engine(db_url, timeout)

    def create_user(self, username: str, email: str, password_hash: str, role: Role = Role.USER) -> User:
        """Insert a new user and return it with its assigned ID.

        Raises DuplicateUser if the username or email is already taken. This
        also covers the race where two registrations pass the service-level
        email check concurrently -- the UNIQUE constraint decides.
        """
        created_at = _now_iso()
        try:
            with _store_errors("create_user"), self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=username,
                        email=email,
                        hashed_password=password_hash,
                        role=Role(role).value,
                        created_at=created_at,
                        is_active=1,
                    )
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateUser("username or email already exists") from exc
        return User(
            id=result.inserted_primary_key[0],
            username=username,
            email=email,
            hashed_password=password_hash,
            role=Role(role),
            created_at=created_at,
        )

    def find_user_by_email(self, email: str) -> User | None:
        """Look up an active user by exact email. Returns None if absent or inactive."""
        with _store_errors("find_user_by_email"), self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.email == email) & (_users.c.is_active == 1))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_user_by_id(self, user_id: int) -> User | None:
        """Look up an active user by primary key. Returns None if absent or inactive."""
        with _store_errors("find_user_by_id"), self.engine.connect() as conn:
            row = conn.execute(
                _users.select().where((_users.c.id == user_id) & (_users.c.is_active == 1))
            ).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC timestamp as last_login for the given user."""
        with _store_errors("update_last_login"), self.engine.connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Administration (CLI and admin routes)
    # ------------------------------------------------------------------

    def list_users(self) -> list[User]:
        """Return all active users ordered by id."""
        with _store_errors("list_users"), self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.is_active == 1).order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def set_role(self, user_id: int, role: Role) -> bool:
        """Change a user's role. Returns True if a row was updated.

        Already-issued tokens keep their old role claim; verification reads
        the role from here, so the change applies on the next request.
        """
        with _store_errors("set_role"), self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(role=Role(role).value))
            conn.commit()
        return result.rowcount > 0

    def set_active(self, user_id: int, is_active: bool) -> bool:
        """Soft-delete (False) or restore (True) a user. Returns True if a row was updated."""
        with _store_errors("set_active"), self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(is_active=1 if is_active else 0)
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Revoked tokens
# ---------------------------------------------------------------------------


class RevocationStore:
    """Repository for revoked token strings.

    Usage:
        store = RevocationStore()
        store.mark_revoked(token, expires_at=claims.expires_at)
        store.is_revoked(token)  # True
    """

    def __init__(
        self,
        db_url: str = _DEFAULT_DB_URL,
        timeout: float = _DEFAULT_TIMEOUT,
        engine: Engine | None = None,
    ) -> None:
        self.engine: Engine = engine if engine is not None else make_engine(db_url, timeout)

    def mark_revoked(self, token: str, expires_at: datetime | None = None) -> None:
        """Insert a revocation record. A duplicate token is an idempotent no-op."""
        try:
            with _store_errors("mark_revoked"), self.engine.connect() as conn:
                conn.execute(
                    _revoked_tokens.insert().values(
                        token=token,
                        revoked_at=_now_iso(),
                        expires_at=_to_iso(expires_at) if expires_at is not None else None,
                    )
                )
                conn.commit()
        except IntegrityError:
            logger.debug("Token already revoked; nothing to do")

    def is_revoked(self, token: str) -> bool:
        with _store_errors("is_revoked"), self.engine.connect() as conn:
            row = conn.execute(select(_revoked_tokens.c.id).where(_revoked_tokens.c.token == token)).fetchone()
        return row is not None

    def count(self) -> int:
        """Return the number of stored revocation records (reported by /health)."""
        with _store_errors("count_revoked"), self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_revoked_tokens)).scalar()
        return result or 0

    def purge_expired(self, before: datetime) -> int:
        """Delete records whose embedded expiry is earlier than `before`.

        Records without an expiry are kept forever. ISO 8601 strings in a
        single UTC offset sort chronologically, so a string comparison is exact.
        """
        with _store_errors("purge_expired"), self.engine.connect() as conn:
            result = conn.execute(
                _revoked_tokens.delete().where(
                    _revoked_tokens.c.expires_at.is_not(None) & (_revoked_tokens.c.expires_at < _to_iso(before))
                )
            )
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        hashed_password=row.hashed_password,
        role=Role(row.role),
        created_at=row.created_at,
        last_login=row.last_login,
        is_active=bool(row.is_active),
    )
