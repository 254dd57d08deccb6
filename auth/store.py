"""
auth/store.py -- SQLAlchemy Core persistence layer for users and organizations.

Pattern: Repository + Data Mapper. UserStore is the repository;
_row_to_user is the mapper (organizations are only ever read through the
join in find_user_by_email). Service and dependency
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Uniqueness:
  users.email carries a named UNIQUE constraint (uq_users_email) and that
  constraint is the only real guard. exists_by_email() is advisory -- two
  registrations can both see False before either commits.
  insert_user_and_maybe_organization() turns the loser's IntegrityError into
  ConflictError. Any other integrity failure is an UpstreamError, not a 409.

Atomicity:
  The organization row and the user row are written inside one
  conn.begin() block: both commit or neither does, on every exit path.

SQLite specifics:
  WAL journal mode per connection, and write transactions open with
  BEGIN IMMEDIATE so concurrent writers queue on the busy timeout instead of
  failing with a stale-snapshot error halfway through.

Timeouts:
  Every call is bounded by timeout_seconds -- SQLite busy timeout; for
  PostgreSQL the connect, statement and lock timeouts plus the pool wait.
  Any SQLAlchemy failure other than the email conflict surfaces as
  UpstreamError.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import Pool

from auth.errors import ConflictError, UpstreamError
from auth.models import Organization, User

logger = logging.getLogger("trackerauth.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_EMAIL_CONSTRAINT = "uq_users_email"

_organizations = Table(
    "organizations",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)

_users = Table(
    "users",
    _metadata,
    Column("id", String(36), primary_key=True),
    Column("email", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("organization_id", String(36), ForeignKey("organizations.id")),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("email", name=_EMAIL_CONSTRAINT),
    Index("idx_users_organization_id", "organization_id"),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Hand transaction control to SQLAlchemy and enable WAL.

    isolation_level=None stops pysqlite from issuing its own BEGIN, so the
    "begin" listener below decides the transaction mode. WAL lets readers
    proceed while a writer holds the lock; PRAGMAs are per-connection.
    """
    dbapi_conn.isolation_level = None
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


def _begin_sqlite(conn) -> None:
    mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
    conn.exec_driver_sql(f"BEGIN {mode}")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _engine_options(db_url: str, timeout_seconds: float) -> dict:
    """create_engine() keyword arguments that bound every call by timeout_seconds.

    SQLite: busy timeout. PostgreSQL: connect, statement and lock timeouts,
    so a stalled query or a blocked insert fails instead of hanging. Server
    databases also bound the pool wait.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        connect_args["timeout"] = timeout_seconds
        return {"connect_args": connect_args}

    if db_url.startswith("postgresql"):
        timeout_ms = max(1, int(timeout_seconds * 1000))
        connect_args["connect_timeout"] = max(1, int(timeout_seconds))
        connect_args["options"] = f"-c statement_timeout={timeout_ms} -c lock_timeout={timeout_ms}"
    return {"connect_args": connect_args, "pool_timeout": timeout_seconds, "pool_pre_ping": True}


def _is_email_conflict(exc: IntegrityError) -> bool:
    """True when the violated constraint is UNIQUE(users.email).

    PostgreSQL drivers report the constraint name; SQLite only names the
    column in its message.
    """
    diag = getattr(exc.orig, "diag", None)
    constraint = getattr(diag, "constraint_name", None)
    if constraint is not None:
        return constraint == _EMAIL_CONSTRAINT
    message = str(exc.orig)
    return "users.email" in message or _EMAIL_CONSTRAINT in message


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and Organization entities.

    Usage:
        store = UserStore("sqlite:///auth.db")
        user, org = store.insert_user_and_maybe_organization(User(...), Organization(name="Acme"))
        found = store.find_user_by_email("a@example.com")
        store.close()
    """

    def __init__(self, db_url: str, timeout_seconds: float = 5.0, poolclass: type[Pool] | None = None) -> None:
        self._is_sqlite = db_url.startswith("sqlite")
        engine_kwargs = _engine_options(db_url, timeout_seconds)
        if poolclass is not None:
            engine_kwargs["poolclass"] = poolclass
        self.engine: Engine = create_engine(db_url, **engine_kwargs)

        if self._is_sqlite:
            event.listen(self.engine, "connect", _configure_sqlite)
            event.listen(self.engine, "begin", _begin_sqlite)
        with self._guard("create schema"):
            _metadata.create_all(self.engine)

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate driver / pool failures into UpstreamError."""
        try:
            yield
        except SQLAlchemyError as exc:
            logger.warning("Store %s failed: %s", operation, exc.__class__.__name__)
            raise UpstreamError(f"store {operation} failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def exists_by_email(self, email: str) -> bool:
        """Advisory existence check. Never the only uniqueness guard."""
        with self._guard("exists_by_email"), self.engine.connect() as conn:
            row = conn.execute(select(_users.c.id).where(_users.c.email == email).limit(1)).first()
        return row is not None

    def find_user_by_email(self, email: str) -> User | None:
        """Look up a user by exact (already normalized) email, with their organization."""
        query = (
            select(
                _users,
                _organizations.c.name.label("org_name"),
                _organizations.c.created_at.label("org_created_at"),
                _organizations.c.updated_at.label("org_updated_at"),
            )
            .select_from(_users.outerjoin(_organizations, _users.c.organization_id == _organizations.c.id))
            .where(_users.c.email == email)
        )
        with self._guard("find_user_by_email"), self.engine.connect() as conn:
            row = conn.execute(query).fetchone()
        if row is None:
            return None
        user = _row_to_user(row)
        if row.organization_id is not None and row.org_name is not None:
            user.organization = Organization(
                id=row.organization_id,
                name=row.org_name,
                created_at=row.org_created_at,
                updated_at=row.org_updated_at,
            )
        return user

    def get_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._guard("get_by_id"), self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Store ping failed", exc_info=True)
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_user_and_maybe_organization(
        self,
        user: User,
        organization: Organization | None = None,
    ) -> tuple[User, Organization | None]:
        """Insert the organization (if given) and the user in one transaction.

        Ids and timestamps are assigned here; the returned objects carry them.
        user.organization_id is overwritten with the new organization's id when
        an organization is supplied.

        Raises ConflictError if the email is already taken (including when a
        concurrent request committed it first), UpstreamError on any other
        store failure. Nothing is left behind in either case.
        """
        now = _now_iso()
        created_org: Organization | None = None
        if organization is not None:
            created_org = replace(organization, id=_new_id(), created_at=now, updated_at=now)
        created_user = replace(
            user,
            id=_new_id(),
            organization_id=created_org.id if created_org is not None else user.organization_id,
            organization=created_org,
            created_at=now,
            updated_at=now,
        )

        with self._guard("insert_user_and_maybe_organization"):
            try:
                with self.engine.connect() as conn:
                    conn.execution_options(sqlite_begin="IMMEDIATE")
                    with conn.begin():
                        if created_org is not None:
                            conn.execute(
                                _organizations.insert().values(
                                    id=created_org.id,
                                    name=created_org.name,
                                    created_at=now,
                                    updated_at=now,
                                )
                            )
                        conn.execute(
                            _users.insert().values(
                                id=created_user.id,
                                email=created_user.email,
                                password_hash=created_user.password_hash,
                                first_name=created_user.first_name,
                                last_name=created_user.last_name,
                                organization_id=created_user.organization_id,
                                created_at=now,
                                updated_at=now,
                            )
                        )
            except IntegrityError as exc:
                if not _is_email_conflict(exc):
                    raise
                raise ConflictError() from exc
        return created_user, created_org

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        first_name=row.first_name or "",
        last_name=row.last_name or "",
        organization_id=row.organization_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
