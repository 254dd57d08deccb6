"""Unit tests for auth/store.py -- UserStore persistence.

Covers:
- insert_user_and_maybe_organization() assigns ids and links the organization
- find_user_by_email() joins the organization; get_by_id() does not
- UNIQUE(email) violation becomes ConflictError and rolls the organization back
- Any other failure (missing table, foreign key, lock timeout) becomes
  UpstreamError and also rolls back
- exists_by_email() and ping()
- Engine options bound every call by timeout_seconds
"""

from __future__ import annotations

import sqlite3
import time

import pytest
from sqlalchemy import func, select
from sqlalchemy.pool import SingletonThreadPool

from auth.errors import ConflictError, UpstreamError
from auth.models import Organization, User
from auth.store import UserStore, _engine_options, _organizations, _users


def _user(email: str = "a@example.com") -> User:
    return User(email=email, password_hash="$2b$04$notarealhash", first_name="Ada", last_name="Lovelace")


def _count(store: UserStore, table) -> int:
    with store.engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(table)).scalar_one()


class TestInsert:
    def test_insert_with_organization(self, store):
        user, org = store.insert_user_and_maybe_organization(_user(), Organization(name="Acme"))
        assert user.id and org.id
        assert user.organization_id == org.id
        assert user.created_at == user.updated_at
        assert _count(store, _users) == 1
        assert _count(store, _organizations) == 1

    def test_insert_without_organization(self, store):
        user, org = store.insert_user_and_maybe_organization(_user())
        assert org is None
        assert user.organization_id is None
        assert _count(store, _organizations) == 0

    def test_duplicate_email_is_conflict_and_leaves_no_orphan_organization(self, store):
        store.insert_user_and_maybe_organization(_user(), Organization(name="First"))
        with pytest.raises(ConflictError):
            store.insert_user_and_maybe_organization(_user(), Organization(name="Second"))
        assert _count(store, _users) == 1
        assert _count(store, _organizations) == 1

    def test_user_insert_failure_rolls_back_organization(self, store):
        _users.drop(store.engine)
        with pytest.raises(UpstreamError):
            store.insert_user_and_maybe_organization(_user(), Organization(name="Orphan"))
        assert _count(store, _organizations) == 0

    def test_other_integrity_failure_is_not_a_conflict(self, store):
        orphan = User(
            email="a@example.com",
            password_hash="$2b$04$notarealhash",
            first_name="Ada",
            last_name="Lovelace",
            organization_id="00000000-0000-0000-0000-000000000000",
        )
        with pytest.raises(UpstreamError) as excinfo:
            store.insert_user_and_maybe_organization(orphan)
        assert not isinstance(excinfo.value, ConflictError)
        assert _count(store, _users) == 0


class TestQueries:
    def test_find_by_email_includes_organization(self, store):
        created, org = store.insert_user_and_maybe_organization(_user(), Organization(name="Acme"))
        found = store.find_user_by_email("a@example.com")
        assert found.id == created.id
        assert found.password_hash == created.password_hash
        assert found.organization is not None
        assert found.organization.id == org.id
        assert found.organization.name == "Acme"

    def test_find_by_email_without_organization(self, store):
        store.insert_user_and_maybe_organization(_user())
        assert store.find_user_by_email("a@example.com").organization is None

    def test_find_by_email_missing(self, store):
        assert store.find_user_by_email("nobody@example.com") is None

    def test_get_by_id(self, store):
        created, _ = store.insert_user_and_maybe_organization(_user(), Organization(name="Acme"))
        found = store.get_by_id(created.id)
        assert found.email == "a@example.com"
        assert found.organization_id == created.organization_id
        assert store.get_by_id("00000000-0000-0000-0000-000000000000") is None

    def test_exists_by_email(self, store):
        assert store.exists_by_email("a@example.com") is False
        store.insert_user_and_maybe_organization(_user())
        assert store.exists_by_email("a@example.com") is True

    def test_query_failure_is_upstream_error(self, store):
        _users.drop(store.engine)
        with pytest.raises(UpstreamError) as excinfo:
            store.find_user_by_email("a@example.com")
        assert excinfo.value.message == "An unexpected error occurred."
        assert "find_user_by_email" in str(excinfo.value)

    def test_ping(self, store):
        assert store.ping() is True


def test_unreachable_database_is_upstream_error(tmp_path):
    with pytest.raises(UpstreamError):
        UserStore(f"sqlite:///{tmp_path / 'missing-dir' / 'auth.db'}", timeout_seconds=0.5)


def test_file_database_persists_across_instances(tmp_path):
    url = f"sqlite:///{tmp_path / 'auth.db'}"
    first = UserStore(url)
    first.insert_user_and_maybe_organization(_user())
    first.close()
    second = UserStore(url)
    assert second.exists_by_email("a@example.com") is True
    second.close()


def test_locked_database_fails_within_timeout(tmp_path):
    """A write blocked by another connection's lock gives up after timeout_seconds."""
    path = tmp_path / "locked.db"
    store = UserStore(f"sqlite:///{path}", timeout_seconds=0.5)
    holder = sqlite3.connect(path, isolation_level=None)
    holder.execute("BEGIN IMMEDIATE")
    try:
        start = time.monotonic()
        with pytest.raises(UpstreamError):
            store.insert_user_and_maybe_organization(_user(), Organization(name="Acme"))
        assert time.monotonic() - start < 5
    finally:
        holder.execute("ROLLBACK")
        holder.close()
        store.close()
    reopened = UserStore(f"sqlite:///{path}")
    assert reopened.exists_by_email("a@example.com") is False
    assert _count(reopened, _organizations) == 0
    reopened.close()


def test_in_memory_store_uses_the_given_pool(store):
    assert isinstance(store.engine.pool, SingletonThreadPool)


class TestEngineOptions:
    def test_sqlite_uses_busy_timeout(self):
        options = _engine_options("sqlite:///auth.db", 2.5)
        assert options == {"connect_args": {"check_same_thread": False, "timeout": 2.5}}

    def test_postgresql_bounds_connect_statements_locks_and_pool(self):
        options = _engine_options("postgresql+psycopg://auth@db/auth", 2.5)
        assert options["connect_args"] == {
            "connect_timeout": 2,
            "options": "-c statement_timeout=2500 -c lock_timeout=2500",
        }
        assert options["pool_timeout"] == 2.5
        assert options["pool_pre_ping"] is True

    def test_sub_second_timeout_still_sets_a_connect_timeout(self):
        options = _engine_options("postgresql://auth@db/auth", 0.2)
        assert options["connect_args"]["connect_timeout"] == 1
        assert "statement_timeout=200 " in options["connect_args"]["options"]
