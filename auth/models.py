"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; the API layer maps these into its own Pydantic response models.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Organization:
    """A tenant. Created only alongside a User, in the same transaction."""

    name: str
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass
class User:
    """A registered identity.

    email is stored normalized (stripped, lower-case) and is globally unique.
    password_hash is an opaque bcrypt string -- never serialized outward.
    organization is populated by UserStore.find_user_by_email() only; other
    lookups leave it None even when organization_id is set.
    """

    email: str
    password_hash: str
    first_name: str
    last_name: str
    id: str | None = None
    organization_id: str | None = None
    organization: Organization | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class IssuedToken:
    """A freshly signed token plus the claims it encodes."""

    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class Identity:
    """What the session gate hands to downstream handlers.

    user_id is the only authoritative field. email and organization_id are
    re-read from the store on every request, never taken from the token.
    user is the row the gate loaded, so handlers need not fetch it again.
    """

    user_id: str
    email: str | None = None
    organization_id: str | None = None
    user: User | None = field(default=None, compare=False, repr=False)


@dataclass
class AuthResult:
    """Outcome of a successful register or login."""

    user: User
    token: IssuedToken
    organization: Organization | None = None
