"""
auth/config.py -- The one configuration value every core operation receives.

AuthConfig is built once at process start from core.config.Settings and
passed by reference into hashing, token and orchestration calls. Nothing in
auth/ reads Settings or the environment on its own, which is what lets tests
swap in a fixed secret and a controllable clock.

Layer rule: may import from core/; no imports from api/.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from core.config import Settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthConfig:
    """Signing secret, token lifetime, work factor, organization defaults, clock.

    clock must return an aware UTC datetime.
    default_organization_name is None when registration without an
    organizationName should leave the user without an organization.
    """

    secret_key: str
    token_ttl_seconds: int = 7 * 24 * 3600
    bcrypt_rounds: int = 12
    default_organization_name: str | None = None
    clock: Callable[[], datetime] = utc_now

    @classmethod
    def from_settings(cls, settings: Settings) -> AuthConfig:
        return cls(
            secret_key=settings.secret_key,
            token_ttl_seconds=settings.token_expire_seconds,
            bcrypt_rounds=settings.bcrypt_rounds,
            default_organization_name=(
                settings.default_organization_name if settings.create_default_organization else None
            ),
        )
