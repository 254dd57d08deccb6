"""
api/limiter.py -- Shared slowapi rate limiter for the credential endpoints.

api/main.py mounts it (app.state.limiter + SlowAPIMiddleware) and
api/routes/auth.py decorates register/login with @limiter.limit().

One module-level instance means one counter store; per-module instances would
each count separately and no limit would ever trip.

Limits are passed to @limiter.limit() as callables so slowapi reads the
current Settings on each request rather than freezing them at import time.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def register_limit() -> str:
    """Limit for POST /auth/register, e.g. "5/minute"."""
    return get_settings().register_rate_limit


def login_limit() -> str:
    """Limit for POST /auth/login. Brute-force guard, keyed on client address."""
    return get_settings().login_rate_limit
