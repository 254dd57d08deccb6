"""
auth/passwords.py -- Password hashing and verification (bcrypt).

Every hash gets its own random salt from bcrypt.gensalt(); the cost factor
comes from AuthConfig.bcrypt_rounds. bcrypt.checkpw() compares in constant
time, so a mismatch does not leak where it occurred.

There is exactly one scheme. No fast-digest or shared-salt fallback exists.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from functools import lru_cache

import bcrypt

# bcrypt reads at most 72 bytes. 4.x truncates silently, 5.x raises.
_MAX_INPUT_BYTES = 72


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of the plaintext password.

    Raises ValueError for out-of-range rounds or input over 72 bytes. That is
    an internal failure -- validation rejects such passwords before we get here.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _MAX_INPUT_BYTES:
        raise ValueError(f"password exceeds {_MAX_INPUT_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Input over 72 bytes never matches. No stored hash can come from such a
    password, and truncating it would let any extension of a 72-byte
    password match.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _MAX_INPUT_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        # Corrupt stored hash.
        return False


@lru_cache(maxsize=8)
def dummy_hash(rounds: int) -> str:
    """Hash with the same cost as real ones, for timing equalization [C1].

    Login verifies against this when the email is unknown so response time
    does not reveal whether an account exists. Cached per work factor so only
    the first unknown-email login pays for generating it.
    """
    return hash_password("trackerauth_timing_dummy", rounds=rounds)
