"""
auth/validation.py -- Syntactic input checks for registration and login.

Nothing here touches the store or the network: email checking is a regex for
"local@domain.tld" shape only (no MX / mailbox verification).

Password rules are all evaluated on every call. is_valid_password("abc")
reports length, uppercase and digit together so a client can show every
remediation step at once.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes and bcrypt>=5 rejects longer input.
MAX_PASSWORD_BYTES = 72

MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100
MAX_ORGANIZATION_NAME_LENGTH = 255


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)


def normalize_email(value: str) -> str:
    """Canonical form used for validation, lookup and storage."""
    return value.strip().lower()


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value))


def is_valid_password(value: str) -> PasswordCheck:
    """Evaluate every password rule and return all violations."""
    errors: list[str] = []

    if len(value) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if not re.search(r"[A-Z]", value):
        errors.append("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", value):
        errors.append("Password must contain a lowercase letter")
    if not re.search(r"[0-9]", value):
        errors.append("Password must contain a number")

    return PasswordCheck(valid=not errors, errors=errors)


def missing_fields(**fields: str | None) -> list[str]:
    """Return '<name> is required' for every field that is None or blank.

    Keyword names are the wire names (firstName, not first_name) so the
    messages match what the client sent.
    """
    return [f"{name} is required" for name, value in fields.items() if value is None or not value.strip()]


def validate_registration(
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    organization_name: str | None = None,
) -> list[str]:
    """Aggregate every syntactic problem with a registration payload.

    email is expected already normalized. Returns an empty list when valid.
    """
    errors: list[str] = []

    if len(email) > MAX_EMAIL_LENGTH:
        errors.append(f"Email must be at most {MAX_EMAIL_LENGTH} characters")
    elif not is_valid_email(email):
        errors.append("Invalid email address")

    errors.extend(is_valid_password(password).errors)

    if len(first_name) > MAX_NAME_LENGTH:
        errors.append(f"First name must be at most {MAX_NAME_LENGTH} characters")
    if len(last_name) > MAX_NAME_LENGTH:
        errors.append(f"Last name must be at most {MAX_NAME_LENGTH} characters")
    if organization_name is not None and len(organization_name) > MAX_ORGANIZATION_NAME_LENGTH:
        errors.append(f"Organization name must be at most {MAX_ORGANIZATION_NAME_LENGTH} characters")

    return errors
