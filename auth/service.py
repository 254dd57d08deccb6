"""
auth/service.py -- Registration and login orchestration.

The only successful transition is Unauthenticated -> Authenticated (a token
is issued). Every failure leaves the caller unauthenticated with an error from
auth/errors.py.

  register: required fields -> normalize email -> aggregate validation
            -> advisory exists check -> hash -> atomic insert -> issue token
  login:    required fields -> normalize email -> lookup -> verify -> issue token

Within one call, hashing / verification always completes before a token is
issued. Both functions are synchronous; the API layer runs them in its thread
pool.

Layer rule: no imports from api/. Framework-free so any adapter (FastAPI
route, serverless handler, CLI) can call it.
"""

from __future__ import annotations

import logging

from auth.config import AuthConfig
from auth.errors import AuthenticationError, ConflictError, ValidationError
from auth.models import AuthResult, Organization, User
from auth.passwords import dummy_hash, hash_password, verify_password
from auth.store import UserStore
from auth.tokens import issue_token
from auth.validation import missing_fields, normalize_email, validate_registration

logger = logging.getLogger("trackerauth.auth")


def register(
    store: UserStore,
    config: AuthConfig,
    email: str | None,
    password: str | None,
    first_name: str | None,
    last_name: str | None,
    organization_name: str | None = None,
) -> AuthResult:
    """Create a user (and maybe an organization) and return a token for it.

    Raises:
        ValidationError: missing fields, or every syntactic problem at once.
        ConflictError:   the email is registered -- from the advisory check or,
                         authoritatively, from the UNIQUE constraint on insert.
        UpstreamError:   the store failed; nothing was written.
    """
    missing = missing_fields(email=email, password=password, firstName=first_name, lastName=last_name)
    if missing:
        raise ValidationError("Missing required fields", errors=missing)

    email = normalize_email(email)
    first_name = first_name.strip()
    last_name = last_name.strip()
    if organization_name is not None:
        organization_name = organization_name.strip() or None

    errors = validate_registration(email, password, first_name, last_name, organization_name)
    if errors:
        raise ValidationError("Invalid registration details", errors=errors)

    # Advisory only. Saves a bcrypt round for the common duplicate case; the
    # insert below is what actually decides.
    if store.exists_by_email(email):
        raise ConflictError()

    password_hash = hash_password(password, rounds=config.bcrypt_rounds)

    org_name = organization_name or config.default_organization_name
    organization = Organization(name=org_name) if org_name else None
    user, organization = store.insert_user_and_maybe_organization(
        User(email=email, password_hash=password_hash, first_name=first_name, last_name=last_name),
        organization,
    )

    token = issue_token(user.id, config)
    logger.info(
        "User registered: id=%s organization=%s",
        user.id,
        organization.id if organization is not None else None,
    )
    return AuthResult(user=user, token=token, organization=organization)


def login(
    store: UserStore,
    config: AuthConfig,
    email: str | None,
    password: str | None,
) -> AuthResult:
    """Authenticate by email and password and return a token.

    Unknown email and wrong password raise the identical
    AuthenticationError.invalid_credentials(). Both paths run one bcrypt
    verification so they also take the same time [C1].

    Raises:
        ValidationError:     email or password missing.
        AuthenticationError: bad credentials, cause not disclosed.
        UpstreamError:       the store failed.
    """
    missing = missing_fields(email=email, password=password)
    if missing:
        raise ValidationError("Email and password are required", errors=missing)

    user = store.find_user_by_email(normalize_email(email))
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt [C1]
        verify_password(password, dummy_hash(config.bcrypt_rounds))
        raise AuthenticationError.invalid_credentials()
    if not verify_password(password, user.password_hash):
        raise AuthenticationError.invalid_credentials()

    token = issue_token(user.id, config)
    logger.info("User logged in: id=%s", user.id)
    return AuthResult(user=user, token=token, organization=user.organization)
