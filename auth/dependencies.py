"""
auth/dependencies.py -- Session gate: Bearer extraction, token check, FastAPI Depends().

Flow for a protected request:
  1. extract_bearer_token() -- "Authorization: Bearer <token>" only. Any other
     scheme, or no header, yields None.
  2. gate() -- verifies the token, re-resolves the subject against the store
     and returns an Identity.
  3. require_identity() -- FastAPI dependency; stores the Identity on
     request.state.identity for downstream code.

Every rejection -- no header, wrong scheme, malformed, bad signature, expired,
or a subject that no longer exists -- raises the same
AuthenticationError.invalid_token(). The API's exception handler turns it
into one uniform 401 and no route code runs.

Downstream handlers authorize on Identity.user_id only.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.config import AuthConfig
from auth.errors import AuthenticationError, InvalidTokenError
from auth.models import Identity
from auth.store import UserStore
from auth.tokens import verify_token

logger = logging.getLogger("trackerauth.auth")

_BEARER_PREFIX = "Bearer "


def extract_bearer_token(header: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    The scheme is matched case-sensitively: "bearer abc" and "Token abc" are
    both None, exactly like a missing header.
    """
    if not header or not header.startswith(_BEARER_PREFIX):
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def gate(token: str | None, store: UserStore, config: AuthConfig) -> Identity:
    """Turn a token into an Identity or raise AuthenticationError.invalid_token().

    The subject is looked up in the store on every call; a token for a user
    that no longer exists is rejected. Store failures propagate as
    UpstreamError (500), not as 401.
    """
    if token is None:
        raise AuthenticationError.invalid_token()
    try:
        subject = verify_token(token, config)
    except InvalidTokenError as exc:
        logger.debug("Token rejected: %s", exc.__class__.__name__)
        raise AuthenticationError.invalid_token() from None

    user = store.get_by_id(subject)
    if user is None:
        logger.debug("Token rejected: subject %s not found", subject)
        raise AuthenticationError.invalid_token()
    return Identity(user_id=user.id, email=user.email, organization_id=user.organization_id, user=user)


def require_identity(request: Request) -> Identity:
    """Require a valid Bearer token. Raises AuthenticationError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: Identity = Depends(require_identity)): ...
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    identity = gate(token, request.app.state.user_store, request.app.state.auth_config)
    request.state.identity = identity
    return identity
