"""
auth/errors.py -- Error taxonomy for the credential and session-token core.

Two families:

  AuthError and subclasses are the outcomes a caller may see. Each carries the
  HTTP status, a machine-readable code and a public message so the API layer
  can render them with one exception handler:

    ValidationError      400  aggregated field failures, always a list
    ConflictError        409  duplicate email (from the UNIQUE constraint)
    AuthenticationError  401  bad credentials or bad token, one message each
    UpstreamError        500  store failure; public message carries no detail

  InvalidTokenError and subclasses say WHY a token was rejected. They are for
  logging and tests only -- the session gate collapses every one of them into
  AuthenticationError.invalid_token() so the response is not an oracle.

Layer rule: no imports from api/.
"""

from __future__ import annotations

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
INVALID_TOKEN_MESSAGE = "Invalid or expired token"
UPSTREAM_MESSAGE = "An unexpected error occurred."


class AuthError(Exception):
    """Base class for caller-visible auth outcomes."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AuthError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, errors: list[str]) -> None:
        super().__init__(message, errors=list(errors))


class ConflictError(AuthError):
    status_code = 409
    code = "conflict"

    def __init__(self, message: str = "Email already registered") -> None:
        super().__init__(message)


class AuthenticationError(AuthError):
    """401. Build through the two classmethods -- never with a cause-specific message."""

    status_code = 401

    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code

    @classmethod
    def invalid_credentials(cls) -> AuthenticationError:
        return cls(INVALID_CREDENTIALS_MESSAGE, code="invalid_credentials")

    @classmethod
    def invalid_token(cls) -> AuthenticationError:
        return cls(INVALID_TOKEN_MESSAGE, code="invalid_token")


class UpstreamError(AuthError):
    """The backing store (or signing primitive) failed or timed out.

    str(exc) holds the internal description for the log; .message is the
    fixed public text.
    """

    status_code = 500
    code = "upstream_unavailable"

    def __init__(self, internal: str) -> None:
        super().__init__(UPSTREAM_MESSAGE)
        self.internal = internal

    def __str__(self) -> str:
        return self.internal


# ---------------------------------------------------------------------------
# Token verification failures (internal)
# ---------------------------------------------------------------------------


class InvalidTokenError(Exception):
    """A token failed verification."""


class MalformedTokenError(InvalidTokenError):
    """Not a decodable token, or its claims are missing / mistyped."""


class BadSignatureError(InvalidTokenError):
    """Decodable, but the MAC does not verify under the server secret."""


class ExpiredTokenError(InvalidTokenError):
    """Signature is valid but the current time is at or past expiresAt."""
