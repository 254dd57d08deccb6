"""
auth/tokens.py -- Signed, expiring identity tokens (JWT via python-jose, HS256).

Claim set is exactly {sub, iat, exp}: subject = User.id, issued-at and
expiry as integer epoch seconds. Nothing else goes into a token -- callers
that need the email get it from the response body or re-read it from the
store by subject.

Verification steps, each with its own failure class (see auth/errors.py):
  1. Parse header and claims without trusting them   -> MalformedTokenError
  2. Check alg and the HMAC under the server secret  -> BadSignatureError
  3. Check claim types                               -> MalformedTokenError
  4. Compare exp against AuthConfig.clock()          -> ExpiredTokenError

python-jose's own exp check reads the wall clock, so it is disabled and step
4 uses the injected clock instead. There is no revocation list: a token is
valid until exp no matter what happens server-side.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from jose.exceptions import JOSEError

from auth.config import AuthConfig
from auth.errors import BadSignatureError, ExpiredTokenError, MalformedTokenError, UpstreamError
from auth.models import IssuedToken

_ALGORITHM = "HS256"


def issue_token(subject: str, config: AuthConfig, ttl_seconds: int | None = None) -> IssuedToken:
    """Sign a token for subject valid for ttl_seconds (default config.token_ttl_seconds)."""
    ttl = ttl_seconds if ttl_seconds is not None else config.token_ttl_seconds
    # Whole seconds on both ends so expires_at matches the exp claim exactly.
    issued_at = config.clock().astimezone(timezone.utc).replace(microsecond=0)
    expires_at = issued_at + timedelta(seconds=ttl)
    claims = {
        "sub": subject,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    try:
        token = jwt.encode(claims, config.secret_key, algorithm=_ALGORITHM)
    except JOSEError as exc:
        raise UpstreamError(f"token signing failed: {exc}") from exc
    return IssuedToken(token=token, subject=subject, issued_at=issued_at, expires_at=expires_at)


def verify_token(token: str, config: AuthConfig) -> str:
    """Return the subject of a valid token or raise an InvalidTokenError subclass."""
    try:
        header = jwt.get_unverified_header(token)
        jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise MalformedTokenError(str(exc)) from exc

    if header.get("alg") != _ALGORITHM:
        raise BadSignatureError(f"unexpected alg {header.get('alg')!r}")

    try:
        claims = jwt.decode(
            token,
            config.secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False, "verify_sub": False},
        )
    except JWTError as exc:
        raise BadSignatureError(str(exc)) from exc

    subject = claims.get("sub")
    issued_at = claims.get("iat")
    expires_at = claims.get("exp")
    if not isinstance(subject, str) or not subject:
        raise MalformedTokenError("missing or invalid sub claim")
    if not _is_epoch(issued_at) or not _is_epoch(expires_at):
        raise MalformedTokenError("missing or invalid iat/exp claim")

    now = int(config.clock().timestamp())
    if now >= expires_at:
        raise ExpiredTokenError(f"expired at {datetime.fromtimestamp(expires_at, tz=timezone.utc).isoformat()}")
    return subject


def _is_epoch(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)
