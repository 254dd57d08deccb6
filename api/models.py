"""
API request and response models for tracker-auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Wire names are camelCase (firstName, organizationId, expiresAt). Models use a
to_camel alias generator; responses are dumped with by_alias=True and
exclude_none=True so optional members (organization, organizationId) are
simply absent when there is nothing to report.

Separation of concerns: auth/ models = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from auth.models import AuthResult, Organization, User

_CAMEL = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register.

    Every field is Optional here on purpose: missing fields are reported by
    auth.service.register() as one aggregated 400 with a per-field list,
    rather than as a schema error.
    """

    model_config = _CAMEL

    email: Optional[str] = None
    password: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization_name: Optional[str] = None


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""

    model_config = _CAMEL

    email: Optional[str] = None
    password: Optional[str] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str
    email: str
    first_name: str
    last_name: str
    organization_id: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            organization_id=user.organization_id,
        )


class OrganizationOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str

    @classmethod
    def from_organization(cls, organization: Organization) -> "OrganizationOut":
        return cls(id=organization.id, name=organization.name)


class AuthResponse(BaseModel):
    """Success body for POST /auth/register (201) and POST /auth/login (200).

    The email shown to the client comes from user.email here, not from the
    token -- the token carries only sub/iat/exp.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    user: UserOut
    organization: Optional[OrganizationOut] = None
    token: str
    expires_at: datetime

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        """Factory Method -- the domain-to-wire mapping lives with the wire model."""
        return cls(
            user=UserOut.from_user(result.user),
            organization=(
                OrganizationOut.from_organization(result.organization) if result.organization is not None else None
            ),
            token=result.token.token,
            expires_at=result.token.expires_at,
        )


class MeResponse(UserOut):
    """Response for GET /auth/me -- the caller's profile, re-read by subject id."""


class ErrorDetail(BaseModel):
    """Machine-readable error payload.

    errors is present only for validation failures, where it lists every
    problem found.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    errors: Optional[list[str]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
