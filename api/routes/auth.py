"""
api/routes/auth.py -- Registration, login and identity REST endpoints.

Routes:
  POST /auth/register   -- create account (+ organization); 201 with token
  POST /auth/login      -- password login; 200 with token
  GET  /auth/me         -- current user profile (requires Bearer token)

Thin adapter: each handler maps the request body onto auth.service and the
result onto api.models. Every failure is an AuthError raised by the core and
rendered by the handler in api/main.py, so status codes and messages live in
one place.

Security:
  [H2] register and login are rate-limited per client address (limits from
       Settings, read at request time).
  [C1] Login timing equalization is inside auth.service.login() -- call it,
       never inline lookup + verify here.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

# No "from __future__ import annotations" here: slowapi wraps register/login
# and FastAPI resolves string annotations against the wrapper's globals.

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, register_limit
from api.models import AuthResponse, LoginRequest, MeResponse, RegisterRequest
from auth import service
from auth.dependencies import require_identity
from auth.models import AuthResult, Identity

# Auth policy:
# - POST /auth/register: public -- creates the identity
# - POST /auth/login:    public -- login endpoint must be unauthenticated
# - GET  /auth/me:       requires auth (require_identity)
router = APIRouter()


def _token_response(result: AuthResult, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse.from_result(result).model_dump(mode="json", by_alias=True, exclude_none=True),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
@limiter.limit(register_limit)  # [H2] below @router so the limited wrapper is the registered endpoint
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create a user, and an organization when organizationName is given.

    400 lists every validation problem at once; 409 means the email is taken.
    """
    result = service.register(
        request.app.state.user_store,
        request.app.state.auth_config,
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
        organization_name=body.organization_name,
    )
    return _token_response(result, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
@limiter.limit(login_limit)  # [H2] brute-force mitigation
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password produce the same 401 body
    ("Invalid email or password") so the endpoint cannot be used to
    enumerate registered addresses.
    """
    result = service.login(
        request.app.state.user_store,
        request.app.state.auth_config,
        email=body.email,
        password=body.password,
    )
    return _token_response(result, status_code=200)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(identity: Identity = Depends(require_identity)) -> JSONResponse:
    """Return the profile of the authenticated caller.

    The gate already re-read the user by subject id; no second lookup here.
    """
    return JSONResponse(content=MeResponse.from_user(identity.user).model_dump(by_alias=True, exclude_none=True))
