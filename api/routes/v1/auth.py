"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/register   -- self-registration; returns token + user (201)
  POST /api/v1/auth/login      -- email/password login; returns token + user
  POST /api/v1/auth/logout     -- revokes the presented bearer token
  GET  /api/v1/auth/profile    -- current user (requires auth)
  GET  /api/v1/auth/verify     -- token check for clients (requires auth)

Security:
  POST /login and POST /register are rate-limited per IP (LOGIN_RATE_LIMIT,
  REGISTER_RATE_LIMIT).
  AuthService.login() provides timing equalization -- use it, never inline a
  store lookup + password check here.
  Cache-Control: no-store on every response that carries a token.
  Errors are raised as auth.errors exceptions and rendered by api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, register_limit
from api.models import AuthResponse, LoginRequest, MessageResponse, ProfileResponse, RegisterRequest, UserResponse
from auth.dependencies import get_auth_service, get_bearer_token, get_current_user
from auth.models import User

# Auth policy:
# - POST /api/v1/auth/register:  public (unless SELF_REGISTRATION_ENABLED=false)
# - POST /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:    requires a fully verified token (get_current_user)
# - GET  /api/v1/auth/profile:   requires auth (get_current_user)
# - GET  /api/v1/auth/verify:    requires auth (get_current_user)
router = APIRouter()


def _token_response(status_code: int, token: str, user: User, expires_in: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=expires_in,
            user=UserResponse.from_user(user),
        ).model_dump(mode="json"),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@limiter.limit(register_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account and return a bearer token.

    A requested "admin" role is stored and issued as "user"; admin accounts
    are only created with `python main.py create-admin`.
    """
    if not request.app.state.settings.self_registration_enabled:
        raise HTTPException(
            status_code=403,
            detail={"code": "registration_disabled", "message": "Self-registration is disabled."},
        )
    service = get_auth_service(request)
    token, user = service.register(body.username, body.email, body.password, body.role.value)
    return _token_response(201, token, user, service.issuer.expire_seconds)


@limiter.limit(login_limit)  # brute-force mitigation
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password produce the same 401 bad_credentials
    response, so the endpoint cannot be used to enumerate accounts.
    """
    service = get_auth_service(request)
    token, user = service.login(body.email, body.password)
    return _token_response(200, token, user, service.issuer.expire_seconds)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request, current_user: User = Depends(get_current_user)) -> MessageResponse:
    """Revoke the bearer token used for this request.

    Only this token is revoked; the user's other sessions stay valid.
    """
    get_auth_service(request).logout(get_bearer_token(request))
    return MessageResponse(message="Logged out successfully.")


@router.get("/auth/profile", response_model=ProfileResponse)
def profile(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    """Return the current user, freshly read from the store."""
    return ProfileResponse(user=UserResponse.from_user(current_user))


@router.get("/auth/verify", response_model=ProfileResponse)
def verify(current_user: User = Depends(get_current_user)) -> ProfileResponse:
    """200 if the presented token is valid, unrevoked, and its user is active."""
    return ProfileResponse(user=UserResponse.from_user(current_user))
