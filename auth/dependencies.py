"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Bearer tokens come only from the Authorization header:
    Authorization: Bearer <token>

try_get_current_user() is the soft variant: None when no credentials were
presented at all, but a presented-and-bad token still raises (an expired or
revoked token is never silently treated as anonymous).
get_current_user() requires a resolved user.
require_roles(...) builds a dependency that runs the access control gate;
require_user and require_admin are the two standing policies.

Failures are raised as auth.errors exceptions and rendered by the API's
AuthError handler (401/403/503 with the standard error envelope).

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi because this module is part of
  the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Request

from auth.access import ADMIN_ONLY, ANY_AUTHENTICATED, authorize
from auth.errors import InvalidToken, Unauthenticated
from auth.models import Role, User
from auth.service import AuthService


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _extract_bearer(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise InvalidToken("malformed Authorization header")
    return token


def get_bearer_token(request: Request) -> str:
    """Return the raw bearer token. Raises Unauthenticated if none was sent."""
    token = _extract_bearer(request)
    if token is None:
        raise Unauthenticated("no Authorization header")
    return token


def try_get_current_user(request: Request) -> User | None:
    """Resolve the bearer token to a live user, or None if no token was sent."""
    token = _extract_bearer(request)
    if token is None:
        return None
    return get_auth_service(request).authenticate(token)


def get_current_user(request: Request) -> User:
    """Require authentication. Raises Unauthenticated or a token error.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise Unauthenticated("no Authorization header")
    return user


def require_roles(*roles: Role) -> Callable[[Request], User]:
    """Build a dependency that authenticates, then applies the role gate.

    401 if unauthenticated (or the token fails verification), 403 if the
    resolved user's *current* role is not in roles.
    """
    allowed = frozenset(roles)

    def dependency(request: Request) -> User:
        user = try_get_current_user(request)
        authorize(user, allowed)
        return user

    return dependency


require_user = require_roles(*ANY_AUTHENTICATED)
require_admin = require_roles(*ADMIN_ONLY)
