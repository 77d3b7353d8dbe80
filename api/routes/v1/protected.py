"""
api/routes/v1/protected.py -- Role-gated endpoints.

Routes:
  GET /api/v1/protected/dashboard     -- any authenticated user
  GET /api/v1/protected/user-data     -- role user or admin
  GET /api/v1/protected/admin-panel   -- admin only
  GET /api/v1/protected/admin/users   -- admin only; lists active users

Every route delegates gating to auth.dependencies; none of them inspects the
role itself. The role checked is the user's *current* role in the store.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from api.models import AccessResponse, DashboardResponse, RoleEnum, UserListResponse, UserResponse
from auth.dependencies import get_current_user, require_admin, require_user
from auth.models import User

router = APIRouter()

_ADMIN_PERMISSIONS = ["read", "write", "delete", "manage_users"]


@router.get("/protected/dashboard", response_model=DashboardResponse)
def dashboard(current_user: User = Depends(get_current_user)) -> DashboardResponse:
    return DashboardResponse(
        message="Welcome to your dashboard!",
        user=UserResponse.from_user(current_user),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/protected/user-data", response_model=AccessResponse)
def user_data(current_user: User = Depends(require_user)) -> AccessResponse:
    return AccessResponse(
        message="This is user-specific data",
        user_id=current_user.id,
        username=current_user.username,
        role=RoleEnum(current_user.role.value),
        access_level="user",
    )


@router.get("/protected/admin-panel", response_model=AccessResponse)
def admin_panel(current_user: User = Depends(require_admin)) -> AccessResponse:
    return AccessResponse(
        message="Welcome to the admin panel!",
        user_id=current_user.id,
        username=current_user.username,
        role=RoleEnum(current_user.role.value),
        access_level="admin",
        permissions=_ADMIN_PERMISSIONS,
    )


@router.get("/protected/admin/users", response_model=UserListResponse)
def list_users(request: Request, current_user: User = Depends(require_admin)) -> UserListResponse:
    """List all active users. Admin only."""
    users = request.app.state.user_store.list_users()
    return UserListResponse(users=[UserResponse.from_user(u) for u in users], total=len(users))
