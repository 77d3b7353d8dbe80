"""Unit tests for auth/access.py -- the role gate."""

from __future__ import annotations

import pytest

from auth.access import ADMIN_ONLY, ANY_AUTHENTICATED, authorize
from auth.errors import Forbidden, Unauthenticated
from auth.models import Role, User


def _user(role: Role) -> User:
    return User(username="someone", email="s@x.com", hashed_password="x", role=role, id=1)


def test_user_passes_any_authenticated() -> None:
    assert authorize(_user(Role.USER), ANY_AUTHENTICATED) is True


def test_admin_passes_both_policies() -> None:
    admin = _user(Role.ADMIN)
    assert authorize(admin, ANY_AUTHENTICATED) is True
    assert authorize(admin, ADMIN_ONLY) is True


def test_user_is_forbidden_from_admin_only() -> None:
    with pytest.raises(Forbidden) as exc_info:
        authorize(_user(Role.USER), ADMIN_ONLY)
    assert exc_info.value.status_code == 403


def test_no_identity_is_unauthenticated() -> None:
    with pytest.raises(Unauthenticated) as exc_info:
        authorize(None, ANY_AUTHENTICATED)
    assert exc_info.value.status_code == 401


def test_no_identity_beats_forbidden() -> None:
    """A missing identity is a 401 even under a policy nobody could satisfy."""
    with pytest.raises(Unauthenticated):
        authorize(None, frozenset())


def test_empty_policy_forbids_everyone() -> None:
    with pytest.raises(Forbidden):
        authorize(_user(Role.ADMIN), [])


def test_role_strings_are_accepted() -> None:
    assert authorize(_user(Role.ADMIN), ["admin"]) is True
    with pytest.raises(Forbidden):
        authorize(_user(Role.USER), ["admin"])


def test_standing_policies() -> None:
    assert ANY_AUTHENTICATED == {Role.USER, Role.ADMIN}
    assert ADMIN_ONLY == {Role.ADMIN}
