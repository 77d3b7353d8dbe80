"""
auth/access.py -- Access control gate (role-based authorization).

authorize() is a pure function of (identity, policy). It never looks at the
request path or body, so the same two standing policies serve any number of
protected operations without per-route special cases.

The identity passed in must be the *resolved* user from TokenVerifier.verify(),
never the token's embedded claims -- that is what makes role changes in the
store effective immediately.
"""

from __future__ import annotations

from collections.abc import Iterable

from auth.errors import Forbidden, Unauthenticated
from auth.models import Role, User

ANY_AUTHENTICATED: frozenset[Role] = frozenset({Role.USER, Role.ADMIN})
ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})


def authorize(identity: User | None, allowed_roles: Iterable[Role]) -> bool:
    """Return True if identity may proceed under allowed_roles.

    Raises:
        Unauthenticated: identity is None (no one is logged in).
        Forbidden:       identity exists but its role is not allowed.
    """
    if identity is None:
        raise Unauthenticated("no identity presented")
    allowed = frozenset(Role(r) for r in allowed_roles)
    if Role(identity.role) not in allowed:
        raise Forbidden(f"role {Role(identity.role).value!r} not in {sorted(r.value for r in allowed)}")
    return True
