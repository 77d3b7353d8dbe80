"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Dataclasses own
domain shape; stores, the token layer, and the service do the work.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    """Closed set of roles. Copied into every token at issuance.

    Role("superuser") raises ValueError, which is how unknown claims are rejected.
    """

    USER = "user"
    ADMIN = "admin"


@dataclass
class User:
    """An account record as owned by the user store.

    email is normalized to lower case before it reaches the store, so lookups
    are effectively case-insensitive.

    hashed_password holds a bcrypt hash, never the plaintext.
    last_login is None until the first successful login.
    is_active=False is a soft delete: the store hides such rows from lookups.
    """

    username: str
    email: str
    hashed_password: str
    role: Role = Role.USER
    id: int | None = None
    created_at: str | None = None
    last_login: str | None = None  # ISO 8601 timestamp of last successful login
    is_active: bool = True


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, signature-verified claims of a bearer token.

    These claims are only trusted for identity linkage (user_id). The role
    here may be stale; authorization uses the freshly resolved User instead.
    """

    user_id: int
    role: Role
    issued_at: datetime
    expires_at: datetime
    token_id: str
