"""
auth/interfaces.py -- Narrow collaborator contracts consumed by the auth core.

The core never talks SQL. It depends on these Protocols; auth/store.py
provides the SQLAlchemy implementations, and tests may substitute anything
with the same methods.

Implementations must:
  - hide inactive users from both lookups,
  - raise DuplicateUser from create_user on a unique-constraint violation,
  - raise StoreUnavailable for I/O failures and timeouts,
  - make mark_revoked visible to the next is_revoked call for the same token.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from auth.models import Role, User


class UserRepository(Protocol):
    def find_user_by_email(self, email: str) -> User | None: ...

    def find_user_by_id(self, user_id: int) -> User | None: ...

    def create_user(self, username: str, email: str, password_hash: str, role: Role) -> User: ...

    def update_last_login(self, user_id: int) -> None: ...


class RevocationRepository(Protocol):
    def mark_revoked(self, token: str, expires_at: datetime | None = None) -> None: ...

    def is_revoked(self, token: str) -> bool: ...

    def purge_expired(self, before: datetime) -> int: ...
