"""
auth/revocation.py -- Revocation registry (logout).

Revocation is keyed on the exact token string, never on the user id. Logging
out on one device leaves the same user's other sessions alive; every issued
token is an independently revocable unit. There is no "revoke all sessions"
operation.

Entries are permanent for correctness purposes. purge_expired() drops
entries whose embedded expiry has passed -- those tokens already fail the
expiry check, so dropping them only bounds storage.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from auth.interfaces import RevocationRepository

logger = logging.getLogger("gatekeeper.auth")


class RevocationRegistry:
    def __init__(self, store: RevocationRepository) -> None:
        self.store = store

    def revoke(self, token: str, expires_at: datetime | None = None) -> None:
        """Record token as revoked. Revoking an already-revoked token is a no-op."""
        self.store.mark_revoked(token, expires_at)

    def is_revoked(self, token: str) -> bool:
        return self.store.is_revoked(token)

    def purge_expired(self, now: datetime | None = None) -> int:
        """Drop records for tokens that have expired on their own. Returns rows removed."""
        removed = self.store.purge_expired(now or datetime.now(timezone.utc))
        if removed:
            logger.info("Purged %d expired revocation records", removed)
        return removed
