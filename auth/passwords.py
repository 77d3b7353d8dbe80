"""
auth/passwords.py -- Credential verifier (bcrypt password hashing).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

The cost factor is injected (BCRYPT_ROUNDS, default 12). The salt and cost
live inside the hash string itself, so verify() works for hashes created
under any earlier cost setting.

bcrypt reads at most 72 bytes of input: 4.x silently truncates, 5.x raises.
Both are pinned to one behaviour here. hash() refuses longer passwords with
InvalidPassword and verify() reports them as a mismatch.
"""

from __future__ import annotations

import bcrypt

from auth.errors import InvalidPassword

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Hash and verify passwords with a configurable bcrypt cost factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        hashed = hasher.hash("Secret123!")
        hasher.verify("Secret123!", hashed)  # True
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds
        # Timing equalization target. Computed once so the first login
        # attempt for an unknown email is not measurably slower than the rest.
        self._dummy_hash = self.hash("gatekeeper_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the plaintext password.

        Raises InvalidPassword if plain encodes to more than 72 bytes.
        """
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise InvalidPassword(f"password is {len(encoded)} bytes")
        return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. Malformed hashes and over-long passwords verify as False."""
        encoded = plain.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Still pay for one bcrypt check so length does not show in timing.
            bcrypt.checkpw(encoded[:MAX_PASSWORD_BYTES], self._dummy_hash.encode("utf-8"))
            return False
        try:
            return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
        except ValueError:
            return False

    def dummy_verify(self, plain: str) -> None:
        """Spend one bcrypt check against a throwaway hash.

        Login calls this when the email is unknown so the response time matches
        a wrong-password attempt and does not reveal which accounts exist.
        """
        self.verify(plain, self._dummy_hash)
