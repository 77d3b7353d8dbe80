"""
auth/service.py -- Registration, login, logout, authenticate, authorize.

AuthService is the one object the routing layer talks to. It owns no mutable
state of its own: users and revocations live in the injected stores, and the
signing secret lives (read-only) inside the issuer and verifier.

Security rules enforced here:
  - Self-registration can never grant admin. A requested "admin" role is
    downgraded to "user"; admins are created out of band (main.py create-admin).
  - Login failures are undifferentiated. Unknown email and wrong password raise
    the same InvalidCredentials, and an unknown email still costs one bcrypt
    check so timing does not leak account existence.
  - Logout revokes exactly the presented token string.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from auth.access import authorize as _authorize
from auth.errors import DuplicateUser, InvalidCredentials
from auth.interfaces import RevocationRepository, UserRepository
from auth.models import Role, User
from auth.passwords import PasswordHasher
from auth.revocation import RevocationRegistry
from auth.tokens import TokenIssuer, TokenVerifier

logger = logging.getLogger("gatekeeper.auth")


def normalize_email(email: str) -> str:
    """Emails are stored and looked up lower-cased and stripped."""
    return email.strip().lower()


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        revocations: RevocationRegistry,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        verifier: TokenVerifier,
    ) -> None:
        self.users = users
        self.revocations = revocations
        self.hasher = hasher
        self.issuer = issuer
        self.verifier = verifier

    @classmethod
    def build(
        cls,
        users: UserRepository,
        revocation_store: RevocationRepository,
        secret_key: str,
        expire_seconds: int,
        bcrypt_rounds: int,
    ) -> AuthService:
        """Wire the components from plain configuration values."""
        revocations = RevocationRegistry(revocation_store)
        return cls(
            users=users,
            revocations=revocations,
            hasher=PasswordHasher(rounds=bcrypt_rounds),
            issuer=TokenIssuer(secret_key, expire_seconds=expire_seconds),
            verifier=TokenVerifier(secret_key, revocations, users),
        )

    def register(
        self,
        username: str,
        email: str,
        password: str,
        requested_role: str | Role = Role.USER,
    ) -> tuple[str, User]:
        """Create a user and return (token, user).

        Raises DuplicateUser if an active user already has this email (or the
        store reports a username/email unique violation), and InvalidPassword
        if the password is longer than bcrypt accepts.
        """
        email = normalize_email(email)
        if self.users.find_user_by_email(email) is not None:
            raise DuplicateUser("email already registered")

        role = Role.USER
        if requested_role != Role.USER:
            logger.warning("Registration for %s requested role %r; downgraded to user", username, requested_role)

        user = self.users.create_user(username, email, self.hasher.hash(password), role)
        token = self.issuer.issue(user.id, user.role)
        logger.info("Registered user id=%s username=%s", user.id, user.username)
        return token, user

    def login(self, email: str, password: str) -> tuple[str, User]:
        """Verify credentials and return (token, user).

        The returned user is the record as read before last_login is stamped,
        so user.last_login reports the previous successful login.
        """
        user = self.users.find_user_by_email(normalize_email(email))
        if user is None:
            # Equalize timing -- do NOT return before running bcrypt.
            self.hasher.dummy_verify(password)
            logger.info("Login failed: bad credentials")
            raise InvalidCredentials("bad credentials")
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Login failed: bad credentials")
            raise InvalidCredentials("bad credentials")

        self.users.update_last_login(user.id)
        token = self.issuer.issue(user.id, user.role)
        logger.info("Login succeeded for user id=%s", user.id)
        return token, user

    def authenticate(self, token: str) -> User:
        """Resolve a bearer token to the live user record.

        Raises InvalidToken, TokenExpired, TokenRevoked, UserNotFound, or
        StoreUnavailable.
        """
        return self.verifier.verify(token)

    def authorize(self, identity: User | None, allowed_roles: Iterable[Role]) -> bool:
        return _authorize(identity, allowed_roles)

    def logout(self, token: str) -> None:
        """Revoke exactly this token. Safe to call more than once.

        The signature and expiry are checked first so arbitrary strings never
        land in the registry. The embedded expiry is recorded for pruning.
        """
        claims = self.verifier.decode(token)
        self.revocations.revoke(token, claims.expires_at)
        logger.info("Logged out token %s for user id=%s", claims.token_id, claims.user_id)
