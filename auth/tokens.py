"""
auth/tokens.py -- Bearer token issuance and verification (JWT).

Security design decisions:
  JWT: python-jose with HS256. Tokens carry user_id, role, iat, exp and a
       random jti. The jti makes every issued token a distinct string, so two
       logins in the same second yield two independently revocable tokens.

  Algorithm pinning: decode() passes algorithms=[<configured alg>]. A token
       whose header declares anything else -- RS256 with the secret used as a
       "public key", or alg=none -- is rejected before claims are read.

  Secret handling: the signing secret is constructor state injected by the
       caller (API lifespan, CLI, tests). Nothing here reads configuration or
       keeps module-level key material, so two verifiers with different
       secrets can coexist in one process.

  Fresh identity: TokenVerifier.verify() returns the user record from the
       store, not the token's claims. The token proves *who*; the store says
       what that user may do *now*. A role change or deactivation takes
       effect on the very next request even though the token payload is stale.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import InvalidToken, TokenExpired, TokenRevoked, UserNotFound
from auth.models import Role, TokenClaims, User

if TYPE_CHECKING:
    from auth.interfaces import UserRepository
    from auth.revocation import RevocationRegistry

logger = logging.getLogger("gatekeeper.auth")

DEFAULT_ALGORITHM = "HS256"
DEFAULT_EXPIRE_SECONDS = 24 * 3600

_REQUIRED_CLAIMS = ("user_id", "role")


class TokenIssuer:
    """Mint signed, time-bounded bearer tokens.

    Usage:
        issuer = TokenIssuer(secret_key, expire_seconds=86400)
        token = issuer.issue(user.id, user.role)
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = DEFAULT_EXPIRE_SECONDS,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self.algorithm = algorithm

    def issue(self, user_id: int, role: Role, issued_at: datetime | None = None) -> str:
        """Encode a signed JWT asserting (user_id, role, iat, exp).

        Args:
            user_id:   Numeric user ID from the store.
            role:      Role at issuance time. Copied into the token; may go stale.
            issued_at: Issue instant. Defaults to now; tests pass a past value
                       to produce an already-expired token.
        """
        iat = issued_at or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "role": Role(role).value,
            "iat": iat,
            "exp": iat + timedelta(seconds=self.expire_seconds),
            "jti": secrets.token_urlsafe(16),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)


class TokenVerifier:
    """Validate a presented token and resolve it to a live user.

    verify() runs four checks in order, each a distinct rejection:
      1. signature / structure  -> InvalidToken
      2. expiry                 -> TokenExpired
      3. revocation registry    -> TokenRevoked
      4. user store lookup      -> UserNotFound (absent or inactive)
    """

    def __init__(
        self,
        secret_key: str,
        revocations: RevocationRegistry,
        users: UserRepository,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self.revocations = revocations
        self.users = users
        self.algorithm = algorithm

    def decode(self, token: str) -> TokenClaims:
        """Check signature, algorithm, required claims and expiry. No store access."""
        if not isinstance(token, str) or not token:
            raise InvalidToken("empty or non-string token")
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True, "require_iat": True},
            )
        except ExpiredSignatureError as exc:
            raise TokenExpired("token past its exp claim") from exc
        except JWTError as exc:
            raise InvalidToken(f"jwt rejected: {exc}") from exc
        return _claims_from_payload(payload)

    def verify(self, token: str) -> User:
        """Return the current user record for a valid, unrevoked token."""
        claims = self.decode(token)
        if self.revocations.is_revoked(token):
            raise TokenRevoked(f"token {claims.token_id} was revoked")
        user = self.users.find_user_by_id(claims.user_id)
        if user is None:
            raise UserNotFound(f"user {claims.user_id} absent or inactive")
        return user


def _claims_from_payload(payload: dict) -> TokenClaims:
    for key in _REQUIRED_CLAIMS:
        if key not in payload:
            raise InvalidToken(f"missing claim {key!r}")
    user_id = payload["user_id"]
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise InvalidToken("user_id claim is not an integer")
    try:
        role = Role(payload["role"])
    except ValueError as exc:
        raise InvalidToken("unknown role claim") from exc
    return TokenClaims(
        user_id=user_id,
        role=role,
        issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        token_id=str(payload.get("jti", "")),
    )
