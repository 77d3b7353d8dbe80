"""
auth/errors.py -- Error taxonomy for the auth core.

Every failure the core can produce is an AuthError subclass carrying the HTTP
status, a machine-readable public code, and a public message. The API layer
renders these through a single exception handler, so route code never builds
error responses for auth failures by hand.

Public surface rules:
  - InvalidToken, TokenRevoked, UserNotFound and Unauthenticated share one
    public code/message ("unauthorized"). A client cannot tell which internal
    check rejected it.
  - TokenExpired has its own code so clients can prompt a re-login.
  - Forbidden (403) is distinct from the 401 family: "log in" vs "you lack
    permission".
  - StoreUnavailable is a server-side failure and the only retryable one.
  - InvalidPassword (422) means the password is longer than bcrypt accepts.

The internal `reason` is for logs only and is never sent to clients.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all recoverable, per-request auth failures."""

    status_code: int = 401
    code: str = "unauthorized"
    message: str = "Authentication required."
    retryable: bool = False

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason or self.__class__.__name__
        super().__init__(self.reason)


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Deliberately undifferentiated."""

    code = "bad_credentials"
    message = "Invalid email or password."


class DuplicateUser(AuthError):
    status_code = 409
    code = "conflict"
    message = "A user with that email or username already exists."


class InvalidToken(AuthError):
    """Malformed, badly signed, or wrong-algorithm token."""


class TokenExpired(AuthError):
    code = "token_expired"
    message = "Token expired. Please log in again."


class TokenRevoked(AuthError):
    """Token was logged out. Surfaced exactly like InvalidToken."""


class UserNotFound(AuthError):
    """Token is valid but its user is gone or inactive."""


class Unauthenticated(AuthError):
    """No identity at all was presented."""


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    message = "Insufficient permissions."


class StoreUnavailable(AuthError):
    """A collaborator store failed or timed out."""

    status_code = 503
    code = "service_unavailable"
    message = "Service temporarily unavailable. Please retry."
    retryable = True


class InvalidPassword(AuthError):
    """Password cannot be hashed (over bcrypt's 72-byte input limit)."""

    status_code = 422
    code = "invalid_password"
    message = "Password must be at most 72 bytes."
