"""
Broker exceptions.

Every failure the broker reports to a caller is a ``BrokerError`` subclass
carrying a stable ``error_code`` so callers can tell "expired, restart the
flow" apart from "already used, possible replay".
"""

import functools
from typing import Any

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError


class BrokerError(Exception):
    """
    Base exception for all broker errors.

    Attributes:
        message: Human-readable message
        details: Extra structured details
        error_code: Stable identifier (defaults to the class name)
        http_status: Status used when rendered by the HTTP layer
        oauth_error: RFC 6749 error string for OAuth clients
    """

    http_status: int = 400
    oauth_error: str = "invalid_request"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Error body returned to callers"""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


# ==================== Client registry ====================


class UnknownClient(BrokerError):
    http_status = 400
    oauth_error = "invalid_client"

    def __init__(self, client_id: str):
        super().__init__("Unknown client", details={"client_id": client_id})


class InactiveClient(BrokerError):
    http_status = 400
    oauth_error = "unauthorized_client"

    def __init__(self, client_id: str):
        super().__init__("Client is not active", details={"client_id": client_id})


class RedirectMismatch(BrokerError):
    http_status = 400
    oauth_error = "invalid_request"

    def __init__(self, client_id: str, redirect_uri: str):
        super().__init__(
            "Redirect URI is not registered for this client",
            details={"client_id": client_id, "redirect_uri": redirect_uri},
        )


class InvalidClientCredentials(BrokerError):
    http_status = 401
    oauth_error = "invalid_client"

    def __init__(self, message: str = "Invalid client credentials", locked: bool = False):
        super().__init__(message, details={"locked": True} if locked else None)
        if locked:
            self.http_status = 429


class InvalidScope(BrokerError):
    http_status = 400
    oauth_error = "invalid_scope"

    def __init__(self, client_id: str, scopes: list[str]):
        super().__init__(
            "Requested scope is not permitted for this client",
            details={"client_id": client_id, "scopes": scopes},
        )


class UnsupportedResponseType(BrokerError):
    http_status = 400
    oauth_error = "unsupported_response_type"

    def __init__(self, response_type: str | None):
        super().__init__(
            "Only response_type=code is supported",
            details={"response_type": response_type},
        )


class InvalidRequest(BrokerError):
    http_status = 400
    oauth_error = "invalid_request"


# ==================== SSO tokens ====================


class UnknownApplication(BrokerError):
    http_status = 400

    def __init__(self, app: str):
        super().__init__("Unknown or disabled application", details={"app": app})


class InvalidOrUsedToken(BrokerError):
    http_status = 401
    oauth_error = "invalid_token"

    def __init__(self):
        super().__init__("Token not found or already used")


class ExpiredToken(BrokerError):
    http_status = 401
    oauth_error = "invalid_token"

    def __init__(self, message: str = "Token expired"):
        super().__init__(message)


class UnknownUser(BrokerError):
    http_status = 404

    def __init__(self, user_id: str):
        super().__init__("User not found", details={"user_id": user_id})


# ==================== Authorization codes ====================


class InvalidOrUsedGrant(BrokerError):
    http_status = 400
    oauth_error = "invalid_grant"

    def __init__(self):
        super().__init__("Invalid or already used authorization code")


class ExpiredGrant(BrokerError):
    http_status = 400
    oauth_error = "invalid_grant"

    def __init__(self):
        super().__init__("Authorization code expired")


# ==================== Access / refresh tokens ====================


class InvalidOrRevokedAccessToken(BrokerError):
    http_status = 401
    oauth_error = "invalid_token"

    def __init__(self):
        super().__init__("Invalid or revoked access token")


class InvalidOrRevokedRefreshToken(BrokerError):
    http_status = 400
    oauth_error = "invalid_grant"

    def __init__(self):
        super().__init__("Invalid or revoked refresh token")


class ExpiredRefreshToken(BrokerError):
    http_status = 400
    oauth_error = "invalid_grant"

    def __init__(self):
        super().__init__("Refresh token expired")


# ==================== Store ====================


class StoreUnavailable(BrokerError):
    """Token store could not be reached; callers may retry with backoff."""

    http_status = 503
    oauth_error = "temporarily_unavailable"

    def __init__(self, operation: str, reason: str):
        super().__init__(
            "Token store unavailable",
            details={"operation": operation, "reason": reason},
        )


STORE_ERRORS = (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)


def translate_store_errors(func):
    """Re-raise store connectivity failures as ``StoreUnavailable``."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except STORE_ERRORS as e:
            raise StoreUnavailable(func.__name__, type(e).__name__) from e

    return wrapper
