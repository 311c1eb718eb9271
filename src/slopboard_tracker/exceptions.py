"""Custom exception classes for Slopboard Tracker."""

from typing import Optional


class TrackerError(Exception):
    """Base exception for Slopboard Tracker errors."""

    def __init__(self, message: str, code: str = "internal", detail: str = ""):
        self.message = message
        self.code = code
        self.detail = detail
        super().__init__(message)


class DeliveryError(TrackerError):
    """Sending sessions to the remote collector failed."""

    def __init__(
        self,
        message: str = "Failed to deliver sessions",
        code: str = "delivery_failed",
        detail: str = "",
        status_code: Optional[int] = None,
    ):
        super().__init__(message, code=code, detail=detail)
        self.status_code = status_code


class ApiAuthError(DeliveryError):
    """API key is missing, invalid or expired."""

    def __init__(self, message: str = "API key is invalid or expired"):
        super().__init__(message, code="auth_failed", status_code=401)


class ApiRateLimitError(DeliveryError):
    """Rate limit exceeded."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, code="rate_limit", status_code=429)


class DeliveryTimeoutError(DeliveryError):
    """Request timed out."""

    def __init__(self, message: str = "Request timed out"):
        super().__init__(message, code="timeout")


class QueueStoreError(TrackerError):
    """The offline queue database could not be read or written."""

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message, code="store_failed", detail=detail)


class SessionError(TrackerError):
    """Errors related to coding sessions."""

    pass


class SessionAlreadyClosedError(SessionError):
    """Session was closed twice or changed after closing."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session already closed: {session_id}", code="session_closed"
        )


class MissingCredentialError(TrackerError):
    """Tracking requested without an API key."""

    def __init__(self, message: str = "Set an API key to enable time tracking"):
        super().__init__(message, code="missing_api_key")
