"""Typed forge errors.

Each exception corresponds to one non-success outcome of a forge call and
carries the structured data a caller needs to build a user-facing message.
"""

from datetime import datetime, timezone
from typing import Any, Optional


class ForgeError(Exception):
    """Base class for forge errors with the HTTP status code the service answers with.

    All forge exceptions inherit from this class and define their specific
    status_code and error_code for consistent HTTP response handling.
    """
    status_code: int = 500
    error_code: str = "forge_error"

    def __init__(self, message: str = "Forge request failed"):
        self.message = message
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return self.message

    def to_response(self) -> dict[str, Any]:
        """Convert to an API error body."""
        return {
            "error": self.error_code,
            "message": self.user_message,
            "detail": self.message,
        }


class RateLimitExceeded(ForgeError):
    """Raised when the forge rate limit is still exhausted after the single retry.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, reset_at: Optional[float] = None, detail: Optional[str] = None):
        self.reset_at = reset_at
        message = detail or "GitHub API rate limit exceeded."
        if reset_at is not None:
            reset = datetime.fromtimestamp(reset_at, tz=timezone.utc)
            message += f" Budget resets at {reset.isoformat()}."
        super().__init__(message)

    @property
    def user_message(self) -> str:
        return "GitHub API rate limit exceeded. Please wait a few minutes and try again."

    def retry_after(self, now: float) -> Optional[int]:
        """Seconds until the reset, rounded up; None when the reset is unknown."""
        if self.reset_at is None:
            return None
        return max(0, int(self.reset_at - now + 0.999))

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["reset_at"] = self.reset_at
        return body


class NotFoundError(ForgeError):
    """Raised when a forge resource does not exist (or is private to the caller).

    Maps to HTTP 404 Not Found.
    """
    status_code = 404
    error_code = "not_found"

    def __init__(self, endpoint: str = "", detail: Optional[str] = None):
        self.endpoint = endpoint
        super().__init__(detail or f"Resource not found: {endpoint}")

    @property
    def user_message(self) -> str:
        return "Repository not found. Please check the repository URL."


class UnauthorizedError(ForgeError):
    """Raised when the forge rejects the credential.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401
    error_code = "unauthorized"

    def __init__(self, detail: str = "Unauthorized. The token is invalid or the repository is private."):
        super().__init__(detail)


class ForbiddenError(ForgeError):
    """Raised on a 403 that is not a rate-limit signal.

    Maps to HTTP 403 Forbidden.
    """
    status_code = 403
    error_code = "forbidden"

    def __init__(self, reason: str = "Forbidden"):
        self.reason = reason
        super().__init__(reason)


class TransientError(ForgeError):
    """Raised for any other non-2xx upstream status. Not retried automatically.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "upstream_error"

    def __init__(self, upstream_status: int, detail: str = ""):
        self.upstream_status = upstream_status
        super().__init__(f"GitHub API Error: {upstream_status} {detail}".rstrip())

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["upstream_status"] = self.upstream_status
        return body


class NetworkFailure(ForgeError):
    """Raised when no HTTP response was received at all.

    ``offline`` separates connection failures from timeouts and other
    transport errors. Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error_code = "network_failure"

    def __init__(self, detail: str, offline: bool = False):
        self.offline = offline
        super().__init__(detail)

    @property
    def user_message(self) -> str:
        if self.offline:
            return "Network error. Please check your internet connection."
        return f"Network error while contacting GitHub: {self.message}"
