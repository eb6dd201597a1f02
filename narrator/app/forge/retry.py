"""Outcome classification and retry decisions for forge calls.

Every HTTP attempt is classified exactly once into an Outcome. The policy
then decides whether the logical call succeeds, waits and retries, or
fails with a typed error. The only automatic retry is a single one after
a rate-limit reset; transient and network failures surface immediately.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import httpx

from narrator.app.exceptions import (
    ForbiddenError,
    ForgeError,
    NetworkFailure as NetworkFailureError,
    NotFoundError,
    RateLimitExceeded,
    TransientError,
    UnauthorizedError,
)

RATE_LIMIT_REMAINING_HEADER = "x-ratelimit-remaining"
RATE_LIMIT_RESET_HEADER = "x-ratelimit-reset"


@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class RateLimited:
    reset_at: Optional[float] = None  # epoch seconds


@dataclass(frozen=True)
class NotFound:
    message: str = ""


@dataclass(frozen=True)
class Unauthorized:
    message: str = ""


@dataclass(frozen=True)
class Forbidden:
    reason: str


@dataclass(frozen=True)
class Transient:
    status: int
    message: str = ""


@dataclass(frozen=True)
class NetworkFailure:
    message: str
    offline: bool = False


Outcome = Union[Success, RateLimited, NotFound, Unauthorized, Forbidden, Transient, NetworkFailure]


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    # httpx.Headers is case-insensitive; plain dicts from tests may not be.
    value = headers.get(name)
    if value is None:
        value = next((v for k, v in headers.items() if k.lower() == name), None)
    return value


def _parse_reset(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw.strip())
    except ValueError:
        return None


@dataclass
class RetryPolicy:
    """Pure decision logic for one logical forge call.

    Attributes:
        safety_margin: Seconds added to the server-declared reset before retrying
        max_rate_limit_retries: Retries allowed after a RateLimited outcome (1)

    Example:
        >>> policy = RetryPolicy(safety_margin=1.0)
        >>> policy.classify(404, {})
        NotFound(message='')
    """

    safety_margin: float = 1.0
    max_rate_limit_retries: int = 1

    def classify(
        self,
        status: int,
        headers: Mapping[str, str],
        message: Optional[str] = None,
        reason_phrase: str = "",
        payload: Any = None,
    ) -> Outcome:
        """Map an HTTP status, headers and error body message to an Outcome.

        A 403 is only a rate limit when the remaining counter is exactly zero
        and a reset time is declared; otherwise it is a plain Forbidden.
        """
        if 200 <= status < 300:
            return Success(payload)

        if status == 403:
            remaining = _header(headers, RATE_LIMIT_REMAINING_HEADER)
            reset_at = _parse_reset(_header(headers, RATE_LIMIT_RESET_HEADER))
            if remaining is not None and remaining.strip() == "0" and reset_at is not None:
                return RateLimited(reset_at=reset_at)
            return Forbidden(reason=message or reason_phrase or "Forbidden")

        if status == 404:
            return NotFound(message=message or "")

        if status == 401:
            return Unauthorized(message=message or "")

        return Transient(status=status, message=message or reason_phrase)

    def classify_response(self, response: httpx.Response) -> Outcome:
        """Classify a received response, decoding the JSON body on success."""
        if response.is_success:
            if not response.content:
                return Success(None)
            try:
                return Success(response.json())
            except ValueError:
                return Transient(
                    status=response.status_code,
                    message="Response body is not valid JSON",
                )

        return self.classify(
            response.status_code,
            response.headers,
            message=_error_message(response),
            reason_phrase=response.reason_phrase,
        )

    def classify_exception(self, exc: httpx.TransportError) -> NetworkFailure:
        """Classify a transport failure where no response was received."""
        if isinstance(exc, httpx.ConnectError):
            return NetworkFailure(message=str(exc) or "Connection failed", offline=True)
        if isinstance(exc, httpx.TimeoutException):
            return NetworkFailure(message=f"Request timed out: {exc}".rstrip(": "))
        return NetworkFailure(message=str(exc) or type(exc).__name__)

    def should_retry(self, outcome: Outcome, retries_done: int) -> bool:
        """Only a RateLimited outcome with a known reset is retried, at most once."""
        return (
            isinstance(outcome, RateLimited)
            and outcome.reset_at is not None
            and retries_done < self.max_rate_limit_retries
        )

    def retry_delay(self, outcome: RateLimited, now: float) -> float:
        """Seconds to wait before retrying: until the reset, plus the margin.

        Args:
            outcome: The rate-limited outcome
            now: Current wall-clock time in epoch seconds
        """
        reset_at = outcome.reset_at if outcome.reset_at is not None else now
        return max(0.0, reset_at - now) + self.safety_margin

    def to_error(self, outcome: Outcome, endpoint: str = "") -> ForgeError:
        """Build the typed error matching a non-success outcome's tag."""
        if isinstance(outcome, RateLimited):
            return RateLimitExceeded(reset_at=outcome.reset_at)
        if isinstance(outcome, NotFound):
            return NotFoundError(endpoint=endpoint, detail=outcome.message or None)
        if isinstance(outcome, Unauthorized):
            return UnauthorizedError(outcome.message) if outcome.message else UnauthorizedError()
        if isinstance(outcome, Forbidden):
            return ForbiddenError(reason=outcome.reason)
        if isinstance(outcome, Transient):
            return TransientError(upstream_status=outcome.status, detail=outcome.message)
        if isinstance(outcome, NetworkFailure):
            return NetworkFailureError(outcome.message, offline=outcome.offline)
        raise TypeError(f"Success outcome has no error: {outcome!r}")


def _error_message(response: httpx.Response) -> Optional[str]:
    """Extract the ``message`` field of a JSON error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None
