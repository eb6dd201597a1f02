"""Rolling-window admission control for forge requests.

One RequestGate instance is shared by every call the forge client makes,
so the total number of requests started within any window never exceeds
the configured budget.
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional

from narrator.app.core.config import Settings
from narrator.app.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


class RequestGate:
    """Shared admission controller implementing a rolling-window request budget.

    ``admit()`` never fails; it only delays. Waiters are not queued in arrival
    order: every caller woken after a wait re-competes for the freed slot.
    Prune, check and record happen under one lock, so two callers can never
    both observe the same free slot. An admission counts against the budget
    for exactly ``window_seconds`` and stops counting at that instant.

    Attributes:
        max_requests: Maximum admissions within any window
        window_seconds: Length of the rolling window in seconds
        safety_margin: Extra seconds slept past the computed expiry

    Example:
        >>> gate = RequestGate(max_requests=60, window_seconds=3600)
        >>> await gate.admit()
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 3600.0,
        safety_margin: float = 1.0,
        clock: Optional[Clock] = None,
        sleep: Optional[Sleeper] = None,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if safety_margin < 0:
            raise ValueError("safety_margin cannot be negative")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.safety_margin = safety_margin
        self._clock = clock or time.monotonic
        self._sleep = sleep or asyncio.sleep
        # Admission timestamps, oldest first
        self._records: Deque[float] = deque()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, config: Settings) -> "RequestGate":
        return cls(
            max_requests=config.effective_gate_max_requests,
            window_seconds=config.gate_window_seconds,
            safety_margin=config.gate_safety_margin_seconds,
        )

    def _prune(self, now: float) -> None:
        """Drop records outside the half-open window ``(now - window, now]``.

        A record exactly ``window_seconds`` old no longer counts, so the wait
        computed in ``admit()`` always frees a slot even with a zero margin.
        """
        while self._records and now - self._records[0] >= self.window_seconds:
            self._records.popleft()

    async def admit(self) -> None:
        """Suspend until a slot is free, then record one admission and return.

        Cancelling the caller while it waits abandons the wait without
        recording anything.
        """
        while True:
            async with self._lock:
                now = self._clock()
                self._prune(now)
                if len(self._records) < self.max_requests:
                    self._records.append(now)
                    return
                wait = self.window_seconds - (now - self._records[0])

            delay = max(wait, 0.0) + self.safety_margin
            logger.warning(
                f"Request budget of {self.max_requests} per {self.window_seconds:g}s "
                f"exhausted. Waiting {delay:.2f}s..."
            )
            await self._sleep(delay)

    def in_window(self) -> int:
        """Number of admissions currently counted against the budget."""
        self._prune(self._clock())
        return len(self._records)

    @property
    def remaining(self) -> int:
        return max(0, self.max_requests - self.in_window())

    def time_until_available(self) -> float:
        """Seconds until ``admit()`` would return immediately (0 if it would now)."""
        now = self._clock()
        self._prune(now)
        if len(self._records) < self.max_requests:
            return 0.0
        return max(0.0, self.window_seconds - (now - self._records[0]))
