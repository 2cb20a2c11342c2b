"""Advice gateway state models.

This module contains dataclasses for throttling limits, the sliding rate
window, backoff state and queued requests.
"""

import asyncio
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Optional, Tuple

from ewaste.app.core.config import Settings, settings


@dataclass(frozen=True)
class AdviceLimits:
    """Throttling configuration for the advice gateway.

    Attributes:
        max_requests_per_minute: Dispatches allowed per window
        max_tokens_per_minute: Estimated prompt tokens allowed per window
        window_seconds: Length of the sliding window
        base_backoff_seconds: Backoff unit, doubled per consecutive error
        max_backoff_seconds: Upper bound on a single backoff
        max_consecutive_errors: Saturation point of the error counter
        request_interval_seconds: Pause after every processed request
        request_timeout_seconds: Deadline for a single provider call
    """

    max_requests_per_minute: int = 5
    max_tokens_per_minute: int = 5000
    window_seconds: float = 60.0
    base_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 120.0
    max_consecutive_errors: int = 6
    request_interval_seconds: float = 2.0
    request_timeout_seconds: float = 30.0

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "AdviceLimits":
        return cls(
            max_requests_per_minute=config.advice_max_requests_per_minute,
            max_tokens_per_minute=config.advice_max_tokens_per_minute,
            window_seconds=config.advice_window_seconds,
            base_backoff_seconds=config.advice_base_backoff_seconds,
            max_backoff_seconds=config.advice_max_backoff_seconds,
            max_consecutive_errors=config.advice_max_consecutive_errors,
            request_interval_seconds=config.advice_request_interval_seconds,
            request_timeout_seconds=config.advice_request_timeout_seconds,
        )

    def backoff_seconds(self, consecutive_errors: int) -> float:
        """Backoff for a given error count.

        Uses exponential backoff: ``min(base * 2 ** n, max)`` where ``n`` is
        clamped to ``max_consecutive_errors``.

        >>> AdviceLimits().backoff_seconds(3)
        8.0
        """
        if consecutive_errors <= 0:
            return 0.0
        n = min(consecutive_errors, self.max_consecutive_errors)
        return min(self.base_backoff_seconds * (2 ** n), self.max_backoff_seconds)


@dataclass
class RateWindow:
    """Sliding window of dispatch timestamps and estimated token usage."""

    window_seconds: float = 60.0
    requests: Deque[float] = field(default_factory=deque)
    tokens: Deque[Tuple[float, int]] = field(default_factory=deque)

    def purge(self, now: float) -> None:
        """Drop entries that are ``window_seconds`` old or older."""
        while self.requests and now - self.requests[0] >= self.window_seconds:
            self.requests.popleft()
        while self.tokens and now - self.tokens[0][0] >= self.window_seconds:
            self.tokens.popleft()

    def record(self, now: float, token_count: int) -> None:
        self.requests.append(now)
        self.tokens.append((now, token_count))

    @property
    def request_count(self) -> int:
        return len(self.requests)

    @property
    def token_count(self) -> int:
        return sum(count for _, count in self.tokens)

    def oldest_request_age(self, now: float) -> float:
        return now - self.requests[0] if self.requests else 0.0

    def oldest_token_age(self, now: float) -> float:
        return now - self.tokens[0][0] if self.tokens else 0.0


@dataclass
class BackoffState:
    """Consecutive provider rate-limit errors and when the last one happened."""

    consecutive_errors: int = 0
    last_error_time: Optional[float] = None

    def record_error(self, now: float, cap: int) -> None:
        self.last_error_time = now
        self.consecutive_errors = min(self.consecutive_errors + 1, cap)

    def reset(self) -> None:
        self.consecutive_errors = 0
        self.last_error_time = None


@dataclass
class AdmissionResult:
    """Outcome of an admission check."""

    allowed: bool
    wait_seconds: float = 0.0
    reason: str = "ok"

    @property
    def retry_after(self) -> int:
        """Wait time rounded up to whole seconds."""
        return max(1, math.ceil(self.wait_seconds)) if not self.allowed else 0


@dataclass
class PendingRequest:
    """A queued unit of work and the future its caller awaits."""

    execute: Callable[[], Awaitable[str]]
    future: "asyncio.Future[str]"
    kind: str = "advice"
    enqueued_at: float = 0.0
