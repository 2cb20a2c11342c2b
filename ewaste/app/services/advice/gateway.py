"""Advice gateway: a throttled, strictly ordered queue in front of the provider.

All calls to the generative-text provider go through one AdviceGateway.
Callers enqueue a request and await its own future; a single drain task
dispatches queued requests one at a time, in arrival order, enforcing:

- a per-minute request budget and an estimated token budget (sliding window)
- exponential backoff after rate-limit or quota errors from the provider
- a fixed pause after every processed request
- a deadline on every provider call, so the queue can never stall

Failures are raised to the caller as AdviceError subclasses.
"""

import asyncio
import functools
import math
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Iterable, Optional, Sequence

from ewaste.app.core.logging import get_log_context, get_logger
from ewaste.app.core.tokenizer import estimate_tokens
from ewaste.app.exceptions import (
    AdviceError,
    ConfigurationError,
    InvalidCredentialError,
    ProviderError,
    QuotaOrProviderBusyError,
    RateLimitError,
    ServiceUnavailableError,
)
from ewaste.app.providers.base import BaseProvider
from ewaste.app.services.advice.models import (
    AdmissionResult,
    AdviceLimits,
    BackoffState,
    PendingRequest,
    RateWindow,
)
from ewaste.app.services.advice.prompts import (
    build_advice_prompt,
    build_disposal_guide_prompt,
    build_habits_prompt,
)

logger = get_logger(__name__)

RATE_LIMIT_MARKERS = ("429", "quota")
INVALID_KEY_MARKERS = ("API_KEY_INVALID", "API key not valid")
API_DISABLED_MARKERS = ("API not enabled", "SERVICE_DISABLED")


def is_rate_limit_error(exc: BaseException) -> bool:
    """Check whether a provider failure means rate limited or out of quota."""
    if isinstance(exc, AdviceError):
        return False
    if getattr(exc, "status_code", None) == 429:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def classify_error(exc: BaseException) -> AdviceError:
    """Map a non rate-limit failure onto the caller-facing error taxonomy."""
    if isinstance(exc, AdviceError):
        return exc

    message = str(exc)
    if any(marker in message for marker in API_DISABLED_MARKERS):
        return ServiceUnavailableError(
            "Please enable the Generative Language API in your Google Cloud Console "
            "and ensure billing is set up."
        )
    if any(marker in message for marker in INVALID_KEY_MARKERS):
        return InvalidCredentialError()
    if isinstance(exc, ProviderError):
        if exc.status_code == 401:
            return InvalidCredentialError()
        if exc.status_code == 403 and "api key" in message.lower():
            return InvalidCredentialError()
    return ServiceUnavailableError()


class AdviceGateway:
    """Serializes and throttles every call to the advice provider.

    One instance is constructed per application (see ``main.create_app``)
    and injected into routes; separate instances never share state.

    Args:
        provider: The generative-text provider to dispatch to
        limits: Throttling configuration, defaults from settings
        analysis_model: Model used for habit analysis and disposal guides
        clock: Monotonic time source in seconds
        sleep: Coroutine used for the inter-request pause and backoff waits
    """

    def __init__(
        self,
        provider: BaseProvider,
        limits: Optional[AdviceLimits] = None,
        analysis_model: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.provider = provider
        self.limits = limits or AdviceLimits.from_settings()
        self.analysis_model = analysis_model
        self._clock = clock
        self._sleep = sleep

        self.window = RateWindow(window_seconds=self.limits.window_seconds)
        self.backoff = BackoffState()
        self._queue: Deque[PendingRequest] = deque()
        self._is_processing = False
        self._drain_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_processing(self) -> bool:
        return self._is_processing

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def request_advice(self, prompt: str, context_labels: Sequence[str] = ()) -> str:
        """Ask for disposal advice about the detected items.

        Args:
            prompt: The user's question, must not be blank
            context_labels: Labels of detected items, may be empty

        Returns:
            Plain-text advice

        Raises:
            ValueError: If the prompt is blank
            AdviceError: One of its subclasses when the request fails
        """
        if not prompt or not prompt.strip():
            raise ValueError("prompt must not be empty")
        full_prompt = build_advice_prompt(prompt, list(context_labels))
        return await self.submit(full_prompt, kind="advice")

    async def analyze_waste_habits(self, item_types: Iterable[str]) -> str:
        """Analyze disposal patterns from a list of detected item types."""
        full_prompt = build_habits_prompt(item_types)
        return await self.submit(full_prompt, model=self.analysis_model, kind="habits")

    async def get_disposal_guide(self, item_type: str) -> str:
        """Produce a sectioned disposal guide for one item type."""
        if not item_type or not item_type.strip():
            raise ValueError("item_type must not be empty")
        full_prompt = build_disposal_guide_prompt(item_type)
        return await self.submit(full_prompt, model=self.analysis_model, kind="disposal_guide")

    async def submit(self, full_prompt: str, model: Optional[str] = None, kind: str = "advice") -> str:
        """Enqueue a composed prompt and wait for this request's result."""
        if self._closed:
            raise ServiceUnavailableError("Advice service is shutting down. Please try again later.")

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        pending = PendingRequest(
            execute=functools.partial(self._execute, full_prompt, model),
            future=future,
            kind=kind,
            enqueued_at=self._clock(),
        )
        self._queue.append(pending)
        logger.debug(
            f"Queued {kind} request (queue length {len(self._queue)})",
            extra=get_log_context(provider=self.provider.name),
        )
        self._ensure_draining()
        return await future

    def check_rate_limits(self, estimated_tokens: int = 0) -> AdmissionResult:
        """Decide whether a request may be dispatched now.

        Purges the window first, then checks backoff, the request budget and
        the token budget in that order. The token budget counts
        ``estimated_tokens`` for the request being admitted.
        """
        now = self._clock()
        self.window.purge(now)

        remaining_backoff = self.backoff_remaining(now)
        if remaining_backoff > 0:
            return AdmissionResult(False, remaining_backoff, "backoff")

        window = self.limits.window_seconds
        if self.window.request_count >= self.limits.max_requests_per_minute:
            return AdmissionResult(False, window - self.window.oldest_request_age(now), "requests")

        # An oversized prompt is still let through once the window is empty.
        token_count = self.window.token_count
        max_tokens = self.limits.max_tokens_per_minute
        if token_count >= max_tokens or (
            self.window.tokens and token_count + estimated_tokens > max_tokens
        ):
            return AdmissionResult(False, window - self.window.oldest_token_age(now), "tokens")

        return AdmissionResult(True)

    def backoff_remaining(self, now: Optional[float] = None) -> float:
        """Seconds left before backoff stops denying admission."""
        if self.backoff.consecutive_errors <= 0 or self.backoff.last_error_time is None:
            return 0.0
        now = self._clock() if now is None else now
        duration = self.limits.backoff_seconds(self.backoff.consecutive_errors)
        return max(0.0, duration - (now - self.backoff.last_error_time))

    def get_stats(self) -> Dict[str, Any]:
        """Get current gateway statistics."""
        now = self._clock()
        self.window.purge(now)
        return {
            "provider": self.provider.name,
            "queue_length": len(self._queue),
            "is_processing": self._is_processing,
            "requests_in_window": self.window.request_count,
            "tokens_in_window": self.window.token_count,
            "max_requests_per_minute": self.limits.max_requests_per_minute,
            "max_tokens_per_minute": self.limits.max_tokens_per_minute,
            "consecutive_errors": self.backoff.consecutive_errors,
            "backoff_remaining_seconds": round(self.backoff_remaining(now), 3),
        }

    async def aclose(self) -> None:
        """Stop draining and reject everything still queued."""
        self._closed = True

        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._drain_task = None
        self._is_processing = False

        while self._queue:
            pending = self._queue.popleft()
            self._reject(
                pending,
                ServiceUnavailableError("Advice service is shutting down. Please try again later."),
            )

    # ------------------------------------------------------------------
    # Queue processing
    # ------------------------------------------------------------------

    def _ensure_draining(self) -> None:
        if self._is_processing or not self._queue:
            return
        self._is_processing = True
        self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                pending = self._queue[0]

                # Caller stopped waiting; skip without dispatching.
                if pending.future.done():
                    self._queue.popleft()
                    continue

                try:
                    result = await pending.execute()
                except Exception as exc:
                    self._queue.popleft()
                    if is_rate_limit_error(exc):
                        retry_after = self._handle_rate_limit_error(exc)
                        self._reject(pending, QuotaOrProviderBusyError(retry_after))
                        # Later requests stay queued until the backoff clears.
                        await self._sleep(
                            max(self.backoff_remaining(), self.limits.request_interval_seconds)
                        )
                        continue
                    error = classify_error(exc)
                    if not isinstance(exc, AdviceError):
                        logger.error(
                            f"Advice request failed: {type(exc).__name__}: {exc}",
                            extra=get_log_context(provider=self.provider.name),
                        )
                    self._reject(pending, error)
                else:
                    self._queue.popleft()
                    if not pending.future.done():
                        pending.future.set_result(result)

                await self._sleep(self.limits.request_interval_seconds)
        finally:
            self._is_processing = False

    async def _execute(self, full_prompt: str, model: Optional[str]) -> str:
        """Run one queued request: admission check, provider call, accounting."""
        if not self.provider.is_configured:
            raise ConfigurationError()

        estimated = estimate_tokens(full_prompt)
        admission = self.check_rate_limits(estimated)
        if not admission.allowed:
            logger.info(
                f"Advice request denied ({admission.reason}), retry after {admission.retry_after}s",
                extra=get_log_context(provider=self.provider.name),
            )
            raise RateLimitError(admission.retry_after)

        try:
            text = await asyncio.wait_for(
                self.provider.generate_text(full_prompt, model=model),
                timeout=self.limits.request_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Advice provider did not respond within {self.limits.request_timeout_seconds}s",
                extra=get_log_context(provider=self.provider.name),
            )
            raise ServiceUnavailableError(
                "The AI service did not respond in time. Please try again later."
            )

        self.window.record(self._clock(), estimated)
        self.backoff.reset()
        logger.info(
            f"Advice request completed (estimated_tokens={estimated})",
            extra=get_log_context(provider=self.provider.name),
        )
        return text

    def _handle_rate_limit_error(self, exc: BaseException) -> int:
        self.backoff.record_error(self._clock(), self.limits.max_consecutive_errors)
        wait = self.limits.backoff_seconds(self.backoff.consecutive_errors)
        logger.warning(
            f"Provider rate limited ({exc}); consecutive_errors={self.backoff.consecutive_errors}, "
            f"backing off {wait:.0f}s",
            extra=get_log_context(provider=self.provider.name),
        )
        return math.ceil(wait)

    @staticmethod
    def _reject(pending: PendingRequest, error: AdviceError) -> None:
        if not pending.future.done():
            pending.future.set_exception(error)
