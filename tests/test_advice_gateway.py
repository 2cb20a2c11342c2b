"""Tests for the throttled advice gateway."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from ewaste.app.exceptions import (
    ConfigurationError,
    InvalidCredentialError,
    ProviderError,
    QuotaOrProviderBusyError,
    RateLimitError,
    ServiceUnavailableError,
)
from ewaste.app.services.advice import AdviceGateway, AdviceLimits, classify_error, is_rate_limit_error

from conftest import ScriptedProvider


def quota_error() -> ProviderError:
    return ProviderError(
        "RESOURCE_EXHAUSTED: Resource has been exhausted (e.g. check quota).",
        status_code=429,
    )


class TestOrdering:
    """Requests are dispatched one at a time, in arrival order."""

    @pytest.mark.asyncio
    async def test_results_follow_arrival_order(self, gateway, provider):
        results = await asyncio.gather(
            gateway.request_advice("first"),
            gateway.request_advice("second"),
            gateway.request_advice("third"),
        )

        assert results == ["ok:1", "ok:2", "ok:3"]
        questions = [prompt for prompt, _ in provider.calls]
        assert "User Question: first" in questions[0]
        assert "User Question: second" in questions[1]
        assert "User Question: third" in questions[2]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_one_request_in_flight_at_a_time(self, gateway, provider):
        provider.gate = asyncio.Event()
        first = asyncio.create_task(gateway.request_advice("first"))
        second = asyncio.create_task(gateway.request_advice("second"))
        for _ in range(5):
            await asyncio.sleep(0)

        assert len(provider.calls) == 1
        assert gateway.queue_length == 2

        provider.gate.set()
        assert await first == "ok:1"
        assert await second == "ok:2"
        assert len(provider.calls) == 2
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_interval_pause_after_each_request(self, gateway, clock):
        await asyncio.gather(gateway.request_advice("a"), gateway.request_advice("b"))

        assert clock.sleeps == [2.0, 2.0]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_detected_items_are_included_in_prompt(self, gateway, provider):
        await gateway.request_advice("How do I recycle these?", ["bottle", "laptop"])

        prompt, model = provider.calls[0]
        assert "Detected Items: bottle, laptop" in prompt
        assert model is None
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_blank_prompt_rejected(self, gateway, provider):
        with pytest.raises(ValueError):
            await gateway.request_advice("   ")
        assert provider.calls == []


class TestAdmission:
    """Request and token budgets over the sliding window."""

    @pytest.mark.asyncio
    async def test_sixth_request_in_a_minute_is_denied(self, gateway, provider):
        results = await asyncio.gather(
            *(gateway.request_advice(f"q{i}") for i in range(6)),
            return_exceptions=True,
        )

        assert results[:5] == ["ok:1", "ok:2", "ok:3", "ok:4", "ok:5"]
        assert isinstance(results[5], RateLimitError)
        # Five dispatches at t=0,2,4,6,8; the sixth is checked at t=10.
        assert results[5].retry_after == 50
        assert len(provider.calls) == 5
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_window_frees_up_after_sixty_seconds(self, gateway, clock):
        for i in range(5):
            await gateway.request_advice(f"q{i}")

        clock.advance(60)

        assert await gateway.request_advice("later") == "ok:6"
        await gateway.aclose()

    def test_token_budget_denies_when_exhausted(self, gateway, clock):
        gateway.window.record(clock(), 5000)
        clock.advance(15)

        result = gateway.check_rate_limits(estimated_tokens=10)

        assert result.allowed is False
        assert result.reason == "tokens"
        assert result.retry_after == 45

    def test_token_budget_allows_below_limit(self, gateway, clock):
        gateway.window.record(clock(), 4999)

        assert gateway.check_rate_limits().allowed is True

    def test_token_budget_counts_incoming_request(self, gateway, clock):
        gateway.window.record(clock(), 4990)

        assert gateway.check_rate_limits(estimated_tokens=10).allowed is True
        result = gateway.check_rate_limits(estimated_tokens=11)
        assert result.allowed is False
        assert result.reason == "tokens"

    def test_oversized_request_allowed_on_empty_window(self, gateway):
        assert gateway.check_rate_limits(estimated_tokens=6000).allowed is True

    def test_backoff_checked_before_budgets(self, gateway, clock):
        gateway.backoff.record_error(clock(), gateway.limits.max_consecutive_errors)
        clock.advance(0.5)

        result = gateway.check_rate_limits()

        assert result.allowed is False
        assert result.reason == "backoff"
        assert result.wait_seconds == pytest.approx(1.5)
        assert result.retry_after == 2

    def test_purge_drops_entries_exactly_one_window_old(self, gateway, clock):
        gateway.window.record(clock(), 100)
        clock.advance(60)

        assert gateway.check_rate_limits().allowed is True
        assert gateway.window.request_count == 0
        assert gateway.window.token_count == 0


class TestProviderRateLimits:
    """429 and quota errors reject the request and pause the queue."""

    @pytest.mark.asyncio
    async def test_quota_error_rejects_and_next_request_succeeds(self, clock):
        provider = ScriptedProvider([quota_error()])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        first, second = await asyncio.gather(
            gateway.request_advice("one"),
            gateway.request_advice("two"),
            return_exceptions=True,
        )

        assert isinstance(first, QuotaOrProviderBusyError)
        assert first.retry_after == 2
        assert first.status_code == 429
        assert second == "ok:2"
        assert gateway.backoff.consecutive_errors == 0
        assert gateway.backoff.last_error_time is None
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_consecutive_errors_double_the_backoff(self, clock):
        provider = ScriptedProvider([quota_error(), quota_error(), quota_error()])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        results = await asyncio.gather(
            *(gateway.request_advice(f"q{i}") for i in range(3)),
            return_exceptions=True,
        )

        assert [r.retry_after for r in results] == [2, 4, 8]
        assert gateway.backoff.consecutive_errors == 3
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_queue_pauses_for_backoff(self, clock):
        provider = ScriptedProvider([quota_error(), quota_error()])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        await asyncio.gather(
            *(gateway.request_advice(f"q{i}") for i in range(3)),
            return_exceptions=True,
        )

        # Pause after each 429 is the remaining backoff (2s then 4s).
        assert clock.sleeps[:2] == [2.0, 4.0]
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_error_counter_saturates(self, clock):
        limits = AdviceLimits(request_interval_seconds=0)
        provider = ScriptedProvider([quota_error() for _ in range(8)])
        gateway = AdviceGateway(provider, limits=limits, clock=clock, sleep=clock.sleep)

        results = await asyncio.gather(
            *(gateway.request_advice(f"q{i}") for i in range(8)),
            return_exceptions=True,
        )

        assert gateway.backoff.consecutive_errors == 6
        assert results[-1].retry_after == 64
        await gateway.aclose()


class TestErrorMapping:
    """Non rate-limit failures map onto the caller-facing errors."""

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self, clock):
        provider = ScriptedProvider(api_key="")
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        with pytest.raises(ConfigurationError):
            await gateway.request_advice("hello")
        assert provider.calls == []
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_invalid_key(self, clock):
        provider = ScriptedProvider([
            ProviderError("INVALID_ARGUMENT: API key not valid. Please pass a valid API key. (API_KEY_INVALID)", 400)
        ])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        with pytest.raises(InvalidCredentialError) as exc_info:
            await gateway.request_advice("hello")
        assert exc_info.value.status_code == 502
        assert gateway.backoff.consecutive_errors == 0
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_status_code_429_attribute_is_rate_limit(self, clock):
        provider = ScriptedProvider()
        busy = RuntimeError("too many requests")
        busy.status_code = 429
        provider.generate_text = AsyncMock(side_effect=[busy, "recovered"])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        with pytest.raises(QuotaOrProviderBusyError):
            await gateway.request_advice("hello")
        clock.advance(2)
        assert await gateway.request_advice("again") == "recovered"
        assert provider.generate_text.await_count == 2
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_unknown_failure_is_service_unavailable(self, clock):
        provider = ScriptedProvider([RuntimeError("connection reset")])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        with pytest.raises(ServiceUnavailableError):
            await gateway.request_advice("hello")
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_failure_does_not_stall_queue(self, clock):
        provider = ScriptedProvider([RuntimeError("boom")])
        gateway = AdviceGateway(provider, clock=clock, sleep=clock.sleep)

        first, second = await asyncio.gather(
            gateway.request_advice("one"),
            gateway.request_advice("two"),
            return_exceptions=True,
        )

        assert isinstance(first, ServiceUnavailableError)
        assert second == "ok:2"
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_provider_timeout_resolves_request(self, clock):
        limits = AdviceLimits(request_timeout_seconds=0.05)
        provider = ScriptedProvider()
        provider.gate = asyncio.Event()
        gateway = AdviceGateway(provider, limits=limits, clock=clock, sleep=clock.sleep)

        with pytest.raises(ServiceUnavailableError):
            await gateway.request_advice("slow")

        provider.gate.set()
        assert await gateway.request_advice("fast") == "ok:2"
        # The timed-out call is not counted against the window.
        assert gateway.get_stats()["requests_in_window"] == 1
        await gateway.aclose()

    def test_rate_limit_detection(self):
        assert is_rate_limit_error(ProviderError("Too many requests", 429))
        assert is_rate_limit_error(ProviderError("Quota exceeded for metric"))
        assert is_rate_limit_error(Exception("got HTTP 429 from upstream"))
        assert not is_rate_limit_error(ProviderError("Internal error", 500))
        assert not is_rate_limit_error(RateLimitError(5))

    def test_classify_api_disabled(self):
        error = classify_error(ProviderError("SERVICE_DISABLED: Generative Language API not enabled", 403))

        assert isinstance(error, ServiceUnavailableError)
        assert "enable the Generative Language API" in error.message

    def test_classify_unauthorized_status(self):
        assert isinstance(classify_error(ProviderError("Unauthorized", 401)), InvalidCredentialError)

    def test_classify_passes_advice_errors_through(self):
        original = ConfigurationError()
        assert classify_error(original) is original


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_cancelled_caller_is_skipped(self, gateway, provider):
        provider.gate = asyncio.Event()
        first = asyncio.create_task(gateway.request_advice("first"))
        second = asyncio.create_task(gateway.request_advice("second"))
        await asyncio.sleep(0)

        second.cancel()
        provider.gate.set()

        assert await first == "ok:1"
        with pytest.raises(asyncio.CancelledError):
            await second
        assert await gateway.request_advice("third") == "ok:2"
        assert len(provider.calls) == 2
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_aclose_rejects_queued_requests(self, gateway, provider):
        provider.gate = asyncio.Event()
        first = asyncio.create_task(gateway.request_advice("first"))
        second = asyncio.create_task(gateway.request_advice("second"))
        for _ in range(3):
            await asyncio.sleep(0)

        await gateway.aclose()

        with pytest.raises(ServiceUnavailableError):
            await first
        with pytest.raises(ServiceUnavailableError):
            await second
        assert gateway.queue_length == 0
        assert gateway.is_processing is False

        with pytest.raises(ServiceUnavailableError):
            await gateway.request_advice("late")

    @pytest.mark.asyncio
    async def test_drain_restarts_after_queue_empties(self, gateway):
        assert await gateway.request_advice("one") == "ok:1"
        for _ in range(3):
            await asyncio.sleep(0)
        assert gateway.is_processing is False

        assert await gateway.request_advice("two") == "ok:2"
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_stats(self, gateway):
        await gateway.request_advice("hello")

        stats = gateway.get_stats()

        assert stats["provider"] == "scripted"
        assert stats["requests_in_window"] == 1
        assert stats["tokens_in_window"] > 0
        assert stats["max_requests_per_minute"] == 5
        assert stats["max_tokens_per_minute"] == 5000
        assert stats["consecutive_errors"] == 0
        assert stats["backoff_remaining_seconds"] == 0
        await gateway.aclose()


class TestAnalysisRequests:
    @pytest.mark.asyncio
    async def test_habits_use_analysis_model(self, gateway, provider):
        await gateway.analyze_waste_habits(["bottle", "bottle", "laptop"])

        prompt, model = provider.calls[0]
        assert model == "gemini-1.5-pro"
        assert "- bottle: 2 items" in prompt
        assert "- laptop: 1 items" in prompt
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_disposal_guide_uses_analysis_model(self, gateway, provider):
        await gateway.get_disposal_guide("battery")

        prompt, model = provider.calls[0]
        assert model == "gemini-1.5-pro"
        assert "disposal guide for: battery" in prompt
        await gateway.aclose()

    @pytest.mark.asyncio
    async def test_disposal_guide_requires_item(self, gateway):
        with pytest.raises(ValueError):
            await gateway.get_disposal_guide("")


def test_classify_forbidden_key():
    error = classify_error(ProviderError("PERMISSION_DENIED: The API key has expired.", 403))

    assert isinstance(error, InvalidCredentialError)
