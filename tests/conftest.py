"""Shared fixtures: a controllable clock, a scripted provider and sqlite URLs."""

import asyncio
from typing import Any, List, Optional

import pytest

from ewaste.app.providers.base import BaseProvider
from ewaste.app.services.advice import AdviceGateway, AdviceLimits


class FakeClock:
    """Monotonic clock that only moves when told to (or when slept on)."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds)
        await asyncio.sleep(0)


class ScriptedProvider(BaseProvider):
    """Provider whose outcomes are queued up front.

    Each call pops the next outcome: an exception is raised, a string is
    returned. When the script is empty it echoes ``ok:<n>``.
    """

    name = "scripted"

    def __init__(self, outcomes: Optional[List[Any]] = None, api_key: str = "test-key"):
        super().__init__("http://scripted.test", api_key)
        self.outcomes = list(outcomes or [])
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        self.calls.append((prompt, model))
        if self.gate is not None:
            await self.gate.wait()
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return f"ok:{len(self.calls)}"

    async def health_check(self, timeout: float = 2.0) -> bool:
        return True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def limits() -> AdviceLimits:
    return AdviceLimits()


@pytest.fixture
def gateway(provider, limits, clock) -> AdviceGateway:
    return AdviceGateway(
        provider,
        limits=limits,
        analysis_model="gemini-1.5-pro",
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    # SQLAlchemy expects 4 slashes for absolute paths.
    path = tmp_path / "ewaste_test.db"
    return f"sqlite+aiosqlite:////{str(path).lstrip('/')}"
