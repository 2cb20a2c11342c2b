"""Mock provider for development and testing purposes.

This provider simulates advice responses without making external API calls.
It's useful for local development and load testing when no Gemini key is
available.

Enable by setting environment variable:
    MOCK_PROVIDER=true

Simulated failures are controlled by MOCK_FAILURE_RATE and MOCK_FAILURE_STATUS.
"""

import asyncio
import random
from typing import Any, Optional

from ewaste.app.exceptions import ProviderError
from ewaste.app.providers.base import BaseProvider


class MockProvider(BaseProvider):
    """Mock advice provider that returns simulated plain-text responses.

    Features:
    - Simulates response delays (configurable)
    - Returns keyword-based disposal advice so responses relate to the prompt
    - Configurable failure rate and failure status for exercising backoff
    """

    name = "mock"

    def __init__(
        self,
        base_url: str = "http://mock.provider",
        api_key: str = "mock-key",
        http_client: Optional[Any] = None,
        timeout: float = 60.0,
        min_delay: float = 0.1,
        max_delay: float = 0.5,
        failure_rate: float = 0.0,
        failure_status: int = 500,
    ):
        """Initialize the mock provider.

        Args:
            base_url: Not used, provided for API compatibility
            api_key: Not used, provided for API compatibility
            http_client: Not used, provided for API compatibility
            timeout: Not used, provided for API compatibility
            min_delay: Minimum response delay in seconds
            max_delay: Maximum response delay in seconds
            failure_rate: Probability of raising a provider error (0-1)
            failure_status: HTTP status attached to simulated failures
        """
        super().__init__(base_url, api_key, http_client, timeout)
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.failure_rate = failure_rate
        self.failure_status = failure_status

    def _generate_content(self, prompt: str) -> str:
        prompt_lower = prompt.lower()

        if "battery" in prompt_lower:
            return (
                "Batteries contain harmful chemicals. Tape the terminals and take "
                "them to a battery drop-off point or hazardous waste facility."
            )
        if any(kw in prompt_lower for kw in ("laptop", "phone", "keyboard", "tv", "monitor")):
            return (
                "Back up and erase your data, then bring the device to a certified "
                "e-waste collection center or a retailer take-back program."
            )
        if any(kw in prompt_lower for kw in ("bottle", "cup", "can", "paper", "cardboard")):
            return (
                "Rinse containers, remove caps and keep paper dry before placing "
                "them in the recycling bin."
            )

        defaults = [
            "Check your local recycling guidelines for this item.",
            "Consider donating the item if it still works.",
            "Separate materials where possible before disposal.",
        ]
        return random.choice(defaults)

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        delay = random.uniform(self.min_delay, self.max_delay)
        await asyncio.sleep(delay)

        if random.random() < self.failure_rate:
            raise ProviderError("Simulated provider failure", status_code=self.failure_status)

        return self._generate_content(prompt)

    async def health_check(self, timeout: float = 2.0) -> bool:
        return True
