"""Provider factory for creating the advice provider from settings."""

from typing import Optional

import httpx

from ewaste.app.core.config import Settings, settings
from ewaste.app.core.logging import get_logger
from ewaste.app.providers.base import BaseProvider
from ewaste.app.providers.gemini import GeminiProvider
from ewaste.app.providers.mock import MockProvider

logger = get_logger(__name__)


def create_provider(
    http_client: Optional[httpx.AsyncClient] = None,
    config: Settings = settings,
) -> BaseProvider:
    """Create the configured advice provider.

    Returns a MockProvider when ``mock_provider`` is enabled, otherwise a
    GeminiProvider. A missing Gemini key still yields a provider; the gateway
    raises ConfigurationError on first use.
    """
    if config.mock_provider:
        logger.info("Using mock advice provider")
        return MockProvider(
            http_client=http_client,
            failure_rate=config.mock_failure_rate,
            failure_status=config.mock_failure_status,
        )

    if not config.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; advice requests will fail until configured")

    return GeminiProvider(
        base_url=config.gemini_base_url,
        api_key=config.gemini_api_key,
        model=config.gemini_model,
        http_client=http_client,
        timeout=config.httpx_read_timeout,
        temperature=config.gemini_temperature,
        top_k=config.gemini_top_k,
        top_p=config.gemini_top_p,
        max_output_tokens=config.gemini_max_output_tokens,
    )
