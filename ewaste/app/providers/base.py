from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx


class BaseProvider(ABC):
    """Base class for generative-text providers.

    Subclasses can accept an external httpx.AsyncClient for connection pooling,
    or create their own per call if not provided.
    """

    name: str = "base"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0
    ):
        """Initialize the provider.

        Args:
            base_url: The API base URL
            api_key: The API key for authentication
            http_client: Optional shared HTTP client for connection pooling
            timeout: Request timeout in seconds
        """
        self._http_client = http_client
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    @property
    def is_configured(self) -> bool:
        """Whether a credential is available for this provider."""
        return bool(self.api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self.timeout)

    @asynccontextmanager
    async def _client_context(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Context manager for HTTP client lifecycle.

        If using shared client, just yield it.
        If using per-request client, manage its lifecycle.
        """
        client = self._get_client()
        is_shared = self._http_client is not None
        try:
            yield client
        finally:
            if not is_shared:
                await client.aclose()

    def _get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint}"

    @abstractmethod
    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a single-turn, non-streaming generation request.

        Args:
            prompt: The fully composed prompt text
            model: Optional model override

        Returns:
            The generated plain text

        Raises:
            ProviderError: If the provider call fails or the response is malformed
        """
        pass

    @abstractmethod
    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check if the provider is reachable with the configured credential."""
        pass
