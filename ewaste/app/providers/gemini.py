from typing import Any, Dict, Optional

import httpx

from ewaste.app.core.logging import get_logger
from ewaste.app.exceptions import ProviderError
from ewaste.app.providers.base import BaseProvider

logger = get_logger(__name__)


class GeminiProvider(BaseProvider):
    """Google Gemini provider speaking the ``generateContent`` REST contract.

    Request:  ``{"contents": [{"role": "user", "parts": [{"text": ...}]}],
    "generationConfig": {...}}``. Response text is the concatenation of the
    first candidate's text parts. Streaming is not used.
    """

    name = "gemini"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str = "gemini-1.5-flash",
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
        temperature: float = 0.7,
        top_k: int = 40,
        top_p: float = 0.8,
        max_output_tokens: int = 1000,
    ):
        super().__init__(base_url, api_key, http_client, timeout)
        self.model = model
        self.generation_config = {
            "temperature": temperature,
            "topK": top_k,
            "topP": top_p,
            "maxOutputTokens": max_output_tokens,
        }

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        """Build the generateContent request body for a single user turn."""
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": dict(self.generation_config),
        }

    def _model_path(self, model: Optional[str]) -> str:
        name = model or self.model
        if not name.startswith("models/"):
            name = f"models/{name}"
        return name

    async def generate_text(self, prompt: str, model: Optional[str] = None) -> str:
        """Send a generateContent request and return the plain text.

        Raises:
            ProviderError: On transport failures, non-2xx responses and
                responses without candidate text
        """
        url = self._get_endpoint_url(f"/{self._model_path(model)}:generateContent")

        try:
            async with self._client_context() as client:
                resp = await client.post(
                    url,
                    params={"key": self.api_key},
                    headers={"Content-Type": "application/json"},
                    json=self.build_payload(prompt),
                )
        except httpx.RequestError as e:
            raise ProviderError(f"{type(e).__name__}: {e}") from e

        if resp.status_code >= 400:
            raise ProviderError(_error_message(resp), status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError("Malformed response from Gemini") from e

        return extract_text(data)

    async def health_check(self, timeout: float = 2.0) -> bool:
        """Check the key by listing models with a short timeout."""
        if not self.is_configured:
            return False
        try:
            async with self._client_context() as client:
                resp = await client.get(
                    self._get_endpoint_url("/models"),
                    params={"key": self.api_key},
                    timeout=timeout,
                )
                return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.debug(f"Gemini health check failed: {e}")
            return False


def extract_text(data: Dict[str, Any]) -> str:
    """Pull the generated text out of a generateContent response.

    Raises:
        ProviderError: If the response carries no candidate text
    """
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback", {})
        reason = feedback.get("blockReason", "no candidates")
        raise ProviderError(f"Gemini returned no candidates ({reason})")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
    if not text:
        raise ProviderError("Gemini returned an empty response")
    return text


def _error_message(resp: httpx.Response) -> str:
    """Render a provider error body as ``STATUS: message (REASON, ...)``."""
    try:
        error = resp.json().get("error", {})
    except ValueError:
        return resp.text[:500] or f"HTTP {resp.status_code}"

    if not isinstance(error, dict):
        return str(error)

    message = error.get("message", f"HTTP {resp.status_code}")
    status = error.get("status")
    reasons = [
        detail["reason"]
        for detail in error.get("details", [])
        if isinstance(detail, dict) and detail.get("reason")
    ]
    rendered = f"{status}: {message}" if status else message
    if reasons:
        rendered += f" ({', '.join(reasons)})"
    return rendered
