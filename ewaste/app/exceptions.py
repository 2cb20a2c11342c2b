"""Custom exceptions for the e-waste backend."""

from typing import Optional


class AdviceError(Exception):
    """Base class for advice gateway failures with an HTTP status code.

    Every failure surfaced by the advice gateway is one of the subclasses
    below, so routes can render a user-facing message without catching
    arbitrary exceptions.
    """
    status_code: int = 503
    error_code: str = "advice_error"

    def __init__(self, message: str = "Advice service error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API response body."""
        return {"error": self.error_code, "message": self.message}


class ConfigurationError(AdviceError):
    """Raised when the provider credential is missing.

    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error_code = "configuration_error"

    def __init__(self, message: str = "Gemini API key is not configured"):
        super().__init__(message)


class RateLimitError(AdviceError):
    """Raised when the local request or token budget denies admission.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = retry_after
        super().__init__(
            message
            or f"Rate limit exceeded. Please wait {retry_after} seconds before trying again."
        )

    def to_response(self) -> dict:
        body = super().to_response()
        body["retry_after"] = self.retry_after
        return body


class QuotaOrProviderBusyError(RateLimitError):
    """Raised when the provider reports a rate limit or exhausted quota.

    The wait time is derived from the backoff state after the error was
    recorded. Maps to HTTP 429 Too Many Requests.
    """
    error_code = "provider_busy"

    def __init__(self, retry_after: int):
        super().__init__(
            retry_after,
            f"The service is currently busy. Please try again in {retry_after} seconds.",
        )


class InvalidCredentialError(AdviceError):
    """Raised when the provider rejects the API key.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "invalid_credential"

    def __init__(
        self,
        message: str = "Invalid API key. Please check your configuration in Google Cloud Console.",
    ):
        super().__init__(message)


class ServiceUnavailableError(AdviceError):
    """Catch-all for network failures, timeouts and unknown provider errors.

    Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        message: str = "Unable to connect to AI service. Please try again later.",
    ):
        super().__init__(message)


class ProviderError(Exception):
    """Raised by providers when the upstream call fails.

    Carries the provider's error message and HTTP status so the gateway can
    classify it. Never surfaced to API callers directly.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message
