import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    # Prefer JSON, but tolerate comma or whitespace separated values.
    if raw.startswith(("[", '"')):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()

    origins: list[str] = []
    for part in re.split(r"[,\s]+", raw):
        if not part:
            continue
        if part == "*":
            return ["*"]
        if part not in origins:
            origins.append(part)
    return origins


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    A missing Gemini key is not an error at startup; the advice gateway
    reports it on first use.
    """

    # Debug mode - enables detailed error responses
    debug: bool = False

    # Database (SQLite by default, PostgreSQL via asyncpg in production)
    database_url: str = "sqlite+aiosqlite:///./ewaste.db"
    db_pool_size: int = 10
    db_max_overflow: int = 5
    db_pool_recycle: int = 300
    db_pool_pre_ping: bool = True

    # Gemini settings
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_analysis_model: str = "gemini-1.5-pro"
    gemini_temperature: float = 0.7
    gemini_top_k: int = 40
    gemini_top_p: float = 0.8
    gemini_max_output_tokens: int = 1000

    # Use the in-process mock provider instead of Gemini
    mock_provider: bool = False
    # Simulated mock failures, e.g. 429 to exercise gateway backoff
    mock_failure_rate: float = 0.0
    mock_failure_status: int = 500

    # Advice gateway throttling
    advice_max_requests_per_minute: int = 5
    advice_max_tokens_per_minute: int = 5000
    advice_window_seconds: float = 60.0
    advice_base_backoff_seconds: float = 1.0
    advice_max_backoff_seconds: float = 120.0
    advice_max_consecutive_errors: int = 6
    advice_request_interval_seconds: float = 2.0
    advice_request_timeout_seconds: float = 30.0

    # HTTP Client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 20
    httpx_max_keepalive_connections: int = 10

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Detection filtering
    detection_score_threshold: float = 0.5

    # CORS settings
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "advice_max_requests_per_minute",
        "advice_max_tokens_per_minute",
        "advice_max_consecutive_errors",
    )
    @classmethod
    def validate_limits_positive(cls, v: int) -> int:
        """Validate advice limits are positive."""
        if v < 1:
            raise ValueError("Advice limit values must be at least 1")
        return v

    @field_validator(
        "advice_window_seconds",
        "advice_base_backoff_seconds",
        "advice_max_backoff_seconds",
        "advice_request_timeout_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
    )
    @classmethod
    def validate_seconds_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("Duration values must be positive")
        return v

    @field_validator("advice_request_interval_seconds")
    @classmethod
    def validate_interval(cls, v: float) -> float:
        if v < 0:
            raise ValueError("advice_request_interval_seconds cannot be negative")
        return v

    @field_validator("detection_score_threshold", "mock_failure_rate")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("Probability and threshold values must be between 0 and 1")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
