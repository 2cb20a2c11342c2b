"""Core utilities for the backend."""

from ewaste.app.core.config import Settings, settings
from ewaste.app.core.http_client import create_http_client, init_http_client
from ewaste.app.core.logging import get_log_context, get_logger, setup_logging
from ewaste.app.core.tokenizer import estimate_tokens, estimate_total_tokens

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "init_http_client",
    "get_logger",
    "get_log_context",
    "setup_logging",
    "estimate_tokens",
    "estimate_total_tokens",
]
