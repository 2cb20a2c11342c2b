"""Advice providers package.

This package provides:
- Base provider interface (BaseProvider)
- Provider implementations (GeminiProvider, MockProvider)
- Provider factory (create_provider)
"""

from ewaste.app.providers.base import BaseProvider
from ewaste.app.providers.factory import create_provider
from ewaste.app.providers.gemini import GeminiProvider
from ewaste.app.providers.mock import MockProvider

__all__ = [
    "BaseProvider",
    "GeminiProvider",
    "MockProvider",
    "create_provider",
]
