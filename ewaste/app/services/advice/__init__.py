"""Throttled advice gateway for the generative-text provider.

Re-exports the gateway, its state models and the prompt builders.
"""

from ewaste.app.services.advice.gateway import (
    AdviceGateway,
    classify_error,
    is_rate_limit_error,
)
from ewaste.app.services.advice.models import (
    AdmissionResult,
    AdviceLimits,
    BackoffState,
    PendingRequest,
    RateWindow,
)
from ewaste.app.services.advice.prompts import (
    build_advice_prompt,
    build_disposal_guide_prompt,
    build_habits_prompt,
)

__all__ = [
    # Gateway
    "AdviceGateway",
    "classify_error",
    "is_rate_limit_error",
    # Models
    "AdmissionResult",
    "AdviceLimits",
    "BackoffState",
    "PendingRequest",
    "RateWindow",
    # Prompts
    "build_advice_prompt",
    "build_disposal_guide_prompt",
    "build_habits_prompt",
]
