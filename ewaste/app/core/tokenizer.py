"""Token estimation for advice prompts.

Gemini does not expose a local tokenizer, so prompt size is approximated
from the character count. The estimate only feeds the per-minute token
budget of the advice gateway.
"""

import math
from typing import Iterable

# Approximate tokens as characters / 4
CHARS_PER_TOKEN_ESTIMATE = 4


def estimate_tokens(text: str) -> int:
    """Estimate the token count of ``text`` as ``ceil(len(text) / 4)``."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN_ESTIMATE)


def estimate_total_tokens(texts: Iterable[str]) -> int:
    """Estimate tokens for several prompt parts sent together."""
    return sum(estimate_tokens(text) for text in texts)
