"""Prompt templates sent to the generative-text provider.

Every template asks for plain text; the client renders responses verbatim.
"""

from collections import Counter
from typing import Iterable, Sequence

PLAIN_TEXT_INSTRUCTION = (
    "Do not use Markdown (e.g., **, *, #), special characters, or formatting. "
    "Return only plain text."
)


def build_advice_prompt(question: str, detected_items: Sequence[str] = ()) -> str:
    """Compose the recycling-assistant prompt from a question and item labels."""
    if detected_items:
        items_line = f"Detected Items: {', '.join(detected_items)}"
    else:
        items_line = "No items detected."

    return (
        "You are a helpful recycling assistant. Analyze the following items "
        "detected in an image and provide practical advice.\n"
        f"{items_line}\n"
        f"User Question: {question.strip()}\n"
        "Provide clear, actionable recycling or disposal advice for the detected "
        f"items in plain text. {PLAIN_TEXT_INSTRUCTION}"
    )


def build_habits_prompt(item_types: Iterable[str]) -> str:
    """Compose the waste-habit analysis prompt from detected item types."""
    counts = Counter(item_types)
    lines = "\n".join(f"- {item_type}: {count} items" for item_type, count in counts.items())

    return (
        "As a Waste Analysis AI, analyze these waste disposal patterns and provide "
        "personalized recommendations:\n\n"
        "Waste Items (last 7 days):\n"
        f"{lines or '- none'}\n\n"
        "Provide analysis in this format:\n"
        "1. Key Patterns\n"
        "2. Environmental Impact\n"
        "3. Specific Recommendations\n"
        "4. Sustainable Alternatives\n"
        "5. Action Items\n\n"
        "Focus on practical, achievable suggestions for reducing waste and improving "
        f"recycling habits. {PLAIN_TEXT_INSTRUCTION}"
    )


def build_disposal_guide_prompt(item_type: str) -> str:
    """Compose the sectioned disposal-guide prompt for one item type."""
    return (
        f"Provide a professional disposal guide for: {item_type.strip()}\n\n"
        "Material Composition:\n[List main materials]\n\n"
        "Disposal Steps:\n[Numbered steps]\n\n"
        "Safety Guidelines:\n[Key safety points]\n\n"
        "Recycling Options:\n[Available recycling methods]\n\n"
        "Environmental Considerations:\n[Impact and alternatives]\n\n"
        f"Format the response in clear sections. {PLAIN_TEXT_INSTRUCTION}"
    )
