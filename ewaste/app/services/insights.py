"""Waste insights computed from detected items and saved history."""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ewaste.app.services.categories import WasteCategory, WasteClassifier
from ewaste.app.services.detection import WasteItem

COUNTED_CATEGORIES = (
    WasteCategory.RECYCLABLE,
    WasteCategory.ELECTRONIC,
    WasteCategory.HAZARDOUS,
    WasteCategory.ORGANIC,
)

RECENT_ITEMS_FOR_TIPS = 5

RECOMMENDATION_WINDOW_SECONDS = 7 * 24 * 60 * 60


@dataclass
class CategorySummary:
    """Per-category totals for the current session."""
    category: WasteCategory
    count: int = 0
    items: List[str] = field(default_factory=list)
    last_detected: float = 0.0
    tip: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "count": self.count,
            "items": self.items,
            "last_detected": self.last_detected,
            "tip": self.tip,
        }


@dataclass
class Recommendation:
    title: str
    message: str
    category: WasteCategory


def category_breakdown(items: Iterable[WasteItem]) -> List[CategorySummary]:
    """Group items by category; OTHER is left out."""
    summaries = {
        category: CategorySummary(category=category, tip=WasteClassifier.tip_for(category))
        for category in COUNTED_CATEGORIES
    }
    for item in items:
        summary = summaries.get(item.category)
        if summary is None:
            continue
        summary.count += 1
        if item.type not in summary.items:
            summary.items.append(item.type)
        summary.last_detected = max(summary.last_detected, item.timestamp)
    return [summaries[category] for category in COUNTED_CATEGORIES]


def get_recommendations(
    items: Sequence[WasteItem],
    now: Optional[float] = None,
) -> List[Recommendation]:
    """Build recommendations for categories seen in the last seven days."""
    now = time.time() if now is None else now
    cutoff = now - RECOMMENDATION_WINDOW_SECONDS
    recent = [item for item in items if item.timestamp > cutoff]
    summaries = {s.category: s for s in category_breakdown(recent)}
    recommendations: List[Recommendation] = []

    electronic = summaries[WasteCategory.ELECTRONIC]
    if electronic.count:
        recommendations.append(Recommendation(
            title="E-Waste Alert",
            message=(
                f"Detected {', '.join(electronic.items)}. Please take these to an "
                "e-waste recycling center."
            ),
            category=WasteCategory.ELECTRONIC,
        ))

    recyclable = summaries[WasteCategory.RECYCLABLE]
    if recyclable.count:
        recommendations.append(Recommendation(
            title="Recyclable Items",
            message=(
                f"Found {recyclable.count} recyclable items. Remember to clean and "
                "separate them properly."
            ),
            category=WasteCategory.RECYCLABLE,
        ))

    if summaries[WasteCategory.HAZARDOUS].count:
        recommendations.append(Recommendation(
            title="Hazardous Waste Warning",
            message=(
                "Detected hazardous items. These require special disposal methods. "
                "Do not mix with regular waste!"
            ),
            category=WasteCategory.HAZARDOUS,
        ))

    if summaries[WasteCategory.ORGANIC].count:
        recommendations.append(Recommendation(
            title="Organic Waste Tips",
            message=(
                "Consider composting your organic waste to reduce landfill impact "
                "and create nutrient-rich soil."
            ),
            category=WasteCategory.ORGANIC,
        ))

    return recommendations


_ITEM_TIPS = (
    (("laptop", "phone"), "Backup and erase personal data before recycling electronic devices"),
    (("battery",), "Never dispose of batteries in regular trash - they contain harmful chemicals"),
    (("plastic", "bottle"), "Rinse plastic containers and remove caps before recycling"),
    (("paper", "cardboard"), "Keep paper products dry and free from food contamination"),
)

_CATEGORY_TIPS = {
    WasteCategory.ELECTRONIC: "Check with local electronics stores for recycling programs",
    WasteCategory.HAZARDOUS: "Store hazardous materials in original containers until proper disposal",
    WasteCategory.ORGANIC: "Use a sealed container for composting to control odors",
    WasteCategory.RECYCLABLE: "Flatten boxes and containers to save space",
}


def get_recycling_tips(items: Sequence[WasteItem]) -> List[str]:
    """Deduplicated tips for the most recently detected items."""
    tips: List[str] = []
    for item in items[-RECENT_ITEMS_FOR_TIPS:]:
        item_type = item.type.lower()
        for keywords, tip in _ITEM_TIPS:
            if any(keyword in item_type for keyword in keywords) and tip not in tips:
                tips.append(tip)
        category_tip = _CATEGORY_TIPS.get(item.category)
        if category_tip and category_tip not in tips:
            tips.append(category_tip)
    return tips


def daily_trend(records: Iterable[Any]) -> List[Dict[str, Any]]:
    """Per-day totals from saved records, oldest day first.

    Each record needs a ``timestamp`` datetime and a ``detected_items``
    mapping of category to ``[{"type": ..., "confidence": ...}]``.
    """
    by_date: Dict[str, Dict[str, Any]] = {}
    for record in records:
        timestamp: datetime = record.timestamp
        day = timestamp.date().isoformat()
        bucket = by_date.setdefault(day, {"date": day, "total": 0, "items": {}})
        detected: Mapping[str, list] = record.detected_items or {}
        for category_items in detected.values():
            for entry in category_items:
                bucket["total"] += 1
                item_type = entry.get("type", "unknown")
                bucket["items"][item_type] = bucket["items"].get(item_type, 0) + 1
    return [by_date[day] for day in sorted(by_date)]
