"""Waste category classifier for detected item labels."""

from enum import Enum
from typing import Dict, Optional, Tuple


class WasteCategory(str, Enum):
    """Classification bucket for a detected physical item."""
    RECYCLABLE = "recyclable"
    ELECTRONIC = "electronic"
    HAZARDOUS = "hazardous"
    ORGANIC = "organic"
    OTHER = "other"


class WasteClassifier:
    """Maps free-text detector labels to waste categories.

    Rules:
    1. Exact match in DIRECT_MAPPINGS (common detector labels)
    2. Substring match, in either direction, against CATEGORY_KEYWORDS,
       checking categories in declaration order
    3. Otherwise OTHER
    """

    DIRECT_MAPPINGS: Dict[str, WasteCategory] = {
        "cup": WasteCategory.RECYCLABLE,
        "bottle": WasteCategory.RECYCLABLE,
        "wine glass": WasteCategory.RECYCLABLE,
        "bowl": WasteCategory.RECYCLABLE,
        "dining table": WasteCategory.RECYCLABLE,
        "chair": WasteCategory.RECYCLABLE,
        "couch": WasteCategory.RECYCLABLE,
        "book": WasteCategory.RECYCLABLE,
        "clock": WasteCategory.RECYCLABLE,
        "vase": WasteCategory.RECYCLABLE,
        "potted plant": WasteCategory.ORGANIC,
        "laptop": WasteCategory.ELECTRONIC,
        "keyboard": WasteCategory.ELECTRONIC,
        "mouse": WasteCategory.ELECTRONIC,
        "tvmonitor": WasteCategory.ELECTRONIC,
        "tv": WasteCategory.ELECTRONIC,
        "cell": WasteCategory.ELECTRONIC,
        "phone": WasteCategory.ELECTRONIC,
        "microwave": WasteCategory.ELECTRONIC,
        "oven": WasteCategory.ELECTRONIC,
        "toaster": WasteCategory.ELECTRONIC,
        "refrigerator": WasteCategory.ELECTRONIC,
        "scissors": WasteCategory.HAZARDOUS,
        "knife": WasteCategory.HAZARDOUS,
        "hair drier": WasteCategory.HAZARDOUS,
        "banana": WasteCategory.ORGANIC,
        "apple": WasteCategory.ORGANIC,
        "sandwich": WasteCategory.ORGANIC,
        "orange": WasteCategory.ORGANIC,
        "broccoli": WasteCategory.ORGANIC,
        "carrot": WasteCategory.ORGANIC,
        "hot dog": WasteCategory.ORGANIC,
        "pizza": WasteCategory.ORGANIC,
        "donut": WasteCategory.ORGANIC,
        "cake": WasteCategory.ORGANIC,
    }

    CATEGORY_KEYWORDS: Dict[WasteCategory, Tuple[str, ...]] = {
        WasteCategory.RECYCLABLE: (
            "bottle", "cup", "wine glass", "fork", "knife", "spoon", "bowl",
            "vase", "scissors", "book", "clock", "suitcase", "umbrella",
            "handbag", "backpack", "sports ball", "kite", "baseball glove",
            "skateboard", "surfboard", "tennis racket", "plate", "tin can",
            "aluminum can", "cardboard box", "cardboard", "box", "paper",
            "magazine", "newspaper",
        ),
        WasteCategory.ELECTRONIC: (
            "laptop", "tv", "tvmonitor", "cell phone", "remote", "keyboard",
            "mouse", "computer", "monitor", "microwave", "oven", "toaster",
            "refrigerator", "hair drier", "clock",
        ),
        WasteCategory.HAZARDOUS: (
            "scissors", "knife", "hair drier", "battery", "fire hydrant",
            "stop sign", "traffic light", "parking meter",
        ),
        WasteCategory.ORGANIC: (
            "banana", "apple", "sandwich", "orange", "broccoli", "carrot",
            "hot dog", "pizza", "donut", "cake", "potted plant", "food",
            "fruit", "vegetable", "plant", "dining table",
        ),
    }

    CATEGORY_TIPS: Dict[WasteCategory, str] = {
        WasteCategory.RECYCLABLE: "Clean and separate before recycling",
        WasteCategory.ELECTRONIC: "Take to e-waste collection center",
        WasteCategory.HAZARDOUS: "Requires special disposal",
        WasteCategory.ORGANIC: "Suitable for composting",
        WasteCategory.OTHER: "Check local disposal guidelines",
    }

    @classmethod
    def classify(cls, label: Optional[str]) -> WasteCategory:
        """Classify a detector label into a waste category."""
        if not label:
            return WasteCategory.OTHER
        lower = label.lower().strip()
        if not lower:
            return WasteCategory.OTHER

        direct = cls.DIRECT_MAPPINGS.get(lower)
        if direct is not None:
            return direct

        for category, keywords in cls.CATEGORY_KEYWORDS.items():
            if any(keyword in lower or lower in keyword for keyword in keywords):
                return category

        return WasteCategory.OTHER

    @classmethod
    def tip_for(cls, category: WasteCategory) -> str:
        return cls.CATEGORY_TIPS[category]


def get_waste_category(label: Optional[str]) -> WasteCategory:
    """Classify a detector label; see WasteClassifier.classify."""
    return WasteClassifier.classify(label)
