"""Detection filtering and the per-session detection store.

The object detector runs on the client; it posts raw predictions shaped as
``{class, score, bbox}``. Only waste-relevant predictions above the score
threshold are kept and recorded as WasteItems for the session.
"""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from ewaste.app.services.categories import WasteCategory, get_waste_category

# Labels the client detector may report that are worth counting as waste.
WASTE_ITEM_LABELS: Tuple[str, ...] = (
    "bottle", "cup", "wine glass", "fork", "knife", "spoon", "bowl",
    "laptop", "tv", "cell phone", "book", "clock", "vase", "scissors",
    "keyboard", "mouse", "remote", "microwave", "oven", "toaster",
    "refrigerator", "paper", "cardboard", "box", "can", "battery",
    "monitor", "computer", "printer", "phone",
)

EXCLUDED_LABELS = frozenset({"person"})

DEFAULT_SCORE_THRESHOLD = 0.5


@dataclass
class Detection:
    """One labeled bounding box from the detector."""
    class_name: str
    score: float
    bbox: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)


@dataclass
class WasteItem:
    """A counted waste item in the current session."""
    type: str
    timestamp: float
    confidence: float

    @property
    def category(self) -> WasteCategory:
        return get_waste_category(self.type)


def is_waste_label(label: str) -> bool:
    """Check a label against the allow-list (substring match either way)."""
    lower = label.lower().strip()
    if not lower or lower in EXCLUDED_LABELS:
        return False
    return any(item in lower or lower in item for item in WASTE_ITEM_LABELS)


def filter_waste_detections(
    detections: Iterable[Detection],
    threshold: float = DEFAULT_SCORE_THRESHOLD,
) -> List[Detection]:
    """Keep waste-relevant detections scoring strictly above ``threshold``."""
    return [
        detection
        for detection in detections
        if detection.score > threshold and is_waste_label(detection.class_name)
    ]


def detections_to_items(
    detections: Iterable[Detection],
    timestamp: Optional[float] = None,
) -> List[WasteItem]:
    """Convert kept detections to WasteItems stamped with one capture time."""
    ts = time.time() if timestamp is None else timestamp
    return [
        WasteItem(type=d.class_name.lower().strip(), timestamp=ts, confidence=d.score)
        for d in detections
    ]


@dataclass
class DetectionStore:
    """In-memory detections for one capture session (append and clear only)."""
    _items: List[WasteItem] = field(default_factory=list)

    def add(self, item: WasteItem) -> None:
        self._items.append(item)

    def extend(self, items: Iterable[WasteItem]) -> None:
        self._items.extend(items)

    def items(self) -> List[WasteItem]:
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class DetectionStoreRegistry:
    """Detection stores keyed by session id, with LRU eviction.

    Memory optimization:
    - Uses OrderedDict for LRU behavior
    - Limits max sessions to prevent unbounded memory growth
    """

    DEFAULT_MAX_SESSIONS = 1000

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS):
        self._max_sessions = max_sessions
        self._stores: "OrderedDict[str, DetectionStore]" = OrderedDict()

    def get(self, session_id: str) -> DetectionStore:
        """Get the store for a session, creating it on first use."""
        store = self._stores.get(session_id)
        if store is None:
            store = DetectionStore()
            self._stores[session_id] = store
            while len(self._stores) > self._max_sessions:
                self._stores.popitem(last=False)
        else:
            self._stores.move_to_end(session_id)
        return store

    def peek(self, session_id: str) -> Optional[DetectionStore]:
        """Get an existing store without creating it or refreshing its recency."""
        return self._stores.get(session_id)

    def items(self, session_id: str) -> List[WasteItem]:
        """Items recorded for a session; unknown sessions are empty."""
        store = self._stores.get(session_id)
        return store.items() if store is not None else []

    def discard(self, session_id: str) -> None:
        self._stores.pop(session_id, None)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._stores

    def __len__(self) -> int:
        return len(self._stores)


def labels_of(items: Sequence[WasteItem]) -> List[str]:
    """Item labels in detection order, used as advice context."""
    return [item.type for item in items]
