"""Tests for detection filtering and session stores."""

from ewaste.app.services.categories import WasteCategory
from ewaste.app.services.detection import (
    Detection,
    DetectionStore,
    DetectionStoreRegistry,
    WasteItem,
    detections_to_items,
    filter_waste_detections,
    is_waste_label,
    labels_of,
)


class TestFilter:
    def test_keeps_waste_above_threshold(self):
        detections = [
            Detection("bottle", 0.9),
            Detection("laptop", 0.51),
            Detection("cup", 0.5),
            Detection("person", 0.99),
            Detection("dog", 0.95),
        ]

        kept = filter_waste_detections(detections)

        assert [d.class_name for d in kept] == ["bottle", "laptop"]

    def test_custom_threshold(self):
        kept = filter_waste_detections([Detection("bottle", 0.6)], threshold=0.7)
        assert kept == []

    def test_label_matching(self):
        assert is_waste_label("Cell Phone")
        assert is_waste_label("wine glass")
        assert is_waste_label("tin can")
        assert not is_waste_label("person")
        assert not is_waste_label("")


class TestItems:
    def test_detections_to_items(self):
        items = detections_to_items([Detection(" Bottle ", 0.8)], timestamp=123.0)

        assert items == [WasteItem(type="bottle", timestamp=123.0, confidence=0.8)]
        assert items[0].category == WasteCategory.RECYCLABLE

    def test_labels_of(self):
        items = [WasteItem("bottle", 1.0, 0.9), WasteItem("laptop", 2.0, 0.8)]
        assert labels_of(items) == ["bottle", "laptop"]


class TestDetectionStore:
    def test_add_and_clear(self):
        store = DetectionStore()
        store.add(WasteItem("bottle", 1.0, 0.9))
        store.extend([WasteItem("cup", 2.0, 0.7)])

        assert len(store) == 2
        assert [i.type for i in store.items()] == ["bottle", "cup"]

        store.clear()
        assert store.items() == []

    def test_items_returns_copy(self):
        store = DetectionStore()
        store.add(WasteItem("bottle", 1.0, 0.9))

        store.items().clear()

        assert len(store) == 1


class TestDetectionStoreRegistry:
    def test_get_creates_and_reuses(self):
        registry = DetectionStoreRegistry()

        store = registry.get("s1")

        assert registry.get("s1") is store
        assert "s1" in registry

    def test_sessions_are_isolated(self):
        registry = DetectionStoreRegistry()
        registry.get("a").add(WasteItem("bottle", 1.0, 0.9))

        assert len(registry.get("b")) == 0

    def test_lru_eviction(self):
        registry = DetectionStoreRegistry(max_sessions=2)
        registry.get("a")
        registry.get("b")
        registry.get("a")  # refresh
        registry.get("c")

        assert "a" in registry
        assert "b" not in registry
        assert len(registry) == 2

    def test_peek_does_not_create_or_refresh(self):
        registry = DetectionStoreRegistry(max_sessions=2)
        registry.get("a")
        registry.get("b")

        assert registry.peek("missing") is None
        assert registry.items("missing") == []
        assert "missing" not in registry

        registry.peek("a")
        registry.get("c")
        assert "a" not in registry
        assert "b" in registry

    def test_discard(self):
        registry = DetectionStoreRegistry()
        registry.get("a")
        registry.discard("a")
        registry.discard("missing")

        assert "a" not in registry
