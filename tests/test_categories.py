"""Tests for detection label mapping and priority tiers."""

import pytest

from citywatch.services.categories import (
    DETECTION_CATEGORY_MAP,
    Priority,
    detection_label_for,
    map_category,
    priority_for,
)


class TestCategoryMapping:
    """Tests for label -> internal code mapping."""

    @pytest.mark.parametrize(
        "label,code",
        [
            ("bache", "POTHOLE"),
            ("grieta", "CRACK"),
            ("alcantarilla", "MANHOLE"),
            ("basura", "GARBAGE"),
            ("iluminacion", "LIGHTING"),
            ("otro", "OTHER"),
        ],
    )
    def test_known_labels(self, label, code):
        assert map_category(label) == code

    def test_unknown_label(self):
        assert map_category("charco") is None

    def test_mapping_is_case_sensitive(self):
        assert map_category("Bache") is None

    def test_empty_label(self):
        assert map_category("") is None
        assert map_category(None) is None

    def test_reverse_mapping(self):
        for label, code in DETECTION_CATEGORY_MAP.items():
            assert detection_label_for(code) == label
        assert detection_label_for("FLOOD") is None


class TestPriority:
    """Tests for confidence -> priority tiers."""

    @pytest.mark.parametrize(
        "confidence,priority",
        [
            (1.0, Priority.HIGH),
            (0.90, Priority.HIGH),
            (0.8999, Priority.MEDIUM),
            (0.70, Priority.MEDIUM),
            (0.6999, Priority.LOW),
            (0.0, Priority.LOW),
        ],
    )
    def test_priority_tiers(self, confidence, priority):
        assert priority_for(confidence) == priority

    def test_priority_values(self):
        assert priority_for(0.95).value == "high"
        assert priority_for(0.75).value == "medium"
        assert priority_for(0.10).value == "low"
