"""
Tests for Validation, Deduplication, Confidence and Statistics
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.models import ExtractedTable, LineItem, StrategyId
from extraction.strategies import build_line_item
from extraction.validator import validate_items, deduplicate, dedup_key
from extraction.confidence import score_items, total_is_consistent, record_confidence
from extraction.statistics import calculate_statistics, identify_outliers, cost_distribution
from extraction.format_detector import BOQFormat, detect_boq_format, detect_language


def item(code="A-1", description="Concrete works", quantity=10.0, unit_price=5.0,
         total_price=None, unit="m3", category=None):
    return build_line_item(
        StrategyId.PATTERN_MATCHING,
        item_code=code,
        description=description,
        unit=unit,
        quantity=quantity,
        unit_price=unit_price,
        total_price=total_price,
        category=category,
    )


class TestValidateItems:
    """Tests for per-record validation rules."""

    def test_zero_quantity_rejected(self):
        """A zero quantity is an error and the record is dropped."""
        outcome = validate_items([item("A-1", quantity=0), item("A-2")])
        assert [i.item_code for i in outcome.items] == ["A-2"]
        assert len(outcome.errors) == 1
        assert "A-1" in outcome.errors[0]
        assert "quantity" in outcome.errors[0]

    def test_negative_price_rejected(self):
        outcome = validate_items([item(unit_price=-3)])
        assert outcome.items == []
        assert "unit price cannot be negative" in outcome.errors[0]

    def test_zero_price_warns(self):
        outcome = validate_items([item(unit_price=0)])
        assert len(outcome.items) == 1
        assert any("unit price is 0" in w for w in outcome.warnings)

    def test_missing_description_defaulted(self):
        outcome = validate_items([item("B-7", description="")])
        assert outcome.items[0].description == "Item B-7"
        assert any("missing description" in w for w in outcome.warnings)

    def test_low_confidence_warns(self):
        low = LineItem("PDF-001", "Loose text", "EA", 1, 2, 2, confidence=1 / 6)
        outcome = validate_items([low])
        assert any("low extraction confidence" in w for w in outcome.warnings)

    def test_total_mismatch_warns(self):
        outcome = validate_items([item(quantity=10, unit_price=5, total_price=80)])
        assert len(outcome.items) == 1
        assert any("differs from quantity x unit price" in w for w in outcome.warnings)

    def test_sorted_by_code(self):
        outcome = validate_items([item("C-1"), item("A-1"), item("B-1")])
        assert [i.item_code for i in outcome.items] == ["A-1", "B-1", "C-1"]

    def test_empty(self):
        outcome = validate_items([])
        assert outcome.items == []
        assert outcome.errors == []


class TestDeduplicate:
    """Tests for last-write-wins deduplication."""

    def test_later_record_wins(self):
        first = item("ITEM-001", "Concrete foundation works, grade C30", unit_price=100)
        second = item("ITEM-001", "Concrete foundation works, grade C35", unit_price=120)
        assert dedup_key(first) == dedup_key(second)

        outcome = validate_items([first, second])
        assert len(outcome.items) == 1
        assert outcome.items[0].unit_price == 120
        assert outcome.duplicates_removed == 1

    def test_case_sensitive_key(self):
        unique = deduplicate([item("A-1", "Concrete"), item("A-1", "concrete")])
        assert len(unique) == 2

    def test_never_grows(self):
        items = [item("A-1"), item("A-1"), item("A-2"), item("A-1")]
        unique = deduplicate(items)
        assert len(unique) == 2
        assert len({dedup_key(i) for i in unique}) == len(unique)


class TestConfidence:
    """Tests for record and table confidence."""

    def test_record_confidence_bounds(self):
        assert record_confidence([]) == 0.0
        assert 0.0 <= item().confidence <= 1.0

    def test_computed_total_is_consistent(self):
        assert total_is_consistent(item(total_price=None))

    def test_total_within_tolerance(self):
        assert total_is_consistent(item(quantity=10, unit_price=5, total_price=50.4))
        assert not total_is_consistent(item(quantity=10, unit_price=5, total_price=52))

    def test_score_items(self):
        full = item(total_price=50)
        assert score_items([full]) == 1.0
        assert score_items([]) == 0.0

    def test_score_uses_tables(self):
        table = ExtractedTable(page=1, headers=["a"], confidence=0.5)
        assert score_items([item(total_price=50)], [table]) == pytest.approx(0.75)


class TestStatistics:
    """Tests for summary figures and outliers."""

    def test_calculate_statistics(self):
        stats = calculate_statistics([item(quantity=2, unit_price=10), item("A-2", quantity=1, unit_price=30)])
        assert stats.item_count == 2
        assert stats.total_value == 50
        assert stats.average_unit_price == 20
        assert stats.min_unit_price == 10
        assert stats.max_unit_price == 30
        assert stats.by_unit["M3"]["count"] == 2

    def test_outliers(self):
        items = [item(f"A-{i}", unit_price=10) for i in range(9)] + [item("A-9", unit_price=500)]
        outliers = identify_outliers(items)
        assert [o.item_code for o in outliers] == ["A-9"]

    def test_outliers_need_three_items(self):
        assert identify_outliers([item(unit_price=1), item("A-2", unit_price=1000)]) == []

    def test_cost_distribution(self):
        items = [
            item("A-1", quantity=1, unit_price=300, category="Earthworks"),
            item("A-2", quantity=1, unit_price=100),
        ]
        distribution = cost_distribution(items)
        assert list(distribution) == ["Earthworks", "Uncategorized"]
        assert distribution["Earthworks"]["share"] == 0.75


class TestFormatDetection:
    """Tests for language and layout family detection."""

    def test_english(self):
        assert detect_language("Supply and install floor tiles") == "en"

    def test_arabic(self):
        assert detect_language("توريد وتركيب بلاط الأرضيات") == "ar"

    def test_mixed(self):
        assert detect_language("Concrete خرسانة") == "mixed"

    def test_no_letters(self):
        assert detect_language("123 456") == "en"

    def test_formats(self):
        assert detect_boq_format(["WBS", "Description", "Qty"]) == BOQFormat.ENGINEERING
        assert detect_boq_format(["Category", "Description", "Unit", "Rate"]) == BOQFormat.CONSTRUCTION
        assert detect_boq_format(["Description", "Qty", "Price"]) == BOQFormat.PROCUREMENT
        assert detect_boq_format(["Description", "Unit", "Qty"]) == BOQFormat.STANDARD
