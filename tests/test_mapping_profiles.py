"""
Tests for Column Mapping Profiles

Profile creation from header matches, applying profiles, mapping
suggestions, merging and the YAML-backed store.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.errors import MappingProfileError
from extraction.field_matcher import match_headers
from extraction.mapping_profiles import (
    MappingProfile, MappingProfileStore, apply_profile, create_mapping_profile,
    merge_mappings, suggest_mapping, validate_mapping
)
from extraction.models import FieldMapping, SemanticField

STANDARD_HEADERS = ["Item Code", "Description", "Unit", "Quantity", "Unit Price", "Total Price"]


@pytest.fixture
def standard_profile():
    return create_mapping_profile("standard-tender", "standard", match_headers(STANDARD_HEADERS))


class TestCreateAndApply:
    """Tests for building and resolving profiles."""

    def test_create_keeps_confident_columns(self, standard_profile):
        assert standard_profile.field_to_column_name[SemanticField.UNIT_PRICE] == "Unit Price"
        assert len(standard_profile.field_to_column_name) == 6
        assert standard_profile.usage_count == 0

    def test_create_drops_weak_columns(self):
        profile = create_mapping_profile(
            "strict", "standard", match_headers(STANDARD_HEADERS), min_confidence=0.99
        )
        assert profile.field_to_column_name == {}

    def test_apply_is_case_insensitive(self, standard_profile):
        headers = [h.upper() for h in STANDARD_HEADERS]
        result = apply_profile(standard_profile, headers)
        assert result.errors == []
        assert result.mapping.column_for(SemanticField.QUANTITY) == 3
        assert set(result.mapping.confidences.values()) == {1.0}

    def test_apply_reports_missing_columns(self, standard_profile):
        result = apply_profile(standard_profile, ["Item Code", "Description", "Quantity"])
        assert "Profile 'standard-tender' column not found: Unit Price" in result.errors
        assert "Missing required field: unit_price" in result.errors

    def test_round_trip_dict(self, standard_profile):
        restored = MappingProfile.from_dict(standard_profile.to_dict())
        assert restored.field_to_column_name == standard_profile.field_to_column_name
        assert restored.name == "standard-tender"

    def test_from_dict_rejects_unknown_field(self):
        with pytest.raises(MappingProfileError):
            MappingProfile.from_dict({"name": "bad", "field_to_column_name": {"colour": "Colour"}})

    def test_from_dict_requires_name(self):
        with pytest.raises(MappingProfileError):
            MappingProfile.from_dict({"field_to_column_name": {}})


class TestSuggestMapping:
    """Tests for review hints on automatic mappings."""

    def test_clean_headers_need_no_review(self):
        suggestion = suggest_mapping(STANDARD_HEADERS)
        assert suggestion.review == []
        assert not suggestion.requires_review
        assert suggestion.confidence >= 0.8

    def test_missing_required_field_flagged(self):
        suggestion = suggest_mapping(["Description", "Qty"])
        assert suggestion.requires_review
        assert "No column found for required field item_code" in suggestion.review
        assert "No column found for required field unit_price" in suggestion.review


class TestMergeAndValidate:
    """Tests for combining and checking mappings."""

    def test_first_claim_wins(self):
        columns = ["A", "B", "C"]
        first = FieldMapping(columns=columns, fields={SemanticField.DESCRIPTION: 0}, confidences={0: 0.9})
        second = FieldMapping(
            columns=columns,
            fields={SemanticField.DESCRIPTION: 1, SemanticField.QUANTITY: 2},
            confidences={1: 0.95, 2: 0.6},
        )
        merged = merge_mappings(first, second)
        assert merged.fields == {SemanticField.DESCRIPTION: 0, SemanticField.QUANTITY: 2}
        assert merged.unmapped == [1]
        assert merged.confidences[2] == 0.6

    def test_column_claimed_once(self):
        columns = ["A", "B"]
        first = FieldMapping(columns=columns, fields={SemanticField.DESCRIPTION: 0})
        second = FieldMapping(columns=columns, fields={SemanticField.NOTES: 0})
        merged = merge_mappings(first, second)
        assert SemanticField.NOTES not in merged.fields

    def test_merge_nothing(self):
        assert merge_mappings().fields == {}

    def test_validate_mapping(self):
        mapping = FieldMapping(
            columns=["A", "B"],
            fields={SemanticField.DESCRIPTION: 0, SemanticField.NOTES: 0},
        )
        problems = validate_mapping(mapping)
        assert "Required field not mapped: quantity" in problems
        assert any("Column 0 mapped to both" in p for p in problems)

    def test_validate_complete_mapping(self):
        assert validate_mapping(match_headers(STANDARD_HEADERS).mapping) == []


class TestMappingProfileStore:
    """Tests for YAML persistence."""

    def test_missing_file_is_empty(self, tmp_path):
        store = MappingProfileStore(str(tmp_path / "profiles.yaml"))
        assert len(store) == 0
        assert store.most_used() is None

    def test_save_and_reload(self, tmp_path, standard_profile):
        path = tmp_path / "nested" / "profiles.yaml"
        MappingProfileStore(str(path)).save(standard_profile)
        assert path.exists()

        reloaded = MappingProfileStore(str(path))
        profile = reloaded.get("standard-tender")
        assert profile is not None
        assert profile.field_to_column_name == standard_profile.field_to_column_name

    def test_record_usage_and_most_used(self, tmp_path, standard_profile):
        path = str(tmp_path / "profiles.yaml")
        store = MappingProfileStore(path)
        store.save(standard_profile)
        store.save(MappingProfile("other", "standard", {SemanticField.DESCRIPTION: "Work"}))

        store.record_usage("other")
        store.record_usage("other")
        assert store.most_used().name == "other"
        assert MappingProfileStore(path).get("other").usage_count == 2

    def test_record_usage_unknown(self, tmp_path):
        store = MappingProfileStore(str(tmp_path / "profiles.yaml"))
        with pytest.raises(MappingProfileError):
            store.record_usage("missing")

    def test_delete(self, tmp_path, standard_profile):
        store = MappingProfileStore(str(tmp_path / "profiles.yaml"))
        store.save(standard_profile)
        assert store.delete("standard-tender")
        assert not store.delete("standard-tender")
        assert store.list_profiles() == []

    def test_arabic_column_names_survive(self, tmp_path):
        path = str(tmp_path / "profiles.yaml")
        profile = MappingProfile("arabic", "standard", {SemanticField.DESCRIPTION: "الوصف"})
        MappingProfileStore(path).save(profile)
        assert MappingProfileStore(path).get("arabic").field_to_column_name[SemanticField.DESCRIPTION] == "الوصف"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "profiles.yaml"
        path.write_text("profiles: [unclosed", encoding="utf-8")
        with pytest.raises(MappingProfileError):
            MappingProfileStore(str(path))
