"""
Column Mapping Profiles

Named, reusable field-to-column-name mappings for recurring document
layouts. A saved profile lets position-based parsing skip automatic
header matching. Profiles persist as a YAML file.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import yaml

from .errors import MappingProfileError
from .field_matcher import HeaderMatch, match_headers, normalize_header
from .models import FieldMapping, REQUIRED_FIELDS, SemanticField

logger = logging.getLogger(__name__)

# Mappings below this confidence are not stored in a profile
PROFILE_MIN_CONFIDENCE = 0.5

# Columns below this confidence are flagged for review
REVIEW_THRESHOLD = 0.7

# Average confidence below this marks a suggestion as needing review
REQUIRES_REVIEW_BELOW = 0.8


@dataclass
class MappingProfile:
    """A saved mapping from semantic fields to header names."""
    name: str
    source_format: str
    field_to_column_name: Dict[SemanticField, str]
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    usage_count: int = 0

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "source_format": self.source_format,
            "field_to_column_name": {f.value: c for f, c in self.field_to_column_name.items()},
            "created_at": self.created_at,
            "usage_count": self.usage_count,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "MappingProfile":
        try:
            mappings = {
                SemanticField(key): str(value)
                for key, value in (data.get("field_to_column_name") or {}).items()
            }
            return cls(
                name=str(data["name"]),
                source_format=str(data.get("source_format", "standard")),
                field_to_column_name=mappings,
                created_at=str(data.get("created_at") or datetime.now().isoformat()),
                usage_count=int(data.get("usage_count", 0)),
            )
        except (KeyError, ValueError, TypeError) as e:
            raise MappingProfileError(f"Invalid mapping profile: {e}") from e


def create_mapping_profile(
    name: str,
    source_format: str,
    header_match: HeaderMatch,
    min_confidence: float = PROFILE_MIN_CONFIDENCE,
) -> MappingProfile:
    """Keep only the confident mappings of a header match."""
    mapping = header_match.mapping
    kept = {
        f: mapping.columns[index]
        for f, index in mapping.fields.items()
        if mapping.confidences.get(index, 0.0) > min_confidence and index < len(mapping.columns)
    }
    return MappingProfile(name=name, source_format=source_format, field_to_column_name=kept)


def apply_profile(profile: MappingProfile, headers: Sequence[str]) -> HeaderMatch:
    """
    Resolve a profile's column names against a table's headers.

    Names compare case-insensitively after header normalization. Profile
    columns absent from the table are reported as errors.
    """
    headers = list(headers)
    lookup = {normalize_header(h): i for i, h in enumerate(headers)}

    fields: Dict[SemanticField, int] = {}
    errors: List[str] = []
    for semantic_field, column_name in profile.field_to_column_name.items():
        index = lookup.get(normalize_header(column_name))
        if index is None:
            errors.append(f"Profile '{profile.name}' column not found: {column_name}")
            continue
        fields[semantic_field] = index

    mapped = set(fields.values())
    mapping = FieldMapping(
        columns=headers,
        fields=fields,
        confidences={i: 1.0 for i in mapped},
        unmapped=[i for i in range(len(headers)) if i not in mapped],
    )
    errors.extend(f"Missing required field: {f.value}" for f in mapping.missing_required())
    return HeaderMatch(mapping=mapping, errors=errors)


@dataclass
class MappingSuggestion:
    """Automatic mapping plus hints about what a person should check."""
    header_match: HeaderMatch
    review: List[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        return self.header_match.mapping.average_confidence

    @property
    def requires_review(self) -> bool:
        return self.confidence < REQUIRES_REVIEW_BELOW or bool(self.review)


def suggest_mapping(headers: Sequence[str]) -> MappingSuggestion:
    """Match headers and list the columns worth a second look."""
    header_match = match_headers(headers)
    mapping = header_match.mapping

    review = []
    for semantic_field, index in mapping.fields.items():
        confidence = mapping.confidences.get(index, 0.0)
        if confidence < REVIEW_THRESHOLD:
            review.append(
                f"Column '{mapping.columns[index]}' mapped to {semantic_field.value} "
                f"with low confidence ({confidence:.0%})"
            )
    for semantic_field in mapping.missing_required():
        review.append(f"No column found for required field {semantic_field.value}")

    return MappingSuggestion(header_match=header_match, review=review)


def merge_mappings(*mappings: FieldMapping) -> FieldMapping:
    """Combine mappings over the same columns; the first one to claim a field keeps it."""
    if not mappings:
        return FieldMapping()
    merged = FieldMapping(columns=list(mappings[0].columns))
    for mapping in mappings:
        for semantic_field, index in mapping.fields.items():
            if semantic_field in merged.fields or index in merged.fields.values():
                continue
            merged.fields[semantic_field] = index
            merged.confidences[index] = mapping.confidences.get(index, 0.0)
    mapped = set(merged.fields.values())
    merged.unmapped = [i for i in range(len(merged.columns)) if i not in mapped]
    return merged


def validate_mapping(mapping: FieldMapping) -> List[str]:
    """Return problems that would make a mapping unusable."""
    problems = [f"Required field not mapped: {f.value}" for f in REQUIRED_FIELDS if f not in mapping.fields]
    seen: Dict[int, SemanticField] = {}
    for semantic_field, index in mapping.fields.items():
        if index in seen:
            problems.append(
                f"Column {index} mapped to both {seen[index].value} and {semantic_field.value}"
            )
        seen[index] = semantic_field
    return problems


class MappingProfileStore:
    """
    YAML-backed collection of mapping profiles.

    The file holds a top-level ``profiles`` list. A missing file is an
    empty store; it is created on the first save.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._profiles: Dict[str, MappingProfile] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise MappingProfileError(f"Could not read profiles from {self.path}: {e}") from e

        for entry in raw.get("profiles", []):
            profile = MappingProfile.from_dict(entry)
            self._profiles[profile.name] = profile
        logger.debug(f"Loaded {len(self._profiles)} mapping profiles from {self.path}")

    def _write(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {"profiles": [p.to_dict() for p in self._profiles.values()]}
        try:
            with open(self.path, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
        except OSError as e:
            raise MappingProfileError(f"Could not write profiles to {self.path}: {e}") from e

    def save(self, profile: MappingProfile) -> None:
        self._profiles[profile.name] = profile
        self._write()
        logger.info(f"Saved mapping profile: {profile.name}")

    def get(self, name: str) -> Optional[MappingProfile]:
        return self._profiles.get(name)

    def delete(self, name: str) -> bool:
        if name not in self._profiles:
            return False
        del self._profiles[name]
        self._write()
        return True

    def list_profiles(self) -> List[MappingProfile]:
        return list(self._profiles.values())

    def record_usage(self, name: str) -> None:
        profile = self._profiles.get(name)
        if profile is None:
            raise MappingProfileError(f"Unknown mapping profile: {name}")
        profile.usage_count += 1
        self._write()

    def most_used(self) -> Optional[MappingProfile]:
        if not self._profiles:
            return None
        return max(self._profiles.values(), key=lambda p: p.usage_count)

    def __len__(self) -> int:
        return len(self._profiles)
