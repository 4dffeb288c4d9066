# Extraction strategies
from typing import List, Optional

from ..column_segmenter import DEFAULT_COLUMN_GAP
from ..mapping_profiles import MappingProfile
from .advanced import AdvancedAnalysisStrategy
from .base import ExtractionStrategy, build_line_item, split_trailing_figures
from .patterns import LINE_PATTERNS, LinePattern, PatternMatchingStrategy
from .positional import PositionBasedStrategy, align_cells


def default_strategies(
    column_gap: float = DEFAULT_COLUMN_GAP,
    profile: Optional[MappingProfile] = None,
) -> List[ExtractionStrategy]:
    """Strategies in priority order: structural, pattern, position-based."""
    return [
        AdvancedAnalysisStrategy(),
        PatternMatchingStrategy(),
        PositionBasedStrategy(column_gap=column_gap, profile=profile),
    ]


__all__ = [
    "ExtractionStrategy",
    "AdvancedAnalysisStrategy",
    "PatternMatchingStrategy",
    "PositionBasedStrategy",
    "LinePattern",
    "LINE_PATTERNS",
    "build_line_item",
    "split_trailing_figures",
    "align_cells",
    "default_strategies",
]
