"""
Tests for the Strategy Orchestrator

Priority order, best-count selection, the sufficiency short-circuit and
strategy failures.
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.models import ExtractionResult, StrategyId
from extraction.orchestrator import StrategyOrchestrator, StrategyState
from extraction.strategies import ExtractionStrategy, build_line_item


class FixedStrategy(ExtractionStrategy):
    """Returns a fixed number of items and counts its calls."""

    def __init__(self, strategy_id, count):
        self.strategy_id = strategy_id
        self.count = count
        self.calls = 0

    def extract(self, lines):
        self.calls += 1
        items = [
            build_line_item(self.strategy_id, item_code=f"{self.strategy_id.value}-{i}",
                            description="Generated item", quantity=1, unit_price=1)
            for i in range(self.count)
        ]
        return ExtractionResult(items=items, strategy_id=self.strategy_id)


class FailingStrategy(ExtractionStrategy):
    strategy_id = StrategyId.ADVANCED_ANALYSIS

    def extract(self, lines):
        raise RuntimeError("layout not understood")


class TestStrategyOrchestrator:
    """Tests for strategy selection."""

    def test_most_items_wins(self):
        strategies = [
            FixedStrategy(StrategyId.ADVANCED_ANALYSIS, 2),
            FixedStrategy(StrategyId.PATTERN_MATCHING, 5),
            FixedStrategy(StrategyId.POSITION_BASED, 3),
        ]
        outcome = StrategyOrchestrator(strategies).run([])

        assert outcome.best.strategy_id == StrategyId.PATTERN_MATCHING
        assert outcome.best.item_count == 5
        assert [a.state for a in outcome.attempts] == [
            StrategyState.ATTEMPTED, StrategyState.ACCEPTED, StrategyState.ATTEMPTED
        ]
        assert outcome.accepted.strategy_id == StrategyId.PATTERN_MATCHING

    def test_tie_keeps_earlier_strategy(self):
        strategies = [
            FixedStrategy(StrategyId.ADVANCED_ANALYSIS, 3),
            FixedStrategy(StrategyId.PATTERN_MATCHING, 3),
        ]
        outcome = StrategyOrchestrator(strategies).run([])
        assert outcome.best.strategy_id == StrategyId.ADVANCED_ANALYSIS

    def test_sufficiency_skips_remaining(self):
        """Reaching the threshold leaves later strategies unattempted."""
        first = FixedStrategy(StrategyId.ADVANCED_ANALYSIS, 12)
        second = FixedStrategy(StrategyId.PATTERN_MATCHING, 50)
        outcome = StrategyOrchestrator([first, second]).run([])

        assert outcome.best.strategy_id == StrategyId.ADVANCED_ANALYSIS
        assert second.calls == 0
        assert outcome.attempts[1].state == StrategyState.UNATTEMPTED

    def test_threshold_is_tunable(self):
        first = FixedStrategy(StrategyId.ADVANCED_ANALYSIS, 2)
        second = FixedStrategy(StrategyId.PATTERN_MATCHING, 5)
        StrategyOrchestrator([first, second], sufficiency_threshold=2).run([])
        assert second.calls == 0

        StrategyOrchestrator([first, second], sufficiency_threshold=100).run([])
        assert second.calls == 1

    def test_failing_strategy_falls_through(self):
        strategies = [FailingStrategy(), FixedStrategy(StrategyId.PATTERN_MATCHING, 4)]
        outcome = StrategyOrchestrator(strategies).run([])

        assert outcome.best.item_count == 4
        assert outcome.attempts[0].error == "layout not understood"
        assert outcome.attempts[0].state == StrategyState.ATTEMPTED

    def test_all_empty(self):
        strategies = [
            FixedStrategy(StrategyId.ADVANCED_ANALYSIS, 0),
            FixedStrategy(StrategyId.PATTERN_MATCHING, 0),
        ]
        outcome = StrategyOrchestrator(strategies).run([])
        assert outcome.best.item_count == 0
        assert outcome.accepted is None
        assert all(a.state == StrategyState.ATTEMPTED for a in outcome.attempts)

    def test_attempt_to_dict(self):
        outcome = StrategyOrchestrator([FixedStrategy(StrategyId.PATTERN_MATCHING, 1)]).run([])
        data = outcome.attempts[0].to_dict()
        assert data["strategy"] == "pattern_matching"
        assert data["state"] == "accepted"
        assert data["item_count"] == 1

    def test_requires_a_strategy(self):
        with pytest.raises(ValueError):
            StrategyOrchestrator([])
