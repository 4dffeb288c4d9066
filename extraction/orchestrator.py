"""
Strategy Orchestrator

Runs strategies in priority order and keeps whichever result has the most
items. Once the best result reaches the sufficiency threshold the
remaining strategies are skipped.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .models import ExtractionResult, StrategyId, TextLine
from .strategies import ExtractionStrategy, default_strategies

logger = logging.getLogger(__name__)

DEFAULT_SUFFICIENCY_THRESHOLD = 10


class StrategyState(Enum):
    UNATTEMPTED = "unattempted"
    ATTEMPTED = "attempted"
    ACCEPTED = "accepted"


@dataclass
class StrategyAttempt:
    """What happened when one strategy ran (or did not)."""
    strategy_id: StrategyId
    state: StrategyState = StrategyState.UNATTEMPTED
    item_count: int = 0
    elapsed_ms: float = 0.0
    error: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "strategy": self.strategy_id.value,
            "state": self.state.value,
            "item_count": self.item_count,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "error": self.error,
        }


@dataclass
class OrchestrationOutcome:
    best: ExtractionResult
    attempts: List[StrategyAttempt] = field(default_factory=list)

    @property
    def accepted(self) -> Optional[StrategyAttempt]:
        for attempt in self.attempts:
            if attempt.state == StrategyState.ACCEPTED:
                return attempt
        return None


class StrategyOrchestrator:
    """
    Selects one strategy's result for a document.

    Strategy failures (exceptions) are logged and treated like an empty
    result; the next strategy is tried. An empty best result is returned
    when every strategy comes up empty.
    """

    def __init__(
        self,
        strategies: Optional[List[ExtractionStrategy]] = None,
        sufficiency_threshold: int = DEFAULT_SUFFICIENCY_THRESHOLD,
    ):
        self.strategies = strategies if strategies is not None else default_strategies()
        if not self.strategies:
            raise ValueError("At least one extraction strategy is required")
        self.sufficiency_threshold = max(1, sufficiency_threshold)

    def run(self, lines: List[TextLine]) -> OrchestrationOutcome:
        attempts = [StrategyAttempt(strategy_id=s.strategy_id) for s in self.strategies]
        best: Optional[ExtractionResult] = None
        best_attempt: Optional[StrategyAttempt] = None

        for strategy, attempt in zip(self.strategies, attempts):
            started = time.perf_counter()
            try:
                result = strategy.extract(lines)
            except Exception as e:
                logger.warning(f"Strategy {strategy.strategy_id.value} failed: {e}")
                attempt.error = str(e)
                result = ExtractionResult.empty(strategy.strategy_id)
            attempt.elapsed_ms = (time.perf_counter() - started) * 1000
            attempt.state = StrategyState.ATTEMPTED
            attempt.item_count = result.item_count

            logger.info(f"Strategy {strategy.strategy_id.value}: {result.item_count} items")

            if best is None or result.item_count > best.item_count:
                best, best_attempt = result, attempt

            if best.item_count >= self.sufficiency_threshold:
                logger.debug(
                    f"{best.strategy_id.value} reached sufficiency "
                    f"({best.item_count} >= {self.sufficiency_threshold}), skipping the rest"
                )
                break

        if best is None or best.item_count == 0:
            logger.warning("No strategy extracted any items")
            return OrchestrationOutcome(
                best=ExtractionResult.empty(self.strategies[0].strategy_id),
                attempts=attempts,
            )

        best_attempt.state = StrategyState.ACCEPTED
        return OrchestrationOutcome(best=best, attempts=attempts)
