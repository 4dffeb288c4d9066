"""
Node 2: Item Extraction
Rebuilds text lines and lets the strategy orchestrator pick a result.
"""

import logging
from typing import Dict, Any, Optional

from langchain_core.runnables import RunnableConfig

from extraction.line_reconstructor import reconstruct_lines
from extraction.pipeline import BOQExtractor, NO_STRUCTURED_DATA

from ..state import ExtractionState, get_context

logger = logging.getLogger(__name__)


def extract_items_node(state: ExtractionState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
    """
    Run the extraction strategies over the loaded glyphs.

    Args:
        state: Current workflow state
        config: Run config carrying the extraction context

    Returns:
        State updates with lines and outcome, or last_error when no
        strategy found any items
    """
    glyphs = state.get("glyphs") or []
    context = get_context(config)
    settings = context.config.extraction

    lines = reconstruct_lines(glyphs, tolerance=settings.line_tolerance)
    logger.info(f"Reconstructed {len(lines)} lines")

    try:
        outcome = BOQExtractor(context).run_strategies(lines)
    except Exception as e:
        logger.error(f"Extraction failed: {e}")
        return {"last_error": f"Extraction failed: {str(e)}", "lines": lines}

    if outcome.best.item_count == 0:
        return {
            "lines": lines,
            "outcome": outcome,
            "last_error": NO_STRUCTURED_DATA
        }

    return {
        "lines": lines,
        "outcome": outcome,
        "last_error": None
    }
