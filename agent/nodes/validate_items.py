"""
Node 3: Item Validation
Validates, deduplicates and scores the chosen strategy's items.
"""

import logging
from typing import Dict, Any, Optional

from langchain_core.runnables import RunnableConfig

from extraction.pipeline import BOQExtractor

from ..state import ExtractionState, get_context

logger = logging.getLogger(__name__)


def validate_items_node(state: ExtractionState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
    """
    Turn the orchestration outcome into an ImportResult.

    Record-level errors (bad quantity or price) do not fail the file;
    they are carried in the result for the caller to judge.

    Args:
        state: Current workflow state
        config: Run config carrying the extraction context

    Returns:
        State updates with import_result, or last_error
    """
    outcome = state.get("outcome")
    lines = state.get("lines") or []
    if outcome is None:
        return {"last_error": "No extraction outcome to validate"}

    context = get_context(config)
    result = BOQExtractor(context).finalize(outcome, lines, page_count=state.get("page_count", 0))

    failed_pages = state.get("failed_pages") or []
    result.failed_pages = list(failed_pages)
    if failed_pages:
        result.warnings.append(
            f"Pages could not be decoded: {', '.join(str(p) for p in failed_pages)}"
        )

    if result.errors:
        logger.warning(f"{len(result.errors)} record(s) rejected during validation")
    for warning in result.warnings[:10]:
        logger.debug(f"Validation warning: {warning}")

    return {
        "import_result": result,
        "last_error": None
    }
