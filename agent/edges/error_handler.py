"""
Error Handling Edges
Conditional routing logic for failed documents and file transitions.
"""

import logging
from typing import Literal
from pathlib import Path

from ..state import ExtractionState, PER_FILE_RESET

logger = logging.getLogger(__name__)


def route_after_scan(state: ExtractionState) -> Literal["load", "summary"]:
    """
    Route after scanning: process the first document, or go straight to
    the summary when nothing was found.
    """
    if state.get("current_file"):
        return "load"
    logger.error(f"Nothing to process: {state.get('last_error')}")
    return "summary"


def route_after_load(state: ExtractionState) -> Literal["extract", "skip"]:
    """
    Route after page loading.

    Decision logic:
    - If the document opened: continue to extraction (even with zero
      glyphs; the extractor reports "no structured data")
    - If it could not be opened: skip to next file

    Args:
        state: Current workflow state

    Returns:
        Next node: "extract" or "skip"
    """
    if state.get("last_error") or state.get("glyphs") is None:
        logger.error(f"Loading failed, skipping file: {state.get('last_error')}")
        return "skip"

    logger.debug("Pages loaded, routing to extraction")
    return "extract"


def route_after_extraction(state: ExtractionState) -> Literal["validate", "skip"]:
    """
    Route after strategy selection.

    Decision logic:
    - If a strategy produced items: continue to validation
    - If every strategy came up empty: skip to next file

    Args:
        state: Current workflow state

    Returns:
        Next node: "validate" or "skip"
    """
    outcome = state.get("outcome")
    if state.get("last_error") or outcome is None or outcome.best.item_count == 0:
        logger.error(f"Extraction failed, skipping file: {state.get('last_error')}")
        return "skip"
    return "validate"


def route_after_report(state: ExtractionState) -> Literal["next_file", "summary", "skip"]:
    """
    Route after report generation to next file or batch summary.

    Decision logic:
    - If the report could not be written: mark the file failed
    - If more files pending: process next file
    - If no more files: generate batch summary

    Args:
        state: Current workflow state

    Returns:
        Next node: "next_file", "summary" or "skip"
    """
    if state.get("last_error"):
        return "skip"

    files_pending = state.get("files_pending", [])

    if len(files_pending) > 1:
        # More files to process (current file is still in list)
        logger.info(f"{len(files_pending) - 1} files remaining")
        return "next_file"

    logger.info("All files processed, generating summary")
    return "summary"


def mark_file_failed(state: ExtractionState) -> dict:
    """
    Mark current file as failed and prepare for next file.

    Args:
        state: Current workflow state

    Returns:
        State updates with file added to failed list
    """
    current_file = state.get("current_file", "")
    last_error = state.get("last_error") or "Unknown error"
    files_pending = state.get("files_pending", [])
    files_failed = state.get("files_failed", [])
    outcome = state.get("outcome")

    failed_result = {
        "filename": Path(current_file).name if current_file else "Unknown",
        "filepath": current_file,
        "success": False,
        "page_count": state.get("page_count", 0),
        "items_count": 0,
        "total_value": 0.0,
        "strategy": None,
        "table_confidence": 0.0,
        "report_path": None,
        "errors": [last_error],
        "attempts": [a.to_dict() for a in outcome.attempts] if outcome else [],
    }

    new_pending = [f for f in files_pending if f != current_file]

    logger.warning(f"File marked as failed: {current_file}")

    return {
        "files_failed": files_failed + [failed_result],
        "files_pending": new_pending,
        "current_file": new_pending[0] if new_pending else None,
        **PER_FILE_RESET,
    }


def advance_to_next_file(state: ExtractionState) -> dict:
    """
    Move to the next file in the pending list.

    Totals and files_completed are already updated by generate_report_node.

    Args:
        state: Current workflow state

    Returns:
        State updates with next file as current
    """
    current_file = state.get("current_file", "")
    files_pending = state.get("files_pending", [])

    new_pending = [f for f in files_pending if f != current_file]

    logger.info(f"File completed: {current_file}")

    return {
        "files_pending": new_pending,
        "current_file": new_pending[0] if new_pending else None,
        **PER_FILE_RESET,
    }
