"""
Node 4: Report Generation
Writes the per-document JSON extraction report.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Any

from ..state import ExtractionState

logger = logging.getLogger(__name__)


def generate_report_node(state: ExtractionState) -> Dict[str, Any]:
    """
    Generate the JSON report for the current document.

    Steps:
    1. Load the import result from state
    2. Build the report structure
    3. Save it to the output directory
    4. Update batch totals

    Args:
        state: Current workflow state

    Returns:
        State updates with report_path, updated totals, or last_error
    """
    current_file = state.get("current_file", "")
    output_path = state.get("output_path", "")
    result = state.get("import_result")
    page_count = state.get("page_count", 0)

    # Step 1: Validate inputs
    if not output_path:
        logger.error("No output path specified")
        return {"last_error": "No output path specified"}

    if not current_file or result is None:
        logger.error("No extraction result in state")
        return {"last_error": "No extraction result to report"}

    total_value = sum(item.total_price for item in result.items)
    logger.info(f"Generating report: {len(result.items)} items, {total_value:,.2f} total")

    try:
        # Step 2: Build report data
        report_data = {
            "source": {
                "filename": Path(current_file).name,
                "filepath": current_file,
                "pages": page_count,
            },
            **result.to_dict(),
        }

        # Step 3: Save JSON report
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)
        report_path = output_dir / f"{Path(current_file).stem}_boq.json"

        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)

        logger.info(f"JSON report saved: {report_path}")

    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Report generation failed: {e}")
        return {"last_error": f"Report generation failed: {str(e)}"}

    # Step 4: Return updates including batch totals
    return {
        "report_path": str(report_path),
        "last_error": None,
        "total_items": state.get("total_items", 0) + len(result.items),
        "total_value": state.get("total_value", 0.0) + total_value,
        "total_pages": state.get("total_pages", 0) + page_count,
        "files_completed": state.get("files_completed", []) + [current_file],
    }
