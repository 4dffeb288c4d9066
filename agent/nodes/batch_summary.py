"""
Batch Summary and Document Scanning
Finds the documents to process and aggregates results across them.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

from langchain_core.runnables import RunnableConfig

from ..state import ExtractionState

logger = logging.getLogger(__name__)


def find_documents(input_path: str):
    """PDF files under a folder (non-recursive), or the file itself."""
    path = Path(input_path)
    if path.is_file():
        return [path] if path.suffix.lower() == '.pdf' else []
    if path.is_dir():
        pdf_files = [p for p in path.iterdir() if p.is_file() and p.suffix.lower() == '.pdf']
        # Sort by name for consistent ordering
        return sorted(pdf_files, key=lambda p: p.name.lower())
    return []


def scan_documents_node(state: ExtractionState) -> Dict[str, Any]:
    """
    Scan input path and identify all PDFs to process.

    This is the START node that initializes the file list.

    Args:
        state: Current workflow state

    Returns:
        State updates with files_pending
    """
    input_path = state.get("input_path", "")

    if not input_path:
        return {
            "last_error": "No input path specified",
            "files_pending": []
        }

    path = Path(input_path)
    if not path.exists():
        return {
            "last_error": f"Path does not exist: {input_path}",
            "files_pending": []
        }

    documents = find_documents(input_path)
    if not documents:
        reason = f"Not a PDF file: {path}" if path.is_file() else f"No PDF files found in: {path}"
        return {
            "last_error": reason,
            "files_pending": []
        }

    file_paths = [str(p) for p in documents]
    logger.info(f"Found {len(file_paths)} document(s) in {path}")

    return {
        "files_pending": file_paths,
        "current_file": file_paths[0],
        "last_error": None
    }


def batch_summary_node(state: ExtractionState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
    """
    Generate master summary for batch processing.

    Steps:
    1. Aggregate results across all processed files
    2. Calculate batch statistics
    3. Write batch_summary.json (unless the run config sets
       ``write_summary`` to False, as parallel per-file runs do)

    Args:
        state: Current workflow state
        config: Run config

    Returns:
        State updates with master_summary, end_time
    """
    output_path = state.get("output_path", "")
    files_completed = state.get("files_completed", [])
    files_failed = state.get("files_failed", [])
    start_time = state.get("start_time")
    write_summary = (config or {}).get("configurable", {}).get("write_summary", True)

    logger.info(f"Generating batch summary: {len(files_completed)} successful, {len(files_failed)} failed")

    end_time = datetime.now()
    start_dt = datetime.fromisoformat(start_time) if start_time else end_time
    processing_time = (end_time - start_dt).total_seconds()

    summary_data = {
        "run_datetime": start_time or end_time.isoformat(),
        "input_path": state.get("input_path", ""),
        "output_folder": output_path,
        "statistics": {
            "total_files": len(files_completed) + len(files_failed),
            "successful_files": len(files_completed),
            "failed_files": len(files_failed),
            "total_pages_analyzed": state.get("total_pages", 0),
            "total_items": state.get("total_items", 0),
            "total_value": round(state.get("total_value", 0.0), 2),
            "processing_time_seconds": round(processing_time, 2)
        },
        "files_completed": files_completed,
        "files_failed": files_failed
    }

    # A scan error (nothing to process) stays visible to the caller
    last_error = None if (files_completed or files_failed) else state.get("last_error")

    if not output_path or not write_summary:
        return {
            "master_summary": summary_data,
            "end_time": end_time.isoformat(),
            "last_error": last_error
        }

    try:
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)
        json_path = output_dir / "batch_summary.json"
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(summary_data, f, indent=2, ensure_ascii=False)

        logger.info(f"Batch summary saved: {json_path}")

        return {
            "master_summary": summary_data,
            "end_time": end_time.isoformat(),
            "last_error": last_error
        }

    except OSError as e:
        logger.error(f"Batch summary failed: {e}")
        return {
            "master_summary": summary_data,
            "end_time": end_time.isoformat(),
            "last_error": f"Batch summary generation failed: {str(e)}"
        }
