"""
Workflow State Schema for BOQ Extraction Agent
Defines the state that flows through the LangGraph workflow.
"""

from typing import TypedDict, List, Optional, Dict, Any
from datetime import datetime

from langchain_core.runnables import RunnableConfig

from extraction import ExtractionContext
from extraction.models import PositionedGlyph, TextLine
from extraction.orchestrator import OrchestrationOutcome
from extraction.pipeline import ImportResult


class FileResult(TypedDict):
    """Result from processing a single document."""
    filename: str
    filepath: str
    success: bool
    page_count: int
    items_count: int
    total_value: float
    strategy: Optional[str]
    table_confidence: float
    report_path: Optional[str]
    errors: List[str]
    attempts: List[Dict[str, Any]]     # Strategy attempt log, when extraction ran


class ExtractionState(TypedDict):
    """
    State schema for the BOQ extraction workflow.

    This state is passed between nodes in the LangGraph workflow.
    Collaborators that are not data (page cache, cancellation token,
    mapping profile) travel in the run config, not here.
    """

    # ========================
    # Input Configuration
    # ========================
    input_path: str                    # PDF file or folder path
    output_path: str                   # Output directory for reports

    # ========================
    # Progress Tracking
    # ========================
    current_file: Optional[str]        # Current PDF being processed
    files_pending: List[str]           # PDFs not yet processed
    files_completed: List[str]         # Successfully processed filenames
    files_failed: List[FileResult]     # Failed files with error info

    # ========================
    # Per-File Intermediate Data
    # ========================
    # These are cleared between files
    glyphs: Optional[List[PositionedGlyph]]        # From load_pages node
    page_count: int                                # Pages loaded from current file
    failed_pages: List[int]                        # Pages replaced by placeholders
    lines: Optional[List[TextLine]]                # From extract_items node
    outcome: Optional[OrchestrationOutcome]        # Strategy selection
    import_result: Optional[ImportResult]          # From validate_items node
    report_path: Optional[str]                     # Path to generated JSON report

    # ========================
    # Error Handling
    # ========================
    last_error: Optional[str]          # Most recent error message

    # ========================
    # Batch Summary
    # ========================
    total_items: int                   # Items across all files
    total_value: float                 # Sum of item totals across all files
    total_pages: int                   # Pages analyzed across all files
    master_summary: Optional[Dict]     # Final batch summary data

    # ========================
    # Timing
    # ========================
    start_time: Optional[str]          # ISO timestamp when run started
    end_time: Optional[str]            # ISO timestamp when run completed


PER_FILE_RESET: Dict[str, Any] = {
    "glyphs": None,
    "page_count": 0,
    "failed_pages": [],
    "lines": None,
    "outcome": None,
    "import_result": None,
    "report_path": None,
    "last_error": None,
}


def create_initial_state(input_path: str, output_path: str) -> ExtractionState:
    """
    Create initial state for a new workflow run.

    Args:
        input_path: PDF file or folder to process
        output_path: Directory for output reports

    Returns:
        Initialized ExtractionState
    """
    return ExtractionState(
        # Input
        input_path=input_path,
        output_path=output_path,

        # Progress
        current_file=None,
        files_pending=[],
        files_completed=[],
        files_failed=[],

        # Per-file data
        **PER_FILE_RESET,

        # Batch summary
        total_items=0,
        total_value=0.0,
        total_pages=0,
        master_summary=None,

        # Timing
        start_time=datetime.now().isoformat(),
        end_time=None,
    )


def get_context(config: Optional[RunnableConfig]) -> ExtractionContext:
    """Extraction context passed in ``config["configurable"]["context"]``."""
    configurable = (config or {}).get("configurable", {})
    context = configurable.get("context")
    return context if context is not None else ExtractionContext()


def get_state_summary(state: ExtractionState) -> Dict[str, Any]:
    """
    Get a summary of current state for logging/debugging.
    """
    return {
        "current_file": state.get("current_file"),
        "files_pending": len(state.get("files_pending", [])),
        "files_completed": len(state.get("files_completed", [])),
        "files_failed": len(state.get("files_failed", [])),
        "total_items": state.get("total_items", 0),
        "last_error": state.get("last_error"),
    }
