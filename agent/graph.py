"""
LangGraph Workflow Definition
Wires together nodes and edges for the BOQ extraction agent.
"""

import logging
import uuid
from pathlib import Path
from typing import Dict, Any, List, Optional, Iterator, Tuple

from langgraph.graph import StateGraph, END
from langgraph.checkpoint.memory import MemorySaver

from extraction.errors import ExtractionCancelledError
from extraction.pipeline import ExtractionContext
from extraction.worker_pool import PoolTask, TaskStatus, WorkerPool

from .state import ExtractionState, create_initial_state, get_state_summary
from .nodes import (
    scan_documents_node,
    load_pages_node,
    extract_items_node,
    validate_items_node,
    generate_report_node,
    batch_summary_node,
    find_documents,
)
from .edges import (
    route_after_scan,
    route_after_load,
    route_after_extraction,
    route_after_report,
    mark_file_failed,
    advance_to_next_file,
)

logger = logging.getLogger(__name__)

# Each file visits at most 6 nodes, so 250 handles ~40 files
RECURSION_LIMIT = 250


def create_extraction_graph(checkpointer: Optional[MemorySaver] = None) -> StateGraph:
    """
    Create the LangGraph workflow for BOQ extraction.

    Graph structure:
    ```
    START (scan_documents)
        │
        ▼
    load_pages ◄──────────────┐
        │ extract   │ skip    │
        ▼           ▼         │
    extract_items  mark_failed┤
        │ validate  ▲         │
        ▼           │ skip    │
    validate_items  │         │
        │           │         │
        ▼           │         │
    generate_report─┘         │
        │                     │
    [route_after_report]      │
        │ next_file           │
        ▼                     │
    advance_file ─────────────┘
        │ summary
        ▼
    batch_summary
        │
        ▼
       END
    ```

    Args:
        checkpointer: Optional checkpointer for state persistence

    Returns:
        Compiled StateGraph
    """

    # Create the graph with our state schema
    workflow = StateGraph(ExtractionState)

    # ========================
    # Add Nodes
    # ========================

    # START: Scan for PDFs
    workflow.add_node("scan_documents", scan_documents_node)

    # Node 1: Load glyphs page by page
    workflow.add_node("load_pages", load_pages_node)

    # Node 2: Lines + strategy orchestration
    workflow.add_node("extract_items", extract_items_node)

    # Node 3: Validation, dedup, confidence
    workflow.add_node("validate_items", validate_items_node)

    # Node 4: JSON report
    workflow.add_node("generate_report", generate_report_node)

    # Skip helper: Mark file as failed
    workflow.add_node("mark_failed", mark_file_failed)

    # File transition: Advance to next file
    workflow.add_node("advance_file", advance_to_next_file)

    # Node 5: Batch summary
    workflow.add_node("batch_summary", batch_summary_node)

    # ========================
    # Add Edges
    # ========================

    # Entry point
    workflow.set_entry_point("scan_documents")

    workflow.add_conditional_edges(
        "scan_documents",
        route_after_scan,
        {
            "load": "load_pages",
            "summary": "batch_summary"
        }
    )

    workflow.add_conditional_edges(
        "load_pages",
        route_after_load,
        {
            "extract": "extract_items",
            "skip": "mark_failed"
        }
    )

    workflow.add_conditional_edges(
        "extract_items",
        route_after_extraction,
        {
            "validate": "validate_items",
            "skip": "mark_failed"
        }
    )

    workflow.add_edge("validate_items", "generate_report")

    workflow.add_conditional_edges(
        "generate_report",
        route_after_report,
        {
            "next_file": "advance_file",
            "summary": "batch_summary",
            "skip": "mark_failed"
        }
    )

    # After marking failed, check if more files
    workflow.add_conditional_edges(
        "mark_failed",
        lambda state: "next_file" if state.get("current_file") else "summary",
        {
            "next_file": "load_pages",
            "summary": "batch_summary"
        }
    )

    workflow.add_edge("advance_file", "load_pages")

    # Batch summary is the end
    workflow.add_edge("batch_summary", END)

    # Compile the graph
    if checkpointer:
        return workflow.compile(checkpointer=checkpointer)
    return workflow.compile()


def _run_config(
    context: ExtractionContext,
    enable_checkpoints: bool,
    thread_prefix: str,
    write_summary: bool = True,
) -> Dict[str, Any]:
    configurable = {"context": context, "write_summary": write_summary}
    if enable_checkpoints:
        configurable["thread_id"] = f"{thread_prefix}-{uuid.uuid4().hex[:8]}"
    return {
        "configurable": configurable,
        "recursion_limit": RECURSION_LIMIT
    }


def run_extraction_workflow(
    input_path: str,
    output_path: str,
    context: Optional[ExtractionContext] = None,
    enable_checkpoints: bool = False,
    write_summary: bool = True,
) -> Dict[str, Any]:
    """
    Run the complete extraction workflow.

    Args:
        input_path: PDF file or folder path
        output_path: Directory for output reports
        context: Cache, cancellation token, mapping profile and settings
        enable_checkpoints: Enable state persistence
        write_summary: Write batch_summary.json at the end

    Returns:
        Final workflow state with results

    Raises:
        ExtractionCancelledError: the context token was cancelled
    """
    context = context or ExtractionContext()

    # Create checkpointer if enabled
    checkpointer = MemorySaver() if enable_checkpoints else None

    graph = create_extraction_graph(checkpointer)
    initial_state = create_initial_state(input_path=input_path, output_path=output_path)
    config = _run_config(context, enable_checkpoints, "boq", write_summary)

    logger.info(f"Starting extraction workflow: {input_path} -> {output_path}")

    try:
        final_state = graph.invoke(initial_state, config)
        logger.info("Workflow completed successfully")
        logger.debug(f"Final state: {get_state_summary(final_state)}")
        return final_state
    except Exception as e:
        logger.error(f"Workflow failed: {e}")
        raise


def stream_extraction_workflow(
    input_path: str,
    output_path: str,
    context: Optional[ExtractionContext] = None,
    enable_checkpoints: bool = False,
) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Stream the extraction workflow, yielding progress updates after each node.

    Args:
        input_path: PDF file or folder path
        output_path: Directory for output reports
        context: Cache, cancellation token, mapping profile and settings
        enable_checkpoints: Enable state persistence

    Yields:
        Tuple of (node_name, state_update_dict) after each node executes
    """
    context = context or ExtractionContext()
    checkpointer = MemorySaver() if enable_checkpoints else None

    graph = create_extraction_graph(checkpointer)
    initial_state = create_initial_state(input_path=input_path, output_path=output_path)
    config = _run_config(context, enable_checkpoints, "boq-stream")

    logger.info(f"Starting extraction workflow (streaming): {input_path} -> {output_path}")

    try:
        # "updates" mode yields {node_name: state_update} after each node
        for update in graph.stream(initial_state, config, stream_mode="updates"):
            if update:
                node_name = list(update.keys())[0]
                yield (node_name, update[node_name] or {})

        logger.info("Workflow streaming completed successfully")

    except Exception as e:
        logger.error(f"Workflow streaming failed: {e}")
        raise


def process_document(task: PoolTask) -> Dict[str, Any]:
    """WorkerPool processor: run the workflow for one queued document."""
    return run_extraction_workflow(
        str(task.source),
        task.options["output_path"],
        context=task.options.get("context"),
        write_summary=False,
    )


def run_parallel_extraction(
    input_path: str,
    output_path: str,
    context: Optional[ExtractionContext] = None,
    max_workers: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Process each document of a folder in its own workflow run, spread
    over a WorkerPool, then write one combined batch summary.

    The page cache, token and profile in ``context`` are shared by all
    workers. When ``context.pool`` is set (a pool built around
    ``process_document``) the documents are queued on it and the pool is
    left running; otherwise a pool is created for this call.

    Args:
        input_path: PDF file or folder path
        output_path: Directory for output reports
        context: Shared extraction context
        max_workers: Pool size for a pool created here (defaults to the
            configured pool size)

    Returns:
        Combined state with files_completed, files_failed, totals and
        master_summary

    Raises:
        ExtractionCancelledError: If the context token was cancelled
    """
    context = context or ExtractionContext()
    pool_settings = context.config.pool
    documents = find_documents(input_path)

    combined = create_initial_state(input_path=input_path, output_path=output_path)
    if not documents:
        combined["last_error"] = f"No PDF files found in: {input_path}"

    pool = context.pool
    owns_pool = pool is None
    if owns_pool:
        workers = max_workers if max_workers is not None else pool_settings.max_workers
        pool = WorkerPool(process_document, max_workers=workers, failure_threshold=pool_settings.failure_threshold)
    logger.info(f"Parallel extraction of {len(documents)} document(s) with {pool.max_workers} workers")

    try:
        options = {"output_path": output_path, "context": context}
        task_ids = [
            pool.add_task(doc, priority=pool_settings.default_priority, options=options)
            for doc in documents
        ]
        pool.wait_all()
        tasks = [pool.get_task(task_id) for task_id in task_ids]
    finally:
        if owns_pool:
            pool.shutdown()

    cancelled = [task for task in tasks if task.status == TaskStatus.CANCELLED]
    if cancelled or (context.token is not None and context.token.cancelled):
        logger.info(f"Parallel extraction cancelled ({len(cancelled)} of {len(tasks)} documents)")
        raise ExtractionCancelledError("Extraction cancelled")

    files_completed: List[str] = []
    files_failed: List[Dict[str, Any]] = []
    for task in tasks:
        if task.status == TaskStatus.COMPLETED:
            state = task.result
            files_completed.extend(state.get("files_completed", []))
            files_failed.extend(state.get("files_failed", []))
            combined["total_items"] += state.get("total_items", 0)
            combined["total_value"] += state.get("total_value", 0.0)
            combined["total_pages"] += state.get("total_pages", 0)
        else:
            files_failed.append({
                "filename": Path(task.source).name,
                "filepath": str(task.source),
                "success": False,
                "page_count": 0,
                "items_count": 0,
                "total_value": 0.0,
                "strategy": None,
                "table_confidence": 0.0,
                "report_path": None,
                "errors": [task.error or task.status.value],
                "attempts": [],
            })

    combined["files_completed"] = files_completed
    combined["files_failed"] = files_failed
    combined.update(batch_summary_node(combined))
    return combined


def get_workflow_visualization() -> str:
    """
    Get ASCII visualization of the workflow graph.

    Returns:
        ASCII art representation of the graph
    """
    return """
    BOQ Extraction Workflow
    =======================

                    ┌────────────────┐
                    │ scan_documents │
                    │    (START)     │
                    └───────┬────────┘
                            │
              ┌─────────────▼────────────┐
              │        load_pages        │◄────────────┐
              │ (glyphs, cache, cancel)  │             │
              └─────────────┬────────────┘             │
                            │                          │
                 ┌──────────┴──────────┐               │
              extract                skip              │
                 │                     │               │
                 ▼                     ▼               │
        ┌────────────────┐      ┌─────────────┐        │
        │ extract_items  │─skip►│ mark_failed │────────┤
        │ (lines +       │      └─────────────┘        │
        │  strategies)   │             ▲               │
        └───────┬────────┘             │               │
                │ validate             │               │
                ▼                      │               │
        ┌────────────────┐             │               │
        │ validate_items │             │               │
        │ (dedup, score) │             │               │
        └───────┬────────┘             │               │
                │                      │               │
                ▼                      │               │
        ┌────────────────┐             │               │
        │generate_report │─────skip────┘               │
        │ (<stem>_boq)   │                             │
        └───────┬────────┘                             │
                │                                      │
         ┌──────┴──────┐                               │
     next_file      summary                            │
         │             │                               │
         ▼             │                               │
    ┌──────────┐       │                               │
    │ advance  │───────┼───────────────────────────────┘
    │   file   │       │
    └──────────┘       ▼
               ┌──────────────┐
               │    batch     │
               │   summary    │
               └──────┬───────┘
                      │
                      ▼
                   ┌─────┐
                   │ END │
                   └─────┘
    """
