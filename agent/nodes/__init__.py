# Workflow nodes
from .load_pages import load_pages_node
from .extract_items import extract_items_node
from .validate_items import validate_items_node
from .generate_report import generate_report_node
from .batch_summary import batch_summary_node, scan_documents_node, find_documents

__all__ = [
    "load_pages_node",
    "extract_items_node",
    "validate_items_node",
    "generate_report_node",
    "batch_summary_node",
    "scan_documents_node",
    "find_documents",
]
