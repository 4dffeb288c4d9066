# Conditional edges
from .error_handler import (
    route_after_scan,
    route_after_load,
    route_after_extraction,
    route_after_report,
    mark_file_failed,
    advance_to_next_file,
)

__all__ = [
    "route_after_scan",
    "route_after_load",
    "route_after_extraction",
    "route_after_report",
    "mark_file_failed",
    "advance_to_next_file",
]
