"""
Extraction Errors

Failure kinds raised by the BOQ extraction pipeline. Page-level decode
failures are recovered locally; cancellation and "no structured data" are
the only kinds a caller is expected to handle.
"""


class BOQExtractionError(Exception):
    """Base class for all extraction failures."""


class ExtractionCancelledError(BOQExtractionError):
    """Raised when a caller cancels an extraction between pages.

    Kept distinct from extraction failure so callers can suppress
    user-facing alarms on intentional cancellation.
    """


class NoStructuredDataError(BOQExtractionError):
    """Raised when every strategy returned zero items."""


class PageDecodeError(BOQExtractionError):
    """A single page could not be decoded by the text layer."""

    def __init__(self, page_number: int, reason: str = ""):
        self.page_number = page_number
        self.reason = reason
        message = f"Page {page_number} could not be decoded"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class MappingProfileError(BOQExtractionError):
    """A column mapping profile could not be loaded or saved."""
