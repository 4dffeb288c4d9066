"""
Incremental Page Loading

Pulls glyphs from a text layer one page at a time. Between pages the
caller's cancellation token is checked; progress is reported as a stream
of events rather than through callbacks. Pages that fail to decode are
replaced by a placeholder line and loading carries on.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from .errors import ExtractionCancelledError
from .models import PositionedGlyph
from .page_cache import FileIdentity, PageCache
from .text_layer import TextLayer

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 20


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExtractionCancelledError("Extraction cancelled")


@dataclass
class ProgressEvent:
    """One step of progress; the final event of a stream carries the result."""
    stage: str
    current_page: int = 0
    total_pages: int = 0
    progress: float = 0.0
    message: str = ""
    is_complete: bool = False
    result: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "current_page": self.current_page,
            "total_pages": self.total_pages,
            "progress": round(self.progress, 3),
            "message": self.message,
            "is_complete": self.is_complete,
        }


@dataclass
class PageMetrics:
    """Timing and outcome for one page."""
    page_number: int
    elapsed_ms: float
    glyph_count: int
    success: bool
    from_cache: bool = False
    error: Optional[str] = None

    @property
    def glyphs_per_second(self) -> float:
        if self.elapsed_ms <= 0:
            return 0.0
        return self.glyph_count / (self.elapsed_ms / 1000)


@dataclass
class LoadedDocument:
    """All glyphs gathered from the loaded pages."""
    glyphs: List[PositionedGlyph]
    total_pages: int
    pages_loaded: int
    failed_pages: List[int] = field(default_factory=list)
    metrics: List[PageMetrics] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.pages_loaded == 0:
            return 0.0
        return (self.pages_loaded - len(self.failed_pages)) / self.pages_loaded

    @property
    def cached_pages(self) -> int:
        return sum(1 for m in self.metrics if m.from_cache)


def placeholder_glyph(page_number: int) -> PositionedGlyph:
    return PositionedGlyph(
        text=f"[Page {page_number} extraction failed]",
        x0=0.0, y0=0.0, x1=0.0, y1=0.0,
        page=page_number,
    )


class IncrementalPageLoader:
    """
    Sequential, cancellable page loader.

    Args:
        cache: Optional caller-owned page cache
        max_pages: Stop after this many pages (None for no limit)
    """

    def __init__(self, cache: Optional[PageCache] = None, max_pages: Optional[int] = DEFAULT_MAX_PAGES):
        self.cache = cache
        self.max_pages = max_pages

    def stream(
        self,
        layer: TextLayer,
        file: Optional[FileIdentity] = None,
        token: Optional[CancellationToken] = None,
    ) -> Iterator[ProgressEvent]:
        """
        Yield a progress event per page, then a final event whose
        ``result`` is the LoadedDocument.

        Raises:
            ExtractionCancelledError: token cancelled between pages; nothing
                loaded so far is returned
        """
        total = layer.page_count
        pages = min(total, self.max_pages) if self.max_pages is not None else total
        if pages < total:
            logger.info(f"Limiting extraction to {pages} of {total} pages")

        glyphs: List[PositionedGlyph] = []
        failed: List[int] = []
        metrics: List[PageMetrics] = []

        for page_number in range(1, pages + 1):
            if token is not None:
                token.raise_if_cancelled()

            started = time.perf_counter()
            page_glyphs = self._cached(file, page_number)
            from_cache = page_glyphs is not None
            error = None

            if page_glyphs is None:
                try:
                    page_glyphs = layer.get_page_glyphs(page_number)
                except Exception as e:
                    logger.warning(f"Page {page_number} failed to decode: {e}")
                    error = str(e)
                    failed.append(page_number)
                    page_glyphs = [placeholder_glyph(page_number)]
                else:
                    if self.cache is not None and file is not None:
                        self.cache.put(file, page_number, page_glyphs)

            glyphs.extend(page_glyphs)
            page_metrics = PageMetrics(
                page_number=page_number,
                elapsed_ms=(time.perf_counter() - started) * 1000,
                glyph_count=len(page_glyphs),
                success=error is None,
                from_cache=from_cache,
                error=error,
            )
            metrics.append(page_metrics)
            logger.debug(
                f"Page {page_number}: {page_metrics.glyph_count} glyphs "
                f"({page_metrics.glyphs_per_second:.0f}/s)"
            )

            yield ProgressEvent(
                stage="pages",
                current_page=page_number,
                total_pages=pages,
                progress=page_number / pages,
                message=f"Page {page_number}/{pages}" + (" (cached)" if from_cache else ""),
            )

        yield ProgressEvent(
            stage="pages",
            current_page=pages,
            total_pages=pages,
            progress=1.0,
            message=f"Loaded {pages} pages",
            is_complete=True,
            result=LoadedDocument(
                glyphs=glyphs,
                total_pages=total,
                pages_loaded=pages,
                failed_pages=failed,
                metrics=metrics,
            ),
        )

    def load(
        self,
        layer: TextLayer,
        file: Optional[FileIdentity] = None,
        token: Optional[CancellationToken] = None,
    ) -> LoadedDocument:
        """Run ``stream`` to completion and return the loaded document."""
        document = None
        for event in self.stream(layer, file, token):
            if event.is_complete:
                document = event.result
        return document

    def _cached(self, file: Optional[FileIdentity], page_number: int) -> Optional[List[PositionedGlyph]]:
        if self.cache is None or file is None:
            return None
        return self.cache.get(file, page_number)
