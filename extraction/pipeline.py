"""
BOQ Extraction Pipeline

Glyphs -> lines -> strategies (orchestrated) -> validation/dedup ->
confidence. ``BOQExtractor`` is the entry point; everything stateful it
needs (cache, cancellation token, mapping profile, settings) comes in
through an explicit ExtractionContext.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .column_segmenter import column_texts
from .confidence import score_items
from .config import BOQExtractConfig
from .errors import NoStructuredDataError
from .field_matcher import looks_like_header_row
from .format_detector import BOQFormat, detect_boq_format, detect_language
from .incremental import CancellationToken, IncrementalPageLoader, ProgressEvent
from .line_reconstructor import lines_to_text, reconstruct_lines
from .mapping_profiles import MappingProfile
from .models import ExtractedTable, LineItem, PositionedGlyph, StrategyId, TextLine
from .orchestrator import OrchestrationOutcome, StrategyAttempt, StrategyOrchestrator
from .page_cache import FileIdentity, PageCache
from .statistics import calculate_statistics, cost_distribution, identify_outliers
from .strategies import ExtractionStrategy, default_strategies
from .text_layer import PyMuPDFTextLayer, TextLayer
from .validator import validate_items
from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)

NO_STRUCTURED_DATA = "No structured data found in document"


@dataclass
class ImportResult:
    """Items plus everything a caller needs to decide whether to import them."""
    items: List[LineItem] = field(default_factory=list)
    table_confidence: float = 0.0
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    # Diagnostics
    strategy: Optional[StrategyId] = None
    attempts: List[StrategyAttempt] = field(default_factory=list)
    tables: List[ExtractedTable] = field(default_factory=list)
    line_count: int = 0
    page_count: int = 0
    failed_pages: List[int] = field(default_factory=list)
    language: str = "en"
    boq_format: BOQFormat = BOQFormat.STANDARD
    duplicates_removed: int = 0

    @property
    def success(self) -> bool:
        return bool(self.items) and not self.errors

    @property
    def no_structured_data(self) -> bool:
        return NO_STRUCTURED_DATA in self.errors

    def raise_for_failure(self) -> None:
        """Raise NoStructuredDataError when nothing could be extracted."""
        if self.no_structured_data:
            raise NoStructuredDataError(NO_STRUCTURED_DATA)

    def to_dict(self) -> Dict[str, Any]:
        stats = calculate_statistics(self.items)
        return {
            "items": [item.to_dict() for item in self.items],
            "table_confidence": round(self.table_confidence, 3),
            "errors": self.errors,
            "warnings": self.warnings,
            "diagnostics": {
                "strategy": self.strategy.value if self.strategy else None,
                "attempts": [a.to_dict() for a in self.attempts],
                "tables": [t.to_dict() for t in self.tables],
                "line_count": self.line_count,
                "page_count": self.page_count,
                "failed_pages": self.failed_pages,
                "language": self.language,
                "format": self.boq_format.value,
                "duplicates_removed": self.duplicates_removed,
                "statistics": stats.to_dict(),
                "outliers": [i.item_code for i in identify_outliers(self.items)],
                "cost_distribution": cost_distribution(self.items),
            },
        }


@dataclass
class ExtractionContext:
    """
    Caller-owned collaborators for an extraction run.

    Nothing here is global: pass the same cache to several extractors to
    share decoded pages, or a fresh token per run to cancel it.
    """
    config: BOQExtractConfig = field(default_factory=BOQExtractConfig)
    cache: Optional[PageCache] = None
    profile: Optional[MappingProfile] = None
    token: Optional[CancellationToken] = None
    pool: Optional[WorkerPool] = None


class BOQExtractor:
    """
    Extracts BOQ line items from glyphs, lines or a whole text layer.

    Usage:
        extractor = BOQExtractor(ExtractionContext(cache=PageCache()))
        result = extractor.extract_file("tender.pdf")
        if result.success:
            ...
    """

    def __init__(
        self,
        context: Optional[ExtractionContext] = None,
        strategies: Optional[List[ExtractionStrategy]] = None,
    ):
        self.context = context or ExtractionContext()
        settings = self.context.config.extraction
        self.orchestrator = StrategyOrchestrator(
            strategies if strategies is not None else default_strategies(
                column_gap=settings.column_gap,
                profile=self.context.profile,
            ),
            sufficiency_threshold=settings.sufficiency_threshold,
        )

    @property
    def settings(self):
        return self.context.config.extraction

    def run_strategies(self, lines: List[TextLine]) -> OrchestrationOutcome:
        """Let the orchestrator pick a candidate result."""
        return self.orchestrator.run(lines)

    def finalize(
        self,
        outcome: OrchestrationOutcome,
        lines: List[TextLine],
        page_count: Optional[int] = None,
    ) -> ImportResult:
        """Validate, deduplicate and score the orchestrator's best result."""
        best = outcome.best

        result = ImportResult(
            attempts=outcome.attempts,
            line_count=len(lines),
            page_count=page_count if page_count is not None else len({line.page for line in lines}),
            language=detect_language(lines_to_text(lines)),
            boq_format=self._detect_format(lines),
        )

        if best.item_count == 0:
            result.errors.append(NO_STRUCTURED_DATA)
            return result

        validation = validate_items(best.items)
        result.items = validation.items
        result.errors = validation.errors
        result.warnings = validation.warnings
        result.duplicates_removed = validation.duplicates_removed
        result.strategy = best.strategy_id
        result.tables = best.tables
        result.table_confidence = score_items(result.items, best.tables)

        logger.info(
            f"Extracted {len(result.items)} items with {best.strategy_id.value} "
            f"(confidence {result.table_confidence:.0%})"
        )
        return result

    def extract_lines(self, lines: List[TextLine], page_count: Optional[int] = None) -> ImportResult:
        """Run strategies, validation and scoring over reconstructed lines."""
        return self.finalize(self.run_strategies(lines), lines, page_count)

    def extract_glyphs(self, glyphs: Iterable[PositionedGlyph]) -> ImportResult:
        """Reconstruct lines from raw glyphs, then extract."""
        lines = reconstruct_lines(
            glyphs,
            tolerance=self.settings.line_tolerance,
            max_pages=self.settings.max_pages,
        )
        return self.extract_lines(lines)

    def stream_layer(self, layer: TextLayer, file: Optional[FileIdentity] = None) -> Iterator[ProgressEvent]:
        """
        Extract from a text layer, yielding progress as it goes.

        Page events come first, then one event per pipeline stage. The last
        event has ``is_complete`` set and carries the ImportResult.

        Raises:
            ExtractionCancelledError: the context token was cancelled
        """
        token = self.context.token
        loader = IncrementalPageLoader(
            cache=self.context.cache if self.settings.use_cache else None,
            max_pages=self.settings.max_pages,
        )

        document = None
        for event in loader.stream(layer, file, token):
            if event.is_complete:
                document = event.result
            else:
                yield event

        if token is not None:
            token.raise_if_cancelled()

        lines = reconstruct_lines(document.glyphs, tolerance=self.settings.line_tolerance)
        yield ProgressEvent(stage="lines", progress=1.0, message=f"Reconstructed {len(lines)} lines",
                            total_pages=document.pages_loaded)

        result = self.extract_lines(lines, page_count=document.pages_loaded)
        result.failed_pages = document.failed_pages
        if document.failed_pages:
            result.warnings.append(
                f"Pages could not be decoded: {', '.join(str(p) for p in document.failed_pages)}"
            )

        yield ProgressEvent(
            stage="complete",
            current_page=document.pages_loaded,
            total_pages=document.pages_loaded,
            progress=1.0,
            message=f"{len(result.items)} items extracted",
            is_complete=True,
            result=result,
        )

    def extract_layer(self, layer: TextLayer, file: Optional[FileIdentity] = None) -> ImportResult:
        result = None
        for event in self.stream_layer(layer, file):
            if event.is_complete:
                result = event.result
        return result

    def extract_file(self, pdf_path: str) -> ImportResult:
        """Open a PDF with PyMuPDF and extract it."""
        with PyMuPDFTextLayer(pdf_path) as layer:
            return self.extract_layer(layer, FileIdentity.from_path(pdf_path))

    def _detect_format(self, lines: List[TextLine]) -> BOQFormat:
        for line in lines:
            cells = column_texts(line.glyphs, self.settings.column_gap)
            if len(cells) >= 2 and looks_like_header_row(cells):
                return detect_boq_format(cells)
        return BOQFormat.STANDARD
