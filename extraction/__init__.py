# Bill-of-quantities extraction core
from .config import BOQExtractConfig, load_config
from .errors import (
    BOQExtractionError,
    ExtractionCancelledError,
    MappingProfileError,
    NoStructuredDataError,
    PageDecodeError,
)
from .field_matcher import detect_column_type, infer_column_roles, match_headers
from .incremental import CancellationToken, IncrementalPageLoader, ProgressEvent
from .line_reconstructor import reconstruct_lines
from .mapping_profiles import MappingProfile, MappingProfileStore, apply_profile, suggest_mapping
from .models import (
    ExtractedTable,
    ExtractionResult,
    FieldMapping,
    LineItem,
    PositionedGlyph,
    SemanticField,
    StrategyId,
    TextLine,
)
from .numeric import normalize_digits, normalize_number
from .orchestrator import StrategyOrchestrator
from .page_cache import FileIdentity, PageCache
from .pipeline import BOQExtractor, ExtractionContext, ImportResult
from .text_layer import PyMuPDFTextLayer, StaticTextLayer, TextLayer
from .validator import validate_items
from .worker_pool import WorkerPool

__all__ = [
    "BOQExtractConfig",
    "load_config",
    "BOQExtractionError",
    "ExtractionCancelledError",
    "MappingProfileError",
    "NoStructuredDataError",
    "PageDecodeError",
    "detect_column_type",
    "infer_column_roles",
    "match_headers",
    "CancellationToken",
    "IncrementalPageLoader",
    "ProgressEvent",
    "reconstruct_lines",
    "MappingProfile",
    "MappingProfileStore",
    "apply_profile",
    "suggest_mapping",
    "ExtractedTable",
    "ExtractionResult",
    "FieldMapping",
    "LineItem",
    "PositionedGlyph",
    "SemanticField",
    "StrategyId",
    "TextLine",
    "normalize_digits",
    "normalize_number",
    "StrategyOrchestrator",
    "FileIdentity",
    "PageCache",
    "BOQExtractor",
    "ExtractionContext",
    "ImportResult",
    "PyMuPDFTextLayer",
    "StaticTextLayer",
    "TextLayer",
    "validate_items",
    "WorkerPool",
]
