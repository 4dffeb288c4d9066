"""
Node 1: Page Loading
Reads positioned glyphs from the current PDF page by page.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional

from langchain_core.runnables import RunnableConfig

from extraction.errors import ExtractionCancelledError
from extraction.incremental import IncrementalPageLoader
from extraction.page_cache import FileIdentity
from extraction.text_layer import PyMuPDFTextLayer

from ..state import ExtractionState, get_context

logger = logging.getLogger(__name__)


def load_pages_node(state: ExtractionState, config: Optional[RunnableConfig] = None) -> Dict[str, Any]:
    """
    Load glyphs from the current PDF.

    Pages that fail to decode become placeholders; only a document that
    cannot be opened at all fails the node. Cancellation propagates.

    Args:
        state: Current workflow state
        config: Run config carrying the extraction context

    Returns:
        State updates with glyphs, page_count, failed_pages, or last_error
    """
    current_file = state.get("current_file")
    if not current_file:
        return {"last_error": "No file specified for extraction"}

    pdf_path = Path(current_file)
    if not pdf_path.exists():
        logger.error(f"File not found: {pdf_path}")
        return {"last_error": f"File not found: {pdf_path}"}

    context = get_context(config)
    settings = context.config.extraction
    loader = IncrementalPageLoader(
        cache=context.cache if settings.use_cache else None,
        max_pages=settings.max_pages,
    )

    logger.info(f"Loading pages from: {pdf_path.name}")

    try:
        with PyMuPDFTextLayer(str(pdf_path)) as layer:
            document = None
            for event in loader.stream(layer, FileIdentity.from_path(str(pdf_path)), context.token):
                if event.is_complete:
                    document = event.result
                else:
                    logger.debug(event.message)
    except ExtractionCancelledError:
        raise
    except Exception as e:
        logger.error(f"Could not open {pdf_path.name}: {e}")
        return {"last_error": f"Could not open document: {str(e)}"}

    if document.failed_pages:
        logger.warning(f"{len(document.failed_pages)} page(s) failed to decode: {document.failed_pages}")

    logger.info(
        f"Loaded {len(document.glyphs)} glyphs from {document.pages_loaded} pages "
        f"({document.cached_pages} cached)"
    )

    return {
        "glyphs": document.glyphs,
        "page_count": document.pages_loaded,
        "failed_pages": document.failed_pages,
        "last_error": None
    }
