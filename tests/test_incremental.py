"""
Tests for Incremental Page Loading and the Page Cache
"""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from extraction.errors import ExtractionCancelledError, PageDecodeError
from extraction.incremental import CancellationToken, IncrementalPageLoader
from extraction.models import PositionedGlyph
from extraction.page_cache import FileIdentity, PageCache
from extraction.text_layer import StaticTextLayer, TextLayer

FILE = FileIdentity("tender.pdf", 2048, 1700000000.0)


def page_glyph(page):
    return PositionedGlyph(f"page{page}", 40, 700, 70, 710, page)


def static_layer(pages=3):
    return StaticTextLayer({n: [page_glyph(n)] for n in range(1, pages + 1)})


class FlakyLayer(TextLayer):
    """Fails on the listed pages and counts decode calls."""

    def __init__(self, pages, failing=()):
        self.pages = pages
        self.failing = set(failing)
        self.calls = 0

    @property
    def page_count(self):
        return self.pages

    def get_page_glyphs(self, page_number):
        self.calls += 1
        if page_number in self.failing:
            raise PageDecodeError(page_number, "corrupt content stream")
        return [page_glyph(page_number)]


class TestIncrementalPageLoader:
    """Tests for page-by-page loading."""

    def test_loads_every_page(self):
        document = IncrementalPageLoader().load(static_layer(3))
        assert [g.text for g in document.glyphs] == ["page1", "page2", "page3"]
        assert document.pages_loaded == 3
        assert document.failed_pages == []
        assert document.success_rate == 1.0

    def test_events_per_page_then_complete(self):
        events = list(IncrementalPageLoader().stream(static_layer(2)))
        assert [e.current_page for e in events[:-1]] == [1, 2]
        assert not any(e.is_complete for e in events[:-1])
        assert events[-1].is_complete
        assert events[-1].progress == 1.0
        assert events[-1].result.pages_loaded == 2

    def test_failed_page_gets_placeholder(self):
        """A page that fails to decode does not stop the load."""
        document = IncrementalPageLoader().load(FlakyLayer(3, failing={2}))
        assert document.failed_pages == [2]
        assert [g.text for g in document.glyphs] == [
            "page1", "[Page 2 extraction failed]", "page3"
        ]
        assert document.success_rate == pytest.approx(2 / 3)
        assert not document.metrics[1].success

    def test_max_pages(self):
        document = IncrementalPageLoader(max_pages=2).load(static_layer(5))
        assert document.pages_loaded == 2
        assert document.total_pages == 5

    def test_no_page_limit(self):
        document = IncrementalPageLoader(max_pages=None).load(static_layer(25))
        assert document.pages_loaded == 25

    def test_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(ExtractionCancelledError):
            IncrementalPageLoader().load(static_layer(2), token=token)

    def test_cancelled_between_pages(self):
        layer = FlakyLayer(3)
        token = CancellationToken()
        stream = IncrementalPageLoader().stream(layer, token=token)

        first = next(stream)
        assert first.current_page == 1
        token.cancel()
        with pytest.raises(ExtractionCancelledError):
            next(stream)
        assert layer.calls == 1

    def test_second_load_uses_cache(self):
        cache = PageCache()
        layer = FlakyLayer(2)
        loader = IncrementalPageLoader(cache=cache)

        loader.load(layer, FILE)
        document = loader.load(layer, FILE)

        assert layer.calls == 2
        assert document.cached_pages == 2
        assert cache.hits == 2

    def test_failed_pages_not_cached(self):
        cache = PageCache()
        IncrementalPageLoader(cache=cache).load(FlakyLayer(2, failing={1}), FILE)
        assert not cache.has(FILE, 1)
        assert cache.has(FILE, 2)

    def test_empty_document(self):
        document = IncrementalPageLoader().load(StaticTextLayer({}))
        assert document.glyphs == []
        assert document.success_rate == 0.0


class TestPageCache:
    """Tests for the caller-owned page cache."""

    def test_get_put(self):
        cache = PageCache()
        assert cache.get(FILE, 1) is None
        cache.put(FILE, 1, [page_glyph(1)])
        assert cache.get(FILE, 1)[0].text == "page1"
        assert cache.stats() == {"files": 1, "pages": 1, "hits": 1, "misses": 1}

    def test_identity_includes_size_and_mtime(self):
        cache = PageCache()
        cache.put(FILE, 1, [page_glyph(1)])
        changed = FileIdentity(FILE.name, FILE.size + 1, FILE.modified)
        assert cache.get(changed, 1) is None

    def test_clear(self):
        cache = PageCache()
        other = FileIdentity("other.pdf", 10, 1.0)
        cache.put(FILE, 1, [])
        cache.put(other, 1, [])
        cache.clear(FILE)
        assert not cache.has(FILE)
        assert len(cache) == 1

        cache.clear_all()
        assert len(cache) == 0
        assert cache.hits == 0

    def test_from_path(self, tmp_path):
        path = tmp_path / "boq.pdf"
        path.write_bytes(b"%PDF-1.4")
        identity = FileIdentity.from_path(str(path))
        assert identity.name == "boq.pdf"
        assert identity.size == 8
        assert identity.key.startswith("boq.pdf-8-")


class TestStaticTextLayer:

    def test_from_glyphs_groups_pages(self):
        layer = StaticTextLayer.from_glyphs([page_glyph(1), page_glyph(3)])
        assert layer.page_count == 3
        assert layer.get_page_glyphs(2) == []

    def test_out_of_range(self):
        with pytest.raises(PageDecodeError):
            static_layer(1).get_page_glyphs(2)
