"""
Page Cache

Caller-owned cache of decoded page glyphs, keyed by file identity (name,
byte size, modification time). Entries are never invalidated
automatically: clear them per file or in bulk.
"""

import os
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .models import PositionedGlyph


@dataclass(frozen=True)
class FileIdentity:
    name: str
    size: int
    modified: float

    @classmethod
    def from_path(cls, path: str) -> "FileIdentity":
        stat = os.stat(path)
        return cls(os.path.basename(path), stat.st_size, stat.st_mtime)

    @property
    def key(self) -> str:
        return f"{self.name}-{self.size}-{self.modified}"


class PageCache:
    """Thread-safe so one instance can serve every worker of a pool."""

    def __init__(self):
        self._entries: Dict[FileIdentity, Dict[int, List[PositionedGlyph]]] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, file: FileIdentity, page_number: int) -> Optional[List[PositionedGlyph]]:
        with self._lock:
            glyphs = self._entries.get(file, {}).get(page_number)
            if glyphs is None:
                self.misses += 1
                return None
            self.hits += 1
            return list(glyphs)

    def put(self, file: FileIdentity, page_number: int, glyphs: List[PositionedGlyph]) -> None:
        with self._lock:
            self._entries.setdefault(file, {})[page_number] = list(glyphs)

    def has(self, file: FileIdentity, page_number: Optional[int] = None) -> bool:
        with self._lock:
            pages = self._entries.get(file)
            if pages is None:
                return False
            return page_number is None or page_number in pages

    def clear(self, file: FileIdentity) -> None:
        with self._lock:
            self._entries.pop(file, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "files": len(self._entries),
                "pages": sum(len(p) for p in self._entries.values()),
                "hits": self.hits,
                "misses": self.misses,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
