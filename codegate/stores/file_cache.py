"""Cached file metadata for headers consulted during staleness checks."""

from __future__ import annotations

import os
from typing import Dict, Optional


class FileInfoCache:
    """Memoises ``os.stat`` lookups until :meth:`invalidate` is called.

    The orchestrator invalidates the cache after the generator has run so that
    later steps observe the files it wrote.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Optional[os.stat_result]] = {}

    def stat(self, path: str) -> Optional[os.stat_result]:
        key = os.path.abspath(path)
        if key not in self._entries:
            try:
                self._entries[key] = os.stat(key)
            except FileNotFoundError:
                self._entries[key] = None
        return self._entries[key]

    def mtime(self, path: str) -> Optional[float]:
        info = self.stat(path)
        return info.st_mtime if info is not None else None

    def invalidate(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["FileInfoCache"]
