"""Persistent and in-memory stores used between generation runs."""

from .file_cache import FileInfoCache
from .fingerprint import FINGERPRINT_FILENAME, FingerprintStore

__all__ = ["FINGERPRINT_FILENAME", "FileInfoCache", "FingerprintStore"]
