"""Local vault storage."""

from .store import FileStore, LocalFileStore, normalize_path

__all__ = ["FileStore", "LocalFileStore", "normalize_path"]
