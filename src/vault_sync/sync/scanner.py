"""Local file enumeration for push and sync."""

from __future__ import annotations

import logging

from vault_sync.core.models import (
    BinaryContent,
    FileContent,
    TextContent,
    VaultFile,
)
from vault_sync.sync.encoding import is_binary_path
from vault_sync.sync.filters import ExclusionFilter
from vault_sync.vault.store import FileStore

logger = logging.getLogger(__name__)


class VaultScanner:
    """List and read the vault files that take part in sync.

    Args:
        store: Vault file store.
        exclusion: Filter applied to every listed path.
    """

    def __init__(self, store: FileStore, exclusion: ExclusionFilter) -> None:
        self.store = store
        self.exclusion = exclusion

    def list_paths(self) -> list[str]:
        """Vault paths that survive the exclusion filter."""
        return self.exclusion.filter_paths(self.store.list_files())

    def read(self, path: str) -> VaultFile:
        """Snapshot one file, classified by extension."""
        content: FileContent
        if is_binary_path(path):
            content = BinaryContent(self.store.read_binary(path))
        else:
            content = TextContent(self.store.read_text(path))
        return VaultFile(path=path, content=content)

    def read_all(self, paths: list[str]) -> list[VaultFile]:
        """Read *paths*; a file that cannot be read is logged and left out."""
        files: list[VaultFile] = []
        for path in paths:
            try:
                files.append(self.read(path))
            except (OSError, ValueError) as exc:
                logger.error("Error reading %s: %s", path, exc)
        return files

    def scan(self) -> list[VaultFile]:
        """List and read every eligible file."""
        return self.read_all(self.list_paths())
