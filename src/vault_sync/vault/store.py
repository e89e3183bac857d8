"""Vault file store: the local side of the sync.

``FileStore`` is the capability the sync engine needs from the host
(enumerate, read, write, create folders, check existence). All paths are
vault-relative POSIX strings.

``LocalFileStore`` implements it over a directory on disk. Text is read
with charset-normalizer so non-UTF-8 notes decode correctly, and every
write is confined to the vault root.
"""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from typing import Protocol

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)


class FileStore(Protocol):
    """Storage operations consumed by the sync engine."""

    def list_files(self) -> list[str]: ...

    def read_text(self, path: str) -> str: ...

    def read_binary(self, path: str) -> bytes: ...

    def write_text(self, path: str, content: str) -> None: ...

    def write_binary(self, path: str, data: bytes) -> None: ...

    def create_folder(self, path: str) -> None: ...

    def exists(self, path: str) -> bool: ...


# =============================================================================
# Path handling
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalise a vault path to forward slashes without leading ``./`` or ``/``."""
    parts = [
        part
        for part in path.replace("\\", "/").split("/")
        if part not in ("", ".")
    ]
    return "/".join(parts)


def decode_text(raw: bytes) -> str:
    """Decode file bytes with automatic encoding detection.

    UTF-8 is tried first; charset-normalizer handles everything else.
    Empty input decodes to an empty string.
    """
    if not raw:
        return ""
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        logger.debug("Encoding detection failed, decoding as UTF-8 with replacement")
        return raw.decode("utf-8", errors="replace")
    return str(result)


# =============================================================================
# Local directory implementation
# =============================================================================


class LocalFileStore:
    """``FileStore`` backed by a directory.

    Args:
        root: Vault root directory. Created on first write if missing.
    """

    def __init__(self, root: Path) -> None:
        self.root = root.expanduser().resolve()

    def _resolve(self, path: str) -> Path:
        """Map a vault path to disk, rejecting paths that leave the vault.

        Raises:
            ValueError: If *path* is empty or escapes the vault root.
        """
        rel = normalize_path(path)
        if not rel:
            raise ValueError(f"Empty vault path: {path!r}")
        resolved = (self.root / PurePosixPath(rel)).resolve()
        if not resolved.is_relative_to(self.root):
            raise ValueError(
                f"Path is outside the vault: {path} not under {self.root}"
            )
        return resolved

    def list_files(self) -> list[str]:
        """Return every regular file under the root as sorted vault paths."""
        if not self.root.is_dir():
            return []
        files: list[str] = []
        for path in self.root.rglob("*"):
            if path.is_file():
                files.append(path.relative_to(self.root).as_posix())
        return sorted(files)

    def read_text(self, path: str) -> str:
        return decode_text(self._resolve(path).read_bytes())

    def read_binary(self, path: str) -> bytes:
        return self._resolve(path).read_bytes()

    def write_text(self, path: str, content: str) -> None:
        """Create or overwrite a text file as UTF-8."""
        self.write_binary(path, content.encode("utf-8"))

    def write_binary(self, path: str, data: bytes) -> None:
        """Create or overwrite a file, creating parent folders first."""
        target = self._resolve(path)
        parent = PurePosixPath(normalize_path(path)).parent.as_posix()
        if parent != ".":
            self.create_folder(parent)
        target.write_bytes(data)

    def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def exists(self, path: str) -> bool:
        try:
            return self._resolve(path).exists()
        except ValueError:
            return False
