"""Text/binary classification and the legacy binary wrapper codec.

Vault files are classified as binary solely by extension; everything
else is text. Binary files travel as real blobs, so the remote holds
their exact bytes.

Older clients stored binary files as a text wrapper,
``[BINARY:<base64>]``. ``wrap_binary`` / ``unwrap_binary`` implement that
codec so such content is restored to bytes on pull.
"""

from __future__ import annotations

import base64
import binascii
from pathlib import PurePosixPath

from ..core.models import BinaryContent, FileContent, TextContent

BINARY_EXTENSIONS = frozenset(
    {
        ".png",
        ".jpg",
        ".jpeg",
        ".gif",
        ".pdf",
        ".mp3",
        ".mp4",
        ".webp",
        ".svg",
        ".ico",
    }
)

BINARY_PREFIX = "[BINARY:"
BINARY_SUFFIX = "]"


def is_binary_path(path: str) -> bool:
    """True if *path* has one of the binary extensions (case-insensitive)."""
    return PurePosixPath(path).suffix.lower() in BINARY_EXTENSIONS


def wrap_binary(data: bytes) -> str:
    """Encode bytes as ``[BINARY:<base64>]``."""
    return f"{BINARY_PREFIX}{base64.b64encode(data).decode('ascii')}{BINARY_SUFFIX}"


def unwrap_binary(text: str) -> bytes | None:
    """Decode a ``[BINARY:...]`` wrapper, or return None if *text* is not one."""
    if not (text.startswith(BINARY_PREFIX) and text.endswith(BINARY_SUFFIX)):
        return None
    payload = text[len(BINARY_PREFIX) : -len(BINARY_SUFFIX)]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


def content_from_remote(path: str, data: bytes) -> FileContent:
    """Turn bytes fetched from the branch into a tagged payload for *path*.

    Binary-extension paths whose bytes are a legacy wrapper are unwrapped;
    other binary paths, and text that is not valid UTF-8, stay raw bytes.
    """
    if is_binary_path(path):
        if data.startswith(BINARY_PREFIX.encode("ascii")):
            unwrapped = unwrap_binary(data.decode("ascii", errors="replace"))
            if unwrapped is not None:
                return BinaryContent(unwrapped)
        return BinaryContent(data)
    try:
        return TextContent(data.decode("utf-8"))
    except UnicodeDecodeError:
        return BinaryContent(data)
