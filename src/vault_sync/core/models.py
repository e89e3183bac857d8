"""Records exchanged between the GitHub client and the sync engine.

- ``TextContent`` / ``BinaryContent``: the tagged payload of a vault file.
- ``VaultFile``: one local file snapshot, ready for upload.
- ``RemoteFile``: one blob in the branch tree.
- ``TreeEntry``: one entry of a Git Data API tree write.
- ``ExistingFile`` / ``MissingFile``: result of a content id lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from pydantic import BaseModel, model_validator

REGULAR_FILE_MODE = "100644"


@dataclass(frozen=True, slots=True)
class TextContent:
    """Decoded text of a non-binary file."""

    text: str

    def to_bytes(self) -> bytes:
        return self.text.encode("utf-8")


@dataclass(frozen=True, slots=True)
class BinaryContent:
    """Raw bytes of a file classified as binary by its extension."""

    data: bytes

    def to_bytes(self) -> bytes:
        return self.data


FileContent = Union[TextContent, BinaryContent]


@dataclass(frozen=True, slots=True)
class VaultFile:
    """Snapshot of one local file taken when it was read.

    Attributes:
        path: Vault-relative POSIX path.
        content: Tagged text or binary payload.
    """

    path: str
    content: FileContent

    @property
    def is_binary(self) -> bool:
        return isinstance(self.content, BinaryContent)


@dataclass(frozen=True, slots=True)
class ExistingFile:
    """The path exists on the branch with content id ``sha``."""

    sha: str


@dataclass(frozen=True, slots=True)
class MissingFile:
    """The path does not exist on the branch."""


FileLookup = Union[ExistingFile, MissingFile]


class RemoteFile(BaseModel):
    """A blob listed in the branch's current tree.

    Attributes:
        path: Repository-relative path.
        sha: Git blob id. Identifies content, it is not compared to
            local bytes.
        type: Always ``"blob"``; directory entries are never listed.
    """

    path: str
    sha: str
    type: Literal["blob"] = "blob"

    model_config = {"frozen": True}


class TreeEntry(BaseModel):
    """One entry of a ``POST /git/trees`` request.

    Exactly one of ``content`` (inline UTF-8 text) or ``sha`` (an
    existing blob) must be set.
    """

    path: str
    mode: str = REGULAR_FILE_MODE
    type: Literal["blob"] = "blob"
    sha: str | None = None
    content: str | None = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _one_payload(self) -> TreeEntry:
        if (self.sha is None) == (self.content is None):
            raise ValueError(
                f"Tree entry for '{self.path}' needs exactly one of sha or content"
            )
        return self

    def to_payload(self) -> dict:
        """Request body fragment, omitting the unused payload field."""
        return self.model_dump(exclude_none=True)
