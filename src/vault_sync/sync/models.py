"""Pydantic models for sync operation outcomes.

- ``SyncOperation``: which engine entry point produced a result.
- ``SyncResult``: the single terminal outcome of push, pull or sync.

Models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

NOT_CONFIGURED_MESSAGE = "GitHub not configured"
BUSY_MESSAGE = "Sync already in progress"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


class SyncOperation(str, Enum):
    """Engine entry points."""

    PUSH = "push"
    PULL = "pull"
    SYNC = "sync"


class SyncResult(BaseModel):
    """Outcome of one push, pull or sync call.

    Attributes:
        success: Whether the operation completed.
        message: Human-readable summary.
        files_uploaded: Files committed to the branch.
        files_downloaded: Files written into the vault.
        files_deleted: Reserved; deletions are never propagated so this
            stays 0.
        operation: Entry point that produced the result.
    """

    success: bool
    message: str
    files_uploaded: int = Field(default=0, ge=0)
    files_downloaded: int = Field(default=0, ge=0)
    files_deleted: int = Field(default=0, ge=0)
    operation: SyncOperation | None = None

    model_config = {"frozen": True}

    @classmethod
    def failure(
        cls, message: str, operation: SyncOperation | None = None
    ) -> SyncResult:
        """A failed result; counters are always zero."""
        return cls(
            success=False,
            message=message or UNKNOWN_ERROR_MESSAGE,
            operation=operation,
        )

    @property
    def files_transferred(self) -> int:
        return self.files_uploaded + self.files_downloaded
