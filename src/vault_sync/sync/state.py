"""Sync status persistence.

Keeps ``status.json`` in the state directory with the time and outcome
of the last push, pull or sync:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers never see partial data.
* **Dict-based state** -- a plain ``dict`` so the CLI and MCP tools can
  serialise it directly.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from vault_sync.config import Config
from vault_sync.sync.models import SyncResult

logger = logging.getLogger(__name__)

STATUS_FILE_NAME = "status.json"


class SyncStatusStore:
    """Load and save the last-sync status.

    Args:
        state_dir: Directory holding ``status.json``.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = state_dir

    @classmethod
    def for_config(cls, config: Config) -> SyncStatusStore:
        """Status store for *config*; a relative state dir lives in the vault."""
        state_dir = Path(config.state_dir).expanduser()
        if not state_dir.is_absolute():
            state_dir = Path(config.vault_path).expanduser() / state_dir
        return cls(state_dir)

    @property
    def path(self) -> Path:
        return self._state_dir / STATUS_FILE_NAME

    def load(self) -> dict:
        """Load status from disk.

        Returns:
            The status dict. If the file does not exist an empty status
            with ``version=1`` is returned.
        """
        if not self.path.exists():
            return {"version": 1, "last_sync": None, "last_result": None}
        with open(self.path, encoding="utf-8") as fh:
            return json.load(fh)

    def save(self, state: dict) -> None:
        """Persist status to disk atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target. Creates the state directory if needed.
        """
        self._state_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self._state_dir), suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    def record(self, result: SyncResult) -> dict:
        """Store *result* as the last outcome, stamped with the current UTC time."""
        state = self.load()
        state["last_sync"] = datetime.now(timezone.utc).isoformat()
        state["last_result"] = result.model_dump(mode="json")
        self.save(state)
        return state
