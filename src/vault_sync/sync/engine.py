"""Sync engine: push, pull and sync between the vault and a GitHub branch.

The ``SyncEngine`` runs one operation at a time:

1. Refuses immediately when GitHub is not configured.
2. Takes the busy lock without waiting; a concurrent call gets a busy
   result and performs no I/O.
3. Snapshots the configuration, builds a client, store and scanner.
4. Runs the operation body, awaiting blocking I/O one call at a time.
5. Converts any exception to a failure result and always releases the
   lock.

Operations:

- **push** -- ensure the repository, commit every eligible local file
  in a single commit.
- **pull** -- write every non-excluded remote file into the vault,
  overwriting local copies.
- **sync** -- push the whole local set, then pull remote-only paths.

Deletions are never propagated in either direction.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from vault_sync.config import Config
from vault_sync.core.async_utils import run_sync
from vault_sync.core.client import GitHubClient
from vault_sync.core.models import BinaryContent, TextContent, VaultFile
from vault_sync.sync.encoding import content_from_remote
from vault_sync.sync.filters import ExclusionFilter
from vault_sync.sync.models import (
    BUSY_MESSAGE,
    NOT_CONFIGURED_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    SyncOperation,
    SyncResult,
)
from vault_sync.sync.scanner import VaultScanner
from vault_sync.sync.state import SyncStatusStore
from vault_sync.vault.store import FileStore, LocalFileStore

logger = logging.getLogger(__name__)

DATE_TOKEN = "{{date}}"


class SyncAbortedError(RuntimeError):
    """Raised inside an operation body to end it with a failure result."""


def render_commit_message(
    template: str, now: datetime | None = None
) -> str:
    """Replace every ``{{date}}`` in *template* with a UTC timestamp.

    The timestamp format is ``YYYY-MM-DD HH:MM:SS``.
    """
    moment = now or datetime.now(timezone.utc)
    return template.replace(DATE_TOKEN, moment.strftime("%Y-%m-%d %H:%M:%S"))


def _default_store_factory(config: Config) -> FileStore:
    return LocalFileStore(Path(config.vault_path))


@dataclass(frozen=True)
class _Operation:
    """Everything one operation works with, fixed at its start."""

    kind: SyncOperation
    config: Config
    client: GitHubClient
    store: FileStore
    exclusion: ExclusionFilter
    scanner: VaultScanner


class SyncEngine:
    """Push, pull and sync a vault against one GitHub branch.

    Args:
        config: Initial configuration. Replace it with ``update_config``.
        client_factory: Builds the GitHub client from a config snapshot.
        store_factory: Builds the vault file store from a config snapshot.
            Defaults to a ``LocalFileStore`` at ``config.vault_path``.
        status_store: If given, every completed operation is recorded.
    """

    def __init__(
        self,
        config: Config,
        client_factory: Callable[[Config], GitHubClient] = GitHubClient,
        store_factory: Callable[[Config], FileStore] | None = None,
        status_store: SyncStatusStore | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._store_factory = store_factory or _default_store_factory
        self._status_store = status_store
        self._busy = threading.Lock()

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def config(self) -> Config:
        return self._config

    def update_config(self, config: Config) -> None:
        """Replace the configuration; a running operation keeps its snapshot."""
        self._config = config

    def is_configured(self) -> bool:
        return self._config.is_configured

    def is_busy(self) -> bool:
        return self._busy.locked()

    async def verify_connection(self) -> bool:
        """Return True if the repository is reachable with the current token."""
        config = copy.deepcopy(self._config)
        if not config.is_configured:
            return False
        client = self._client_factory(config)
        return await run_sync(client.verify_access)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def push(self) -> SyncResult:
        """Commit every eligible local file to the branch."""
        return await self._run(SyncOperation.PUSH, self._push)

    async def pull(self) -> SyncResult:
        """Write every non-excluded remote file into the vault."""
        return await self._run(SyncOperation.PULL, self._pull)

    async def sync(self) -> SyncResult:
        """Push the local set, then pull files that exist only remotely."""
        return await self._run(SyncOperation.SYNC, self._sync)

    async def _run(
        self,
        kind: SyncOperation,
        body: Callable[[_Operation], Awaitable[SyncResult]],
    ) -> SyncResult:
        config = copy.deepcopy(self._config)
        if not config.is_configured:
            return SyncResult.failure(NOT_CONFIGURED_MESSAGE, kind)

        if not self._busy.acquire(blocking=False):
            logger.info("%s rejected: another sync is running", kind.value)
            return SyncResult.failure(BUSY_MESSAGE, kind)

        try:
            logger.info(
                "Starting %s of %s/%s@%s",
                kind.value,
                config.github_username,
                config.repository,
                config.branch,
            )
            try:
                op = self._prepare(kind, config)
                result = await body(op)
            except Exception as exc:
                logger.exception("%s failed", kind.value.capitalize())
                result = SyncResult.failure(
                    str(exc) or UNKNOWN_ERROR_MESSAGE, kind
                )
            else:
                logger.info(result.message)
            self._record(result)
            return result
        finally:
            self._busy.release()

    def _prepare(self, kind: SyncOperation, config: Config) -> _Operation:
        store = self._store_factory(config)
        exclusion = ExclusionFilter.from_config(config)
        return _Operation(
            kind=kind,
            config=config,
            client=self._client_factory(config),
            store=store,
            exclusion=exclusion,
            scanner=VaultScanner(store, exclusion),
        )

    def _record(self, result: SyncResult) -> None:
        if self._status_store is None:
            return
        try:
            self._status_store.record(result)
        except (OSError, ValueError) as exc:
            logger.warning("Could not record sync status: %s", exc)

    # ------------------------------------------------------------------
    # Operation bodies
    # ------------------------------------------------------------------

    async def _push(self, op: _Operation) -> SyncResult:
        await self._ensure_repository(op)

        files = await run_sync(op.scanner.scan)
        if not files:
            return SyncResult(
                success=True, message="No files to push", operation=op.kind
            )

        await self._upload(op, files)
        return SyncResult(
            success=True,
            message=f"Successfully pushed {len(files)} files",
            files_uploaded=len(files),
            operation=op.kind,
        )

    async def _pull(self, op: _Operation) -> SyncResult:
        remote_files = await run_sync(op.client.list_remote_files)

        downloaded = 0
        for remote in remote_files:
            if op.exclusion.is_excluded(remote.path):
                logger.debug("Skipping excluded remote path %s", remote.path)
                continue
            if await self._download(op, remote.path):
                downloaded += 1

        return SyncResult(
            success=True,
            message=f"Successfully pulled {downloaded} files",
            files_downloaded=downloaded,
            operation=op.kind,
        )

    async def _sync(self, op: _Operation) -> SyncResult:
        await self._ensure_repository(op)

        local_paths = await run_sync(op.scanner.list_paths)
        remote_files = await run_sync(op.client.list_remote_files)

        files = await run_sync(op.scanner.read_all, local_paths)
        if files:
            await self._upload(op, files)

        local_set = set(local_paths)
        downloaded = 0
        for remote in remote_files:
            if remote.path in local_set:
                continue
            if op.exclusion.is_excluded(remote.path):
                continue
            if await self._download(op, remote.path):
                downloaded += 1

        return SyncResult(
            success=True,
            message=(
                f"Sync complete: {len(files)} uploaded, "
                f"{downloaded} downloaded"
            ),
            files_uploaded=len(files),
            files_downloaded=downloaded,
            operation=op.kind,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_repository(self, op: _Operation) -> None:
        if not await run_sync(op.client.ensure_repository):
            raise SyncAbortedError("Could not access or create repository")

    async def _upload(self, op: _Operation, files: list[VaultFile]) -> None:
        message = render_commit_message(op.config.commit_message)
        if not await run_sync(op.client.batch_upload, files, message):
            raise SyncAbortedError("Failed to push files to GitHub")

    async def _download(self, op: _Operation, path: str) -> bool:
        """Fetch *path* and write it into the vault, overwriting any local copy.

        Returns False (after logging) when the content is unavailable or
        the write fails; the caller moves on to the next file.
        """
        data = await run_sync(op.client.get_file_content, path)
        if data is None:
            logger.warning("No content for remote file %s, skipping", path)
            return False

        try:
            match content_from_remote(path, data):
                case TextContent(text=text):
                    await run_sync(op.store.write_text, path, text)
                case BinaryContent(data=raw):
                    await run_sync(op.store.write_binary, path, raw)
        except (OSError, ValueError) as exc:
            logger.error("Error writing %s: %s", path, exc)
            return False

        logger.debug("Wrote %s (%d bytes)", path, len(data))
        return True
