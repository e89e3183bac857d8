"""Vault to GitHub sync engine.

Public API for mirroring a local vault (a folder of notes and
attachments) onto one branch of a GitHub repository.

Architecture
------------
Push and sync commit the whole eligible local set in a single commit
built through the Git Data API (blobs, tree, commit, ref update). Pull
downloads every remote file that the exclusion rules allow and
overwrites the local copy. There is no change detection and no
deletion propagation.

Modules:

- ``engine``    -- ``SyncEngine``: push, pull, sync with a busy guard.
- ``filters``   -- ``ExclusionFilter``: folder-prefix and file-name rules.
- ``scanner``   -- ``VaultScanner``: enumerate and read eligible files.
- ``encoding``  -- text/binary classification and legacy wrapper decoding.
- ``models``    -- ``SyncOperation``, ``SyncResult``.
- ``state``     -- ``SyncStatusStore``: last-sync status file.
- ``scheduler`` -- ``AutoSyncScheduler``: periodic background sync.
- ``reporter``  -- Human-readable and JSON result formatting.

Usage example
-------------
::

    from vault_sync.config import load_config
    from vault_sync.sync import SyncEngine, format_sync_result

    engine = SyncEngine(load_config(vault_path="~/notes"))
    result = await engine.sync()
    print(format_sync_result(result))
"""

from .engine import SyncEngine, render_commit_message
from .filters import ExclusionFilter
from .models import SyncOperation, SyncResult
from .reporter import format_status, format_sync_result, result_to_json
from .scanner import VaultScanner
from .scheduler import AutoSyncScheduler
from .state import SyncStatusStore

__all__ = [
    "AutoSyncScheduler",
    "ExclusionFilter",
    "SyncEngine",
    "SyncOperation",
    "SyncResult",
    "SyncStatusStore",
    "VaultScanner",
    "format_status",
    "format_sync_result",
    "render_commit_message",
    "result_to_json",
]
