"""Sync result formatting functions.

- ``format_sync_result`` -- one-line notice shown after push, pull or sync.
- ``result_to_json`` -- structured dict for CLI ``--json`` and MCP output.
- ``format_status`` -- human-readable last-sync status.
"""

from __future__ import annotations

from typing import Any

from .models import SyncResult

# ------------------------------------------------------------------
# Human-readable output
# ------------------------------------------------------------------


def format_sync_result(result: SyncResult) -> str:
    """Format a result as the notice a user sees after an operation.

    Failures are prefixed with ``Sync failed:``; successes show the
    engine message followed by the transfer counts when any file moved.
    """
    if not result.success:
        return f"Sync failed: {result.message}"

    if result.files_transferred == 0:
        return result.message

    return (
        f"{result.message} "
        f"(uploaded: {result.files_uploaded}, "
        f"downloaded: {result.files_downloaded})"
    )


def format_status(state: dict[str, Any], configured: bool = True) -> str:
    """Format the stored last-sync status.

    Args:
        state: Dict as returned by ``SyncStatusStore.load()``.
        configured: Whether GitHub credentials are present.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    if not configured:
        lines.append("GitHub: not configured")

    last_sync = state.get("last_sync")
    last_result = state.get("last_result")
    if not last_sync or not last_result:
        lines.append("Last sync: never")
        return "\n".join(lines)

    operation = last_result.get("operation") or "sync"
    outcome = "ok" if last_result.get("success") else "failed"
    lines.append(f"Last sync: {last_sync} ({operation}, {outcome})")
    lines.append(f"  {last_result.get('message', '')}")
    lines.append(
        f"  Uploaded: {last_result.get('files_uploaded', 0)}, "
        f"downloaded: {last_result.get('files_downloaded', 0)}"
    )
    return "\n".join(lines)


# ------------------------------------------------------------------
# Machine-readable output
# ------------------------------------------------------------------


def result_to_json(result: SyncResult) -> dict[str, Any]:
    """Convert a result to a JSON-serialisable dict."""
    return result.model_dump(mode="json")
