"""MCP tool handlers for vault sync.

Defines four tools:

- ``vault_push`` -- commit every eligible vault file to the branch.
- ``vault_pull`` -- download every remote file into the vault.
- ``vault_sync`` -- push, then download remote-only files.
- ``vault_sync_status`` -- last recorded sync and engine state.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...sync.engine import SyncEngine
from ...sync.models import BUSY_MESSAGE, NOT_CONFIGURED_MESSAGE, SyncResult
from ...sync.reporter import format_status, format_sync_result, result_to_json
from ...sync.state import SyncStatusStore
from .errors import build_error_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_NO_ARGS = {"type": "object", "properties": {}, "required": []}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _result_response(result: SyncResult) -> types.CallToolResult:
    """Turn an engine result into a tool response.

    Configuration and busy failures get a corrective action; other
    failures carry the engine message as-is.
    """
    if not result.success:
        if result.message == NOT_CONFIGURED_MESSAGE:
            return build_error_response(
                "not_configured",
                result.message,
                "Set GITHUB_USERNAME, GITHUB_TOKEN and VAULT_SYNC_REPOSITORY, "
                "then restart the server.",
            )
        if result.message == BUSY_MESSAGE:
            return build_error_response(
                "busy",
                result.message,
                "Wait for the running sync to finish, then retry.",
            )

    return types.CallToolResult(
        content=[
            types.TextContent(type="text", text=format_sync_result(result))
        ],
        structuredContent=result_to_json(result),
        isError=not result.success,
    )


async def _handle_push(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    return _result_response(await engine.push())


async def _handle_pull(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    return _result_response(await engine.pull())


async def _handle_sync(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    return _result_response(await engine.sync())


async def _handle_status(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    """Report the stored last-sync status plus live engine state."""
    config = engine.config
    state = SyncStatusStore.for_config(config).load()

    structured: dict[str, Any] = dict(state)
    structured.update(
        {
            "configured": engine.is_configured(),
            "busy": engine.is_busy(),
            "repository": config.repository,
            "branch": config.branch,
        }
    )

    lines = [format_status(state, configured=engine.is_configured())]
    if engine.is_busy():
        lines.append("A sync is currently running.")

    return types.CallToolResult(
        content=[types.TextContent(type="text", text="\n".join(lines))],
        structuredContent=structured,
    )


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(
        tool=types.Tool(
            name="vault_push",
            description=(
                "Commit every non-excluded vault file to the configured "
                "GitHub branch in a single commit. Remote files missing "
                "locally are left untouched."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_NO_ARGS,
        ),
        handler=_handle_push,
    ),
    ToolSpec(
        tool=types.Tool(
            name="vault_pull",
            description=(
                "Download every non-excluded file from the GitHub branch "
                "into the vault, overwriting local copies."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=True,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_NO_ARGS,
        ),
        handler=_handle_pull,
    ),
    ToolSpec(
        tool=types.Tool(
            name="vault_sync",
            description=(
                "Push every local file, then download files that exist "
                "only on the GitHub branch. Nothing is deleted."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=False,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=True,
            ),
            inputSchema=_NO_ARGS,
        ),
        handler=_handle_sync,
    ),
    ToolSpec(
        tool=types.Tool(
            name="vault_sync_status",
            description=(
                "Show the last sync time and outcome, and whether a sync "
                "is running right now."
            ),
            annotations=types.ToolAnnotations(
                readOnlyHint=True,
                destructiveHint=False,
                idempotentHint=True,
                openWorldHint=False,
            ),
            inputSchema=_NO_ARGS,
        ),
        handler=_handle_status,
    ),
]
