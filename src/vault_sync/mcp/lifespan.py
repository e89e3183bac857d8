"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..bootstrap import load_runtime_config
from ..sync.engine import SyncEngine
from ..sync.scheduler import AutoSyncScheduler
from ..sync.state import SyncStatusStore

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env, YAML config and CLI overrides via load_runtime_config()
    - Create the SyncEngine with a status store under the vault
    - Verify repository access when configured (a failure is only logged;
      the sync tools report it on use)
    - Start the auto-sync scheduler if enabled

    Missing credentials do not stop the server: the tools answer with a
    not-configured error until the environment is fixed.

    On shutdown:
    - Stop the scheduler

    Args:
        config_overrides: Optional dict with config values from CLI
            (username, repository, branch, vault_path, debug)

    Yields:
        Dict with 'engine' and 'scheduler' keys

    Raises:
        RuntimeError: If configuration values are malformed.
    """
    logger.info("MCP server starting...")
    _stderr_print("Vault Sync MCP Server starting...")

    try:
        runtime = load_runtime_config(config_overrides)
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(f"Configuration error: {e}") from e

    config = runtime.config
    _stderr_print(f"  Configuration loaded from: {runtime.source_description}")
    _stderr_print(f"  Vault: {config.vault_path}")

    engine = SyncEngine(config, status_store=SyncStatusStore.for_config(config))

    if engine.is_configured():
        target = f"{config.github_username}/{config.repository}@{config.branch}"
        _stderr_print(f"  Repository: {target}")
        if await engine.verify_connection():
            logger.info("Repository %s is reachable", target)
        else:
            logger.warning("Cannot access repository %s yet", target)
            _stderr_print(
                "  WARNING: repository not reachable; it will be created "
                "on first push if the token allows."
            )
    else:
        logger.warning("GitHub sync is not configured")
        _stderr_print(
            "  WARNING: GitHub not configured. Set GITHUB_USERNAME, "
            "GITHUB_TOKEN and VAULT_SYNC_REPOSITORY."
        )

    scheduler = AutoSyncScheduler(
        engine,
        interval_minutes=config.auto_sync_interval,
        enabled=config.auto_sync,
    )
    scheduler.start()
    if scheduler.running:
        _stderr_print(f"  Auto sync every {config.auto_sync_interval} minutes")

    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield {"engine": engine, "scheduler": scheduler}
    finally:
        await scheduler.stop()
        logger.info("MCP server shutting down")
        _stderr_print("Vault Sync MCP Server shutting down.")
