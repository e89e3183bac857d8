"""Unified configuration schema for vault_sync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the GitHub connection, the vault, auto-sync and logging.
Includes adapter functions that turn the unified config into fallback
values for ``load_config()`` or directly into the ``Config`` dataclass.

Usage:
    from vault_sync.config_schema import (
        UnifiedConfig, build_config, to_fallbacks, to_legacy_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=to_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from .config import (
    DEFAULT_API_URL,
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_EXCLUDED_FILES,
    DEFAULT_EXCLUDED_FOLDERS,
    MAX_AUTO_SYNC_INTERVAL,
    MIN_AUTO_SYNC_INTERVAL,
    Config,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    username: str | None = Field(
        default=None, description="Account that owns the repository"
    )
    token: str | None = Field(
        default=None, description="Personal access token"
    )
    repository: str | None = Field(
        default=None, description="Repository name"
    )
    branch: str = Field(
        default=DEFAULT_BRANCH, description="Branch to sync"
    )
    api_url: str = Field(
        default=DEFAULT_API_URL, description="GitHub REST API base URL"
    )
    timeout: float = Field(
        default=30.0, gt=0, description="HTTP timeout in seconds"
    )

    model_config = {"frozen": True}


class VaultConfig(BaseModel):
    """Local vault settings and exclusion rules.

    ``{{configDir}}`` in ``excluded_folders`` is replaced with
    ``config_dir`` when the filter is built.
    """

    path: str = Field(default=".", description="Vault root directory")
    config_dir: str = Field(
        default=".obsidian",
        description="Name of the host application's config directory",
    )
    excluded_folders: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_FOLDERS),
        description="Path prefixes that are never synced",
    )
    excluded_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_FILES),
        description="File names or path suffixes that are never synced",
    )
    commit_message: str = Field(
        default=DEFAULT_COMMIT_MESSAGE,
        description="Commit message template; {{date}} is replaced",
    )
    state_dir: str = Field(
        default=".vault_sync",
        description="Directory for the sync status file",
    )

    model_config = {"frozen": True}


class AutoSyncConfig(BaseModel):
    """Periodic sync settings."""

    enabled: bool = Field(default=False, description="Run sync periodically")
    interval_minutes: int = Field(
        default=30,
        ge=MIN_AUTO_SYNC_INTERVAL,
        le=MAX_AUTO_SYNC_INTERVAL,
        description="Minutes between automatic syncs (5-120)",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    vault: VaultConfig = Field(default_factory=VaultConfig)
    auto_sync: AutoSyncConfig = Field(default_factory=AutoSyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully, anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        pydantic.ValidationError: If a section has invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapters: UnifiedConfig -> load_config() fallbacks / Config dataclass
# ---------------------------------------------------------------------------


def to_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten a ``UnifiedConfig`` into the ``yaml_fallbacks`` dict
    accepted by ``load_config()``.

    ``None`` values are dropped so env vars and defaults still apply.
    """
    flat: dict[str, Any] = {
        "github_username": unified.github.username,
        "github_token": unified.github.token,
        "repository": unified.github.repository,
        "branch": unified.github.branch,
        "api_url": unified.github.api_url,
        "timeout": unified.github.timeout,
        "vault_path": unified.vault.path,
        "config_dir": unified.vault.config_dir,
        "excluded_folders": list(unified.vault.excluded_folders),
        "excluded_files": list(unified.vault.excluded_files),
        "commit_message": unified.vault.commit_message,
        "state_dir": unified.vault.state_dir,
        "auto_sync": unified.auto_sync.enabled,
        "auto_sync_interval": unified.auto_sync.interval_minutes,
    }
    return {k: v for k, v in flat.items() if v is not None}


def to_legacy_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value > default

    CLI overrides dict keys: username, token, repository, branch,
    vault_path, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated, caller should run
        ``validate_config()`` separately if needed).
    """
    overrides = cli_overrides or {}

    return Config(
        github_username=overrides.get("username")
        or unified.github.username
        or "",
        github_token=overrides.get("token") or unified.github.token or "",
        repository=overrides.get("repository")
        or unified.github.repository
        or "",
        branch=overrides.get("branch") or unified.github.branch,
        vault_path=overrides.get("vault_path") or unified.vault.path,
        config_dir=unified.vault.config_dir,
        excluded_folders=list(unified.vault.excluded_folders),
        excluded_files=list(unified.vault.excluded_files),
        commit_message=unified.vault.commit_message,
        auto_sync=unified.auto_sync.enabled,
        auto_sync_interval=unified.auto_sync.interval_minutes,
        api_url=unified.github.api_url,
        timeout=unified.github.timeout,
        state_dir=unified.vault.state_dir,
        debug=overrides.get("debug", False),
    )
