"""Resolve the runtime configuration from every source.

Shared by the CLI and the MCP server lifespan so both see the same
precedence: CLI args > env vars (``.env`` loaded first) > YAML config >
defaults.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import Config, load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config, to_fallbacks

logger = logging.getLogger(__name__)


@dataclass
class RuntimeConfig:
    """Resolved configuration plus where it came from."""

    config: Config
    unified: UnifiedConfig
    config_file: Path | None = None
    sources: list[str] = field(default_factory=list)

    @property
    def source_description(self) -> str:
        return ", ".join(self.sources) if self.sources else "defaults"


def load_runtime_config(
    overrides: dict[str, Any] | None = None,
) -> RuntimeConfig:
    """Load ``.env``, the YAML config and CLI overrides into a ``Config``.

    Args:
        overrides: CLI values keyed by ``load_config()`` argument name
            (username, token, repository, branch, vault_path, debug).

    Raises:
        ValueError: If a config value is malformed.
        pydantic.ValidationError: If the YAML file has invalid values.
    """
    # .env first so ${VAR} interpolation in YAML can use its values
    load_dotenv()

    sources: list[str] = []
    unified = UnifiedConfig()
    config_file: Path | None = None

    config_files = discover_config_files()
    if config_files:
        config_file = config_files[0]
        unified = build_config(load_hierarchical_config())
        sources.append(f"config file: {config_file}")

    opts = overrides or {}
    config = load_config(
        username=opts.get("username"),
        token=opts.get("token"),
        repository=opts.get("repository"),
        branch=opts.get("branch"),
        vault_path=opts.get("vault_path"),
        debug=opts.get("debug", False),
        yaml_fallbacks=to_fallbacks(unified),
    )

    if any(v for k, v in opts.items() if k != "debug"):
        sources.append("CLI arguments")
    sources.append("environment variables")

    runtime = RuntimeConfig(
        config=config,
        unified=unified,
        config_file=config_file,
        sources=sources,
    )
    logger.info("Configuration loaded from: %s", runtime.source_description)
    return runtime
