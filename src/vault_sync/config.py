"""Runtime configuration for the vault sync engine.

Reads GitHub credentials and vault settings from CLI args, environment
variables, .env files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_USERNAME: Account that owns the sync repository
    GITHUB_TOKEN: Personal access token (``repo`` scope)
    VAULT_SYNC_REPOSITORY: Repository name (created if missing)
    VAULT_SYNC_BRANCH: Branch to sync (optional, default: main)
    VAULT_SYNC_PATH: Vault root directory (optional, default: .)
    VAULT_SYNC_CONFIG_DIR: Host config directory name (optional, default: .obsidian)
    VAULT_SYNC_AUTO: Enable periodic sync (optional, default: false)
    VAULT_SYNC_INTERVAL: Auto-sync interval in minutes (optional, default: 30)
    VAULT_SYNC_API_URL: GitHub API base URL (optional)
    VAULT_SYNC_DEBUG: Enable debug logging (optional, default: false)

Missing credentials are not an error here: an unconfigured engine
reports that itself, so the CLI and MCP server can still start.
"""

import logging
import os
from dataclasses import dataclass, field
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_BRANCH = "main"
DEFAULT_COMMIT_MESSAGE = "Vault sync: {{date}}"
DEFAULT_EXCLUDED_FOLDERS = [
    "{{configDir}}/plugins",
    "{{configDir}}/themes",
    ".trash",
]
DEFAULT_EXCLUDED_FILES = [".DS_Store", "Thumbs.db"]

MIN_AUTO_SYNC_INTERVAL = 5
MAX_AUTO_SYNC_INTERVAL = 120


@dataclass
class Config:
    github_username: str = ""
    github_token: str = ""
    repository: str = ""
    branch: str = DEFAULT_BRANCH
    vault_path: str = "."
    config_dir: str = ".obsidian"
    excluded_folders: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_FOLDERS)
    )
    excluded_files: list[str] = field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_FILES)
    )
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    auto_sync: bool = False
    auto_sync_interval: int = 30
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    state_dir: str = ".vault_sync"
    debug: bool = False

    @property
    def is_configured(self) -> bool:
        """True when account, token and repository are all set."""
        return bool(
            self.github_username.strip()
            and self.github_token.strip()
            and self.repository.strip()
        )


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Credentials are intentionally not required here.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the API URL, branch, interval or timeout is invalid.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    config.branch = config.branch.strip()
    if not config.branch:
        raise ValueError("Branch name cannot be empty.")

    if not (
        MIN_AUTO_SYNC_INTERVAL
        <= config.auto_sync_interval
        <= MAX_AUTO_SYNC_INTERVAL
    ):
        raise ValueError(
            f"Invalid auto-sync interval {config.auto_sync_interval}: "
            f"must be between {MIN_AUTO_SYNC_INTERVAL} and "
            f"{MAX_AUTO_SYNC_INTERVAL} minutes"
        )

    if config.timeout <= 0:
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be positive"
        )

    if config.api_url.startswith("http://"):
        logger.warning(
            "WARNING: GitHub API URL uses plain HTTP; the token is sent unencrypted."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    username: str | None = None,
    token: str | None = None,
    repository: str | None = None,
    branch: str | None = None,
    vault_path: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        username: Override GitHub username.
        token: Override GitHub token.
        repository: Override repository name.
        branch: Override branch name.
        vault_path: Override vault root directory.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file
            (as produced by ``config_schema.to_fallbacks``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a numeric or URL value is malformed.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_username = (
        username
        or os.getenv("GITHUB_USERNAME")
        or fb.get("github_username")
        or ""
    ).strip()
    final_token = (
        token or os.getenv("GITHUB_TOKEN") or fb.get("github_token") or ""
    ).strip()
    final_repository = (
        repository
        or os.getenv("VAULT_SYNC_REPOSITORY")
        or fb.get("repository")
        or ""
    ).strip()
    final_branch = (
        branch
        or os.getenv("VAULT_SYNC_BRANCH")
        or fb.get("branch")
        or DEFAULT_BRANCH
    ).strip() or DEFAULT_BRANCH
    final_vault_path = (
        vault_path
        or os.getenv("VAULT_SYNC_PATH")
        or fb.get("vault_path")
        or "."
    )
    final_config_dir = (
        os.getenv("VAULT_SYNC_CONFIG_DIR")
        or fb.get("config_dir")
        or ".obsidian"
    )
    final_api_url = (
        os.getenv("VAULT_SYNC_API_URL")
        or fb.get("api_url")
        or DEFAULT_API_URL
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("VAULT_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    env_auto = _get_bool_env("VAULT_SYNC_AUTO")
    if env_auto is not None:
        final_auto = env_auto
    else:
        final_auto = bool(fb.get("auto_sync", False))

    # --- Numeric fields: env > YAML > default ---

    interval_raw = os.getenv("VAULT_SYNC_INTERVAL")
    if interval_raw is not None:
        try:
            final_interval = int(interval_raw)
        except ValueError:
            raise ValueError(
                f"Invalid VAULT_SYNC_INTERVAL '{interval_raw}': must be a number of minutes"
            ) from None
    elif "auto_sync_interval" in fb:
        final_interval = int(fb["auto_sync_interval"])
    else:
        final_interval = 30

    config = Config(
        github_username=final_username,
        github_token=final_token,
        repository=final_repository,
        branch=final_branch,
        vault_path=final_vault_path,
        config_dir=final_config_dir,
        excluded_folders=list(
            fb.get("excluded_folders", DEFAULT_EXCLUDED_FOLDERS)
        ),
        excluded_files=list(
            fb.get("excluded_files", DEFAULT_EXCLUDED_FILES)
        ),
        commit_message=fb.get("commit_message") or DEFAULT_COMMIT_MESSAGE,
        auto_sync=final_auto,
        auto_sync_interval=final_interval,
        api_url=final_api_url,
        timeout=float(fb.get("timeout", 30.0)),
        state_dir=fb.get("state_dir") or ".vault_sync",
        debug=final_debug,
    )

    validate_config(config)

    if not config.is_configured:
        logger.info(
            "GitHub sync is not configured yet (username, token and repository are required)"
        )

    return config
