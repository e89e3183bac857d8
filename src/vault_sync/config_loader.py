"""YAML config files for vault-sync.

Three layers, applied in this order by ``load_hierarchical_config()``:

1. **Discovery** -- ``VAULT_SYNC_CONFIG``, then ``.vault_sync/config.yml``
   (or ``.yaml``) in the working directory, then
   ``~/.config/vault_sync/config.yml``.
2. **Loading** -- each file is parsed with ``IncludeLoader``, which adds an
   ``!include other.yml`` tag resolved relative to the including file.
3. **Merge and expand** -- sections from a more specific file replace
   whole sections from a less specific one; ``${VAR}`` and
   ``${VAR:-default}`` are then expanded from the environment, so the
   token never has to be written into a committed file.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "VAULT_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".vault_sync"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")
USER_CONFIG_PATH = Path(".config") / "vault_sync" / "config.yml"

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment expansion
# ---------------------------------------------------------------------------


def expand_env(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-default}`` references in *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    there is none. A ``${`` that is never closed is kept as written.
    """

    def lookup(ref: re.Match) -> str:
        return os.environ.get(ref["name"]) or ref["default"] or ""

    return _ENV_REF.sub(lookup, value)


def expand_env_tree(node: Any) -> Any:
    """Apply ``expand_env`` to every string inside nested dicts and lists."""
    match node:
        case str():
            return expand_env(node)
        case dict():
            return {key: expand_env_tree(item) for key, item in node.items()}
        case list():
            return [expand_env_tree(item) for item in node]
        case _:
            return node


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class IncludeLoader(yaml.SafeLoader):
    """``SafeLoader`` that understands ``!include``.

    Args:
        stream: Open config file.
        chain: Files already being loaded above this one, outermost first.
            Used to reject include cycles.
    """

    def __init__(self, stream, chain: tuple[Path, ...] = ()):
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        here = self.chain[-1]
        target = (here.parent / self.construct_scalar(node)).resolve()
        if target in self.chain:
            cycle = " -> ".join(str(p) for p in (*self.chain, target))
            raise ValueError(f"Circular include: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Included file {target} does not exist (from {here})"
            )
        return load_yaml(target, self.chain)


IncludeLoader.add_constructor("!include", IncludeLoader.include)


def load_yaml(path: Path, chain: tuple[Path, ...] = ()) -> Any:
    """Parse one config file, following its ``!include`` tags."""
    path = path.resolve()
    with open(path, encoding="utf-8") as fh:
        loader = IncludeLoader(fh, (*chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def config_search_paths() -> list[Path]:
    """Candidate config files, most specific first, whether or not they exist."""
    paths: list[Path] = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        paths.append(Path(explicit).expanduser().resolve())
    project_dir = Path.cwd() / PROJECT_CONFIG_DIR
    paths.extend(project_dir / name for name in PROJECT_CONFIG_NAMES)
    paths.append(Path.home() / USER_CONFIG_PATH)
    return paths


def discover_config_files() -> list[Path]:
    """The candidates from ``config_search_paths()`` that exist."""
    return [path for path in config_search_paths() if path.exists()]


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one raw dict.

    The least specific file is applied first; a later file replaces whole
    top-level sections (``github:``, ``vault:``...), it does not merge into
    them. A file whose root is not a mapping is skipped with a warning.

    Returns:
        The merged, env-expanded dict; empty when there is no config file.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config file %s", path)
        try:
            data = load_yaml(path)
        except (OSError, ValueError, yaml.YAMLError):
            logger.error("Could not read config file %s", path)
            raise

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Ignoring %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
    return expand_env_tree(merged)


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# vault-sync configuration
#
# Credentials can also be set via environment variables:
#   GITHUB_USERNAME, GITHUB_TOKEN, VAULT_SYNC_REPOSITORY, VAULT_SYNC_BRANCH
#
# github:
#   username: octocat
#   token: ${GITHUB_TOKEN}
#   repository: my-vault
#   branch: main
#
# vault:
#   path: ~/Documents/Vault
#   config_dir: .obsidian
#   excluded_folders:
#     - "{{configDir}}/plugins"
#     - "{{configDir}}/themes"
#     - .trash
#   excluded_files:
#     - .DS_Store
#     - Thumbs.db
#   commit_message: "Vault sync: {{date}}"
#
# auto_sync:
#   enabled: false
#   interval_minutes: 30
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """The config file in effect, or where ``vault-sync init`` would create one."""
    found = discover_config_files()
    if found:
        return found[0]
    return Path.cwd() / PROJECT_CONFIG_DIR / PROJECT_CONFIG_NAMES[0]


def ensure_config(target: Path | None = None) -> Path:
    """Return the config file in effect, writing the starter file if none exists.

    Args:
        target: Where to write the starter file. Defaults to
            ``resolve_config_path()``.
    """
    found = discover_config_files()
    if found:
        logger.debug("Using existing config file %s", found[0])
        return found[0]

    path = target or resolve_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config to %s", path)
    return path
