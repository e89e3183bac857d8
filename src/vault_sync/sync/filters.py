"""Exclusion rules shared by push, pull and sync.

A vault-relative path is excluded when:

1. **Folder rule** -- it starts with any excluded folder prefix, after
   ``{{configDir}}`` has been replaced with the host config directory.
2. **File rule** -- its file name equals, or the path ends with, any
   excluded file pattern.

The same ``ExclusionFilter`` is applied to local files before upload and
to remote paths before download, so a path excluded on one side is
never materialised on the other.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import PurePosixPath

from vault_sync.config import Config

CONFIG_DIR_PLACEHOLDER = "{{configDir}}"

# Never synced regardless of configuration
ALWAYS_EXCLUDED_FOLDERS = (".git/",)


class ExclusionFilter:
    """Decide whether a vault-relative path takes part in sync.

    Args:
        excluded_folders: Folder prefixes, may contain ``{{configDir}}``.
        excluded_files: File names or path suffixes.
        config_dir: Value substituted for ``{{configDir}}``.
    """

    def __init__(
        self,
        excluded_folders: Iterable[str] = (),
        excluded_files: Iterable[str] = (),
        config_dir: str = ".obsidian",
    ) -> None:
        self._config_dir = config_dir
        self._folders = [
            self.resolve_config_dir(folder)
            for folder in excluded_folders
            if folder
        ]
        self._files = [pattern for pattern in excluded_files if pattern]

    @classmethod
    def from_config(cls, config: Config) -> ExclusionFilter:
        """Build the filter for *config*, adding the always-excluded folders.

        A relative ``state_dir`` lives inside the vault, so it is excluded
        as well.
        """
        folders = list(config.excluded_folders) + list(
            ALWAYS_EXCLUDED_FOLDERS
        )
        state_dir = PurePosixPath(config.state_dir)
        if not state_dir.is_absolute():
            folders.append(f"{state_dir.as_posix().rstrip('/')}/")
        return cls(folders, config.excluded_files, config.config_dir)

    @property
    def excluded_folders(self) -> list[str]:
        """Folder prefixes with the placeholder resolved."""
        return list(self._folders)

    @property
    def excluded_files(self) -> list[str]:
        return list(self._files)

    def resolve_config_dir(self, path: str) -> str:
        """Replace ``{{configDir}}`` with the host config directory name."""
        return path.replace(CONFIG_DIR_PLACEHOLDER, self._config_dir)

    def is_excluded(self, path: str) -> bool:
        """Return True if *path* matches a folder or file rule."""
        for folder in self._folders:
            if path.startswith(folder):
                return True

        name = PurePosixPath(path).name
        for pattern in self._files:
            if name == pattern or path.endswith(pattern):
                return True

        return False

    def filter_paths(self, paths: Iterable[str]) -> list[str]:
        """Return the paths that are not excluded, preserving order."""
        return [path for path in paths if not self.is_excluded(path)]
