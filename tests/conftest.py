"""Shared pytest fixtures for vault-sync tests."""

import threading
from pathlib import Path

import pytest

from vault_sync.config import Config
from vault_sync.core.models import RemoteFile, VaultFile


class FakeGitHubClient:
    """Minimal GitHubClient replacement for testing.

    Simulates the branch with an in-memory dict of path -> bytes.
    ``batch_upload`` stores the uploaded payloads so tests can inspect
    exactly what would have been committed.
    """

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        ensure_ok: bool = True,
        batch_ok: bool = True,
        reachable: bool = True,
    ) -> None:
        self.files: dict[str, bytes] = dict(files or {})
        self.ensure_ok = ensure_ok
        self.batch_ok = batch_ok
        self.reachable = reachable
        self.missing_content: set[str] = set()
        self.batch_calls: list[tuple[list[VaultFile], str]] = []
        self.content_requests: list[str] = []
        self.ensure_calls = 0
        # Set to make ensure_repository block until released
        self.gate: threading.Event | None = None

    def verify_access(self) -> bool:
        return self.reachable

    def ensure_repository(self) -> bool:
        self.ensure_calls += 1
        if self.gate is not None:
            self.gate.wait(timeout=5)
        return self.ensure_ok

    def list_remote_files(self) -> list[RemoteFile]:
        return [
            RemoteFile(path=path, sha=f"sha-{i}")
            for i, path in enumerate(sorted(self.files))
        ]

    def get_file_content(self, path: str, ref: str | None = None) -> bytes | None:
        self.content_requests.append(path)
        if path in self.missing_content:
            return None
        return self.files.get(path)

    def batch_upload(self, files: list[VaultFile], message: str) -> bool:
        self.batch_calls.append((list(files), message))
        if not self.batch_ok:
            return False
        for file in files:
            self.files[file.path] = file.content.to_bytes()
        return True


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    """Empty vault directory."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def sync_config(vault: Path) -> Config:
    """Fully configured Config pointing at the temp vault."""
    return Config(
        github_username="octocat",
        github_token="ghp_test",
        repository="notes",
        branch="main",
        vault_path=str(vault),
    )


@pytest.fixture
def fake_client() -> FakeGitHubClient:
    return FakeGitHubClient()


def write_files(root: Path, files: dict[str, str | bytes]) -> None:
    """Create *files* (vault path -> content) under *root*."""
    for rel_path, content in files.items():
        target = root / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            target.write_bytes(content)
        else:
            target.write_text(content, encoding="utf-8")
