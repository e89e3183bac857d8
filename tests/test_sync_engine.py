"""Tests for the vault sync engine."""

from __future__ import annotations

import asyncio
import dataclasses
import threading
from datetime import datetime, timezone

import pytest
from conftest import FakeGitHubClient, write_files

from vault_sync.config import Config
from vault_sync.core.models import BinaryContent, TextContent
from vault_sync.sync.encoding import wrap_binary
from vault_sync.sync.engine import SyncEngine, render_commit_message
from vault_sync.sync.models import SyncOperation
from vault_sync.sync.state import SyncStatusStore

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xfe"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _engine(
    config: Config,
    client: FakeGitHubClient,
    status_store: SyncStatusStore | None = None,
) -> SyncEngine:
    return SyncEngine(
        config,
        client_factory=lambda cfg: client,
        status_store=status_store,
    )


def _uploaded(client: FakeGitHubClient) -> dict[str, object]:
    """Paths and payloads of the single batch upload."""
    assert len(client.batch_calls) == 1
    files, _ = client.batch_calls[0]
    return {f.path: f.content for f in files}


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


class TestGuards:
    @pytest.mark.parametrize("operation", ["push", "pull", "sync"])
    async def test_unconfigured_fails_without_io(self, vault, operation):
        client = FakeGitHubClient()
        factory_calls = []

        def factory(cfg):
            factory_calls.append(cfg)
            return client

        engine = SyncEngine(
            Config(github_username="octocat", vault_path=str(vault)),
            client_factory=factory,
        )
        result = await getattr(engine, operation)()

        assert result.success is False
        assert result.message == "GitHub not configured"
        assert result.files_uploaded == 0
        assert result.files_downloaded == 0
        assert factory_calls == []

    async def test_blank_token_is_not_configured(self, sync_config):
        config = dataclasses.replace(sync_config, github_token="   ")
        engine = _engine(config, FakeGitHubClient())
        assert engine.is_configured() is False
        result = await engine.push()
        assert result.message == "GitHub not configured"

    async def test_second_operation_is_rejected_while_busy(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient()
        client.gate = threading.Event()
        engine = _engine(sync_config, client)

        first = asyncio.create_task(engine.push())
        for _ in range(200):
            if client.ensure_calls:
                break
            await asyncio.sleep(0.01)
        assert engine.is_busy()

        second = await engine.pull()
        assert second.success is False
        assert second.message == "Sync already in progress"
        assert client.content_requests == []

        client.gate.set()
        first_result = await first
        assert first_result.success is True
        assert engine.is_busy() is False

    async def test_concurrent_syncs_one_runs_one_is_busy(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(files={"remote.md": b"R"})
        client.gate = threading.Event()
        engine = _engine(sync_config, client)

        first = asyncio.create_task(engine.sync())
        for _ in range(200):
            if client.ensure_calls:
                break
            await asyncio.sleep(0.01)

        second = await engine.sync()
        client.gate.set()
        first_result = await first

        assert second.success is False
        assert second.message == "Sync already in progress"
        assert second.operation == SyncOperation.SYNC
        assert first_result.success is True
        assert first_result.files_uploaded == 1
        assert first_result.files_downloaded == 1
        assert client.ensure_calls == 1
        assert len(client.batch_calls) == 1

    async def test_busy_flag_released_after_failure(self, sync_config, vault):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(batch_ok=False)
        engine = _engine(sync_config, client)

        result = await engine.push()
        assert result.success is False
        assert engine.is_busy() is False

        client.batch_ok = True
        assert (await engine.push()).success is True

    async def test_unexpected_exception_becomes_failure(self, sync_config):
        client = FakeGitHubClient()

        def boom():
            raise RuntimeError("tree listing exploded")

        client.list_remote_files = boom
        engine = _engine(sync_config, client)

        result = await engine.pull()
        assert result.success is False
        assert result.message == "tree listing exploded"
        assert engine.is_busy() is False

    async def test_exception_without_message_reports_unknown_error(
        self, sync_config
    ):
        client = FakeGitHubClient()

        def boom():
            raise RuntimeError()

        client.list_remote_files = boom
        result = await _engine(sync_config, client).pull()
        assert result.message == "Unknown error"


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------


class TestPush:
    async def test_push_uploads_all_eligible_files_in_one_commit(
        self, sync_config, vault
    ):
        write_files(
            vault,
            {
                "a.md": "A",
                "dir/b.md": "B",
                ".obsidian/plugins/x.js": "X",
            },
        )
        client = FakeGitHubClient()
        result = await _engine(sync_config, client).push()

        assert result.success is True
        assert result.message == "Successfully pushed 2 files"
        assert result.files_uploaded == 2
        assert result.files_downloaded == 0
        assert result.files_deleted == 0
        assert result.operation == SyncOperation.PUSH
        assert _uploaded(client) == {
            "a.md": TextContent("A"),
            "dir/b.md": TextContent("B"),
        }

    async def test_push_uses_rendered_commit_message(self, sync_config, vault):
        write_files(vault, {"a.md": "A"})
        config = dataclasses.replace(
            sync_config, commit_message="Backup {{date}} / {{date}}"
        )
        client = FakeGitHubClient()
        await _engine(config, client).push()

        _, message = client.batch_calls[0]
        assert "{{date}}" not in message
        assert message.startswith("Backup ")
        first, second = message.removeprefix("Backup ").split(" / ")
        assert first == second
        datetime.strptime(first, "%Y-%m-%d %H:%M:%S")

    async def test_empty_vault_pushes_nothing(self, sync_config):
        client = FakeGitHubClient()
        result = await _engine(sync_config, client).push()

        assert result.success is True
        assert result.message == "No files to push"
        assert result.files_uploaded == 0
        assert client.batch_calls == []

    async def test_vault_with_only_excluded_files_pushes_nothing(
        self, sync_config, vault
    ):
        write_files(vault, {".DS_Store": "x", ".trash/old.md": "gone"})
        client = FakeGitHubClient()
        result = await _engine(sync_config, client).push()

        assert result.message == "No files to push"
        assert client.batch_calls == []

    async def test_push_fails_when_repository_unavailable(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(ensure_ok=False)
        result = await _engine(sync_config, client).push()

        assert result.success is False
        assert result.message == "Could not access or create repository"
        assert client.batch_calls == []

    async def test_push_fails_when_batch_upload_fails(self, sync_config, vault):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(batch_ok=False)
        result = await _engine(sync_config, client).push()

        assert result.success is False
        assert result.message == "Failed to push files to GitHub"
        assert result.files_uploaded == 0

    async def test_binary_file_is_uploaded_as_exact_bytes(
        self, sync_config, vault
    ):
        write_files(vault, {"img.png": PNG_BYTES})
        client = FakeGitHubClient()
        await _engine(sync_config, client).push()

        assert _uploaded(client) == {"img.png": BinaryContent(PNG_BYTES)}
        assert client.files["img.png"] == PNG_BYTES

    async def test_push_never_deletes_remote_only_files(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(files={"old.md": b"old"})
        result = await _engine(sync_config, client).push()

        assert result.files_deleted == 0
        assert client.files["old.md"] == b"old"

    async def test_push_uploads_unchanged_files_again(self, sync_config, vault):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient()
        engine = _engine(sync_config, client)

        await engine.push()
        result = await engine.push()

        assert result.files_uploaded == 1
        assert len(client.batch_calls) == 2

    async def test_push_does_not_upload_state_dir(self, sync_config, vault):
        write_files(vault, {"a.md": "A", ".vault_sync/status.json": "{}"})
        client = FakeGitHubClient()
        await _engine(sync_config, client).push()

        assert list(_uploaded(client)) == ["a.md"]


# ---------------------------------------------------------------------------
# Pull
# ---------------------------------------------------------------------------


class TestPull:
    async def test_pull_writes_remote_files_and_skips_excluded(
        self, sync_config, vault
    ):
        client = FakeGitHubClient(
            files={
                "a.md": b"remote",
                "sub/b.md": b"B",
                ".obsidian/plugins/x.js": b"plugin",
                ".trash/gone.md": b"trash",
            }
        )
        result = await _engine(sync_config, client).pull()

        assert result.success is True
        assert result.message == "Successfully pulled 2 files"
        assert result.files_downloaded == 2
        assert result.files_uploaded == 0
        assert (vault / "a.md").read_text() == "remote"
        assert (vault / "sub" / "b.md").read_text() == "B"
        assert not (vault / ".obsidian").exists()
        assert ".obsidian/plugins/x.js" not in client.content_requests

    async def test_pull_overwrites_local_copy(self, sync_config, vault):
        write_files(vault, {"a.md": "local"})
        client = FakeGitHubClient(files={"a.md": b"remote"})
        await _engine(sync_config, client).pull()

        assert (vault / "a.md").read_text() == "remote"

    async def test_pull_keeps_local_only_files(self, sync_config, vault):
        write_files(vault, {"mine.md": "keep"})
        client = FakeGitHubClient(files={"a.md": b"remote"})
        await _engine(sync_config, client).pull()

        assert (vault / "mine.md").read_text() == "keep"

    async def test_pull_decodes_legacy_binary_wrapper(self, sync_config, vault):
        client = FakeGitHubClient(
            files={"img.png": wrap_binary(PNG_BYTES).encode("ascii")}
        )
        await _engine(sync_config, client).pull()

        assert (vault / "img.png").read_bytes() == PNG_BYTES

    async def test_pull_writes_real_binary_blob_unchanged(
        self, sync_config, vault
    ):
        client = FakeGitHubClient(files={"img.png": PNG_BYTES})
        await _engine(sync_config, client).pull()

        assert (vault / "img.png").read_bytes() == PNG_BYTES

    async def test_binary_round_trips_through_push_and_fresh_pull(
        self, sync_config, vault, tmp_path
    ):
        write_files(vault, {"img.png": PNG_BYTES, "empty.pdf": b""})
        client = FakeGitHubClient()
        pushed = await _engine(sync_config, client).push()
        assert pushed.files_uploaded == 2

        fresh = tmp_path / "fresh"
        fresh.mkdir()
        fresh_config = dataclasses.replace(sync_config, vault_path=str(fresh))
        pulled = await _engine(fresh_config, client).pull()

        assert pulled.files_downloaded == 2
        assert (fresh / "img.png").read_bytes() == PNG_BYTES
        assert (fresh / "empty.pdf").read_bytes() == b""

    async def test_wrapper_on_text_path_is_written_verbatim(
        self, sync_config, vault
    ):
        wrapped = wrap_binary(b"abc")
        client = FakeGitHubClient(files={"note.md": wrapped.encode("ascii")})
        await _engine(sync_config, client).pull()

        assert (vault / "note.md").read_text() == wrapped

    async def test_missing_content_is_skipped(self, sync_config, vault):
        client = FakeGitHubClient(files={"a.md": b"A", "b.md": b"B"})
        client.missing_content.add("a.md")
        result = await _engine(sync_config, client).pull()

        assert result.success is True
        assert result.files_downloaded == 1
        assert not (vault / "a.md").exists()

    async def test_write_failure_skips_file_and_continues(
        self, sync_config, vault
    ):
        # A regular file where a folder is needed makes the write fail
        write_files(vault, {"blocked": "file"})
        client = FakeGitHubClient(
            files={"blocked/inner.md": b"x", "ok.md": b"ok"}
        )
        result = await _engine(sync_config, client).pull()

        assert result.success is True
        assert result.files_downloaded == 1
        assert (vault / "ok.md").read_text() == "ok"

    async def test_pull_from_empty_remote(self, sync_config):
        result = await _engine(sync_config, FakeGitHubClient()).pull()

        assert result.success is True
        assert result.message == "Successfully pulled 0 files"


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSync:
    async def test_sync_uploads_local_and_downloads_remote_only(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "local A"})
        client = FakeGitHubClient(files={"a.md": b"remote A", "b.md": b"B"})
        result = await _engine(sync_config, client).sync()

        assert result.success is True
        assert result.message == "Sync complete: 1 uploaded, 1 downloaded"
        assert result.files_uploaded == 1
        assert result.files_downloaded == 1
        assert result.operation == SyncOperation.SYNC
        # Local wins for paths present on both sides
        assert (vault / "a.md").read_text() == "local A"
        assert client.files["a.md"] == b"local A"
        assert (vault / "b.md").read_text() == "B"
        assert "a.md" not in client.content_requests

    async def test_sync_with_empty_vault_only_downloads(
        self, sync_config, vault
    ):
        client = FakeGitHubClient(files={"b.md": b"B"})
        result = await _engine(sync_config, client).sync()

        assert result.message == "Sync complete: 0 uploaded, 1 downloaded"
        assert client.batch_calls == []

    async def test_sync_does_not_download_excluded_remote_paths(
        self, sync_config, vault
    ):
        client = FakeGitHubClient(
            files={".obsidian/themes/t.css": b"t", "Thumbs.db": b"x"}
        )
        result = await _engine(sync_config, client).sync()

        assert result.files_downloaded == 0
        assert client.content_requests == []

    async def test_sync_stops_when_upload_fails(self, sync_config, vault):
        write_files(vault, {"a.md": "A"})
        client = FakeGitHubClient(files={"b.md": b"B"}, batch_ok=False)
        result = await _engine(sync_config, client).sync()

        assert result.success is False
        assert result.message == "Failed to push files to GitHub"
        assert not (vault / "b.md").exists()

    async def test_sync_fails_when_repository_unavailable(self, sync_config):
        client = FakeGitHubClient(ensure_ok=False)
        result = await _engine(sync_config, client).sync()

        assert result.success is False
        assert result.message == "Could not access or create repository"


# ---------------------------------------------------------------------------
# Configuration, status and helpers
# ---------------------------------------------------------------------------


class TestEngineState:
    async def test_update_config_applies_to_next_operation(
        self, sync_config, vault
    ):
        write_files(vault, {"a.md": "A", "b.md": "B"})
        client = FakeGitHubClient()
        engine = _engine(sync_config, client)

        engine.update_config(
            dataclasses.replace(sync_config, excluded_files=["b.md"])
        )
        await engine.push()

        assert list(_uploaded(client)) == ["a.md"]

    async def test_operation_keeps_config_snapshot(self, sync_config, vault):
        seen: list[Config] = []
        client = FakeGitHubClient()

        def factory(cfg):
            seen.append(cfg)
            return client

        engine = SyncEngine(sync_config, client_factory=factory)
        await engine.pull()

        assert seen[0] == sync_config
        assert seen[0] is not sync_config

    async def test_verify_connection(self, sync_config):
        client = FakeGitHubClient(reachable=False)
        engine = _engine(sync_config, client)
        assert await engine.verify_connection() is False

        client.reachable = True
        assert await engine.verify_connection() is True

    async def test_verify_connection_unconfigured(self, vault):
        engine = _engine(Config(vault_path=str(vault)), FakeGitHubClient())
        assert await engine.verify_connection() is False

    async def test_completed_operation_is_recorded(
        self, sync_config, vault, tmp_path
    ):
        store = SyncStatusStore(tmp_path / "state")
        client = FakeGitHubClient(files={"a.md": b"A"})
        await _engine(sync_config, client, status_store=store).pull()

        state = store.load()
        assert state["last_sync"] is not None
        assert state["last_result"]["operation"] == "pull"
        assert state["last_result"]["files_downloaded"] == 1

    async def test_rejected_operation_is_not_recorded(self, vault, tmp_path):
        store = SyncStatusStore(tmp_path / "state")
        engine = _engine(
            Config(vault_path=str(vault)), FakeGitHubClient(), store
        )
        await engine.push()

        assert not store.path.exists()


def test_render_commit_message_replaces_every_token():
    now = datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)
    assert (
        render_commit_message("Vault sync: {{date}} ({{date}})", now)
        == "Vault sync: 2024-03-05 07:08:09 (2024-03-05 07:08:09)"
    )


def test_render_commit_message_without_token():
    assert render_commit_message("Manual backup") == "Manual backup"


def test_render_commit_message_default_time_is_parseable_utc():
    before = datetime.now(timezone.utc).replace(microsecond=0)
    rendered = render_commit_message("{{date}}")
    after = datetime.now(timezone.utc)

    stamp = datetime.strptime(rendered, "%Y-%m-%d %H:%M:%S").replace(
        tzinfo=timezone.utc
    )
    assert before <= stamp <= after
