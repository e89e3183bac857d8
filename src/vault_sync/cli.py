"""Command-line interface for vault-sync.

Subcommands map one-to-one onto engine operations:

    vault-sync push      commit every eligible vault file
    vault-sync pull      download every remote file into the vault
    vault-sync sync      push, then download remote-only files
    vault-sync verify    check that the repository is reachable
    vault-sync status    show the last recorded sync
    vault-sync watch     run periodic sync in the foreground
    vault-sync init      write a starter config file
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from . import __version__
from .bootstrap import load_runtime_config
from .config import Config
from .config_loader import ensure_config
from .logger import setup_logging
from .sync import (
    AutoSyncScheduler,
    SyncEngine,
    SyncResult,
    SyncStatusStore,
    format_status,
    format_sync_result,
    result_to_json,
)
from .sync.models import NOT_CONFIGURED_MESSAGE

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


def _print_result(result: SyncResult, as_json: bool) -> int:
    if as_json:
        print(json.dumps(result_to_json(result), indent=2))
    else:
        print(format_sync_result(result))
    return EXIT_OK if result.success else EXIT_FAILURE


def _build_engine(config: Config) -> SyncEngine:
    return SyncEngine(config, status_store=SyncStatusStore.for_config(config))


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _cmd_operation(engine: SyncEngine, args: argparse.Namespace) -> int:
    operation = getattr(engine, args.command)
    result = await operation()
    return _print_result(result, args.json)


async def _cmd_verify(engine: SyncEngine, args: argparse.Namespace) -> int:
    config = engine.config
    if not engine.is_configured():
        ok = False
        message = NOT_CONFIGURED_MESSAGE
    else:
        ok = await engine.verify_connection()
        target = f"{config.github_username}/{config.repository}"
        message = (
            f"Connected to {target}"
            if ok
            else f"Cannot access {target}. Check GITHUB_USERNAME, "
            "GITHUB_TOKEN and VAULT_SYNC_REPOSITORY."
        )

    if args.json:
        print(json.dumps({"success": ok, "message": message}, indent=2))
    else:
        print(message)
    return EXIT_OK if ok else EXIT_FAILURE


async def _cmd_status(engine: SyncEngine, args: argparse.Namespace) -> int:
    store = SyncStatusStore.for_config(engine.config)
    try:
        state = store.load()
    except (OSError, ValueError) as e:
        print(
            f"ERROR: Cannot read sync status file {store.path}: {e}",
            file=sys.stderr,
        )
        return EXIT_FAILURE
    if args.json:
        payload: dict[str, Any] = dict(state)
        payload["configured"] = engine.is_configured()
        print(json.dumps(payload, indent=2))
    else:
        print(format_status(state, configured=engine.is_configured()))
    return EXIT_OK


async def _cmd_watch(engine: SyncEngine, args: argparse.Namespace) -> int:
    if not engine.is_configured():
        print(f"Sync failed: {NOT_CONFIGURED_MESSAGE}", file=sys.stderr)
        return EXIT_FAILURE

    interval = args.interval or engine.config.auto_sync_interval
    scheduler = AutoSyncScheduler(
        engine,
        interval_minutes=interval,
        on_result=lambda result: _print_result(result, args.json),
    )
    print(
        f"Syncing every {interval} minutes. Press Ctrl+C to stop.",
        file=sys.stderr,
    )
    scheduler.start()
    try:
        # First sync right away, then on the timer
        await scheduler.tick()
        await asyncio.Event().wait()
    finally:
        await scheduler.stop()
    return EXIT_OK


_HANDLERS = {
    "push": _cmd_operation,
    "pull": _cmd_operation,
    "sync": _cmd_operation,
    "verify": _cmd_verify,
    "status": _cmd_status,
    "watch": _cmd_watch,
}


async def main(args: argparse.Namespace) -> int:
    """Load configuration, build the engine and run one command."""
    overrides: dict[str, Any] = {"debug": args.debug}
    if args.username:
        overrides["username"] = args.username
    if args.repo:
        overrides["repository"] = args.repo
    if args.branch:
        overrides["branch"] = args.branch
    if args.vault:
        overrides["vault_path"] = args.vault

    runtime = load_runtime_config(overrides)
    engine = _build_engine(runtime.config)
    return await _HANDLERS[args.command](engine, args)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-sync",
        description="Mirror a local vault onto a GitHub repository branch",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One-off push using credentials from the environment
  GITHUB_USERNAME=octocat GITHUB_TOKEN=... vault-sync --repo notes push

  # Two-way sync of a specific vault
  vault-sync --vault ~/Documents/Vault sync

  # Machine-readable result
  vault-sync --json pull

The token is read from GITHUB_TOKEN or the config file only, never from
the command line.
        """,
    )
    parser.add_argument("--vault", help="Vault root directory")
    parser.add_argument("--repo", help="Repository name (created if missing)")
    parser.add_argument("--branch", help="Branch to sync (default: main)")
    parser.add_argument("--username", help="GitHub account owning the repository")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vault-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("push", help="Commit every eligible vault file")
    sub.add_parser("pull", help="Download every remote file into the vault")
    sub.add_parser("sync", help="Push, then download remote-only files")
    sub.add_parser("verify", help="Check repository access")
    sub.add_parser("status", help="Show the last recorded sync")
    watch = sub.add_parser("watch", help="Run periodic sync until interrupted")
    watch.add_argument(
        "--interval",
        type=int,
        help="Minutes between syncs (default: from config)",
    )
    sub.add_parser("init", help="Write a starter config file")
    return parser


def run(argv: list[str] | None = None) -> None:
    """Entry point that handles errors gracefully and parses CLI arguments."""
    args = build_parser().parse_args(argv)
    setup_logging(mode="cli", debug=args.debug, log_file=args.log_file)

    if args.command == "init":
        path = ensure_config()
        print(f"Config file: {path}")
        sys.exit(EXIT_OK)

    try:
        code = asyncio.run(main(args))
    except ValueError as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(EXIT_OK)
    sys.exit(code)


if __name__ == "__main__":
    run()
