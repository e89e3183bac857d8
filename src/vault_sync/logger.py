"""Logging setup for the CLI and the MCP server.

Every handler installed here carries ``TokenRedactionFilter`` so a
GitHub token that ends up in an exception message or a debug dump of
request headers is masked before it reaches stderr or a log file.
"""

import json
import logging
import os
import re
import sys

_DATEFMT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_MCP_LOG_FILE = "/tmp/vault-sync-mcp.log"

# Classic (ghp_, gho_, ghu_, ghs_, ghr_) and fine-grained tokens, plus
# anything sent as a bearer credential
_TOKEN_PATTERN = re.compile(
    r"\bgh[pousr]_[A-Za-z0-9]{20,}\b"
    r"|\bgithub_pat_[A-Za-z0-9_]{20,}\b"
    r"|(?<=Bearer )[^\s'\"]+"
)
REDACTED = "***"


def redact_tokens(text: str) -> str:
    """Mask every GitHub token found in *text*."""
    return _TOKEN_PATTERN.sub(REDACTED, text)


class TokenRedactionFilter(logging.Filter):
    """Rewrite each record's message with tokens masked."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_tokens(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for structured debug output.

    Produces one JSON object per log record with fields: ts, level, logger, msg.
    Exception info is included as an "exc" field when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = redact_tokens(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


def _make_handler(
    handler: logging.Handler, debug_format: str, with_name: bool
) -> logging.Handler:
    if debug_format == "json":
        handler.setFormatter(JsonFormatter(datefmt=_DATEFMT))
    else:
        fmt = (
            "[%(asctime)s] [%(levelname)s] %(name)s %(message)s"
            if with_name
            else "[%(asctime)s] [%(levelname)s] %(message)s"
        )
        handler.setFormatter(logging.Formatter(fmt, datefmt=_DATEFMT))
    handler.addFilter(TokenRedactionFilter())
    return handler


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
) -> None:
    """
    Configure logging based on execution mode.

    Args:
        mode: "mcp" for file logging (never stdout), "cli" for stderr logging.
        debug: If True, overrides LOG_LEVEL to DEBUG.
        log_file: Custom log file path (overrides LOG_FILE env var in MCP
            mode; adds a second handler in CLI mode).
        debug_format: "text" (default) or "json" for structured output.

    Environment variables:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR).
                   Default: WARNING for MCP mode, INFO for CLI mode.
        LOG_FILE: Custom log file path for MCP mode.
                  Default: /tmp/vault-sync-mcp.log
    """
    default_level = "WARNING" if mode == "mcp" else "INFO"
    env_level = os.getenv("LOG_LEVEL", default_level).upper()

    if debug:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, env_level, logging.INFO)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        # stdio transport owns stdout; log to a file only
        final_log_file = log_file or os.getenv(
            "LOG_FILE", _DEFAULT_MCP_LOG_FILE
        )
        handlers.append(
            _make_handler(
                logging.FileHandler(final_log_file, mode="a"),
                debug_format,
                with_name=True,
            )
        )
    else:
        handlers.append(
            _make_handler(
                logging.StreamHandler(sys.stderr),
                debug_format,
                with_name=False,
            )
        )
        if log_file:
            handlers.append(
                _make_handler(
                    logging.FileHandler(log_file, mode="a"),
                    debug_format,
                    with_name=True,
                )
            )

    logging.basicConfig(level=log_level, handlers=handlers)

    # Silence third-party libs unless DEBUG
    if log_level != logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)
