"""Structured logging setup for Postdraft.

Events are written as JSON lines, one file per user. Commands that work on a
single post bind ``post_id`` with ``bind_post`` so every event logged while
they run carries it, including events from the engine modules that never see
the post.
"""

import os
from pathlib import Path
from typing import Any, Optional

import structlog

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

LEVEL_ENV_VAR = "POSTDRAFT_LOG_LEVEL"


def default_log_file() -> Path:
    return Path.home() / ".cache" / "postdraft" / "logs" / "postdraft.log"


def resolve_level(level: Optional[str] = None) -> str:
    """Pick the log level: explicit value, then POSTDRAFT_LOG_LEVEL, then INFO.

    Unknown names fall back to INFO rather than failing startup.
    """
    name = (level or os.environ.get(LEVEL_ENV_VAR) or "INFO").upper()
    return name if name in LOG_LEVELS else "INFO"


def configure_logging(log_file: Optional[Path] = None, level: Optional[str] = None) -> Path:
    """
    Configure structlog for JSON logging.

    DEBUG shows every streamed chunk, patch and debounce reset; INFO covers
    completion lifecycle, saves and metadata updates.

    Args:
        log_file: Destination (default ~/.cache/postdraft/logs/postdraft.log)
        level: Level name; overrides POSTDRAFT_LOG_LEVEL

    Returns:
        The file events are appended to

    Example:
        postdraft --log-level debug edit 42
        tail -f ~/.cache/postdraft/logs/postdraft.log | jq .
    """
    log_file = log_file or default_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    structlog.contextvars.clear_contextvars()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_level(level)),
        context_class=dict,
        logger_factory=structlog.WriteLoggerFactory(file=open(log_file, "a")),
        cache_logger_on_first_use=False,
    )
    return log_file


def bind_post(post_id: str) -> None:
    """Attach ``post_id`` to every event logged from here on in this context."""
    structlog.contextvars.bind_contextvars(post_id=post_id)


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
