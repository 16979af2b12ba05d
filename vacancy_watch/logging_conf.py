"""Logging configuration built around structlog JSON logging."""

from __future__ import annotations

import logging
import logging.config
import os
import re
from pathlib import Path
from typing import Iterable

import structlog

_LOGGING_INITIALISED = False


def _default_log_dir() -> Path:
    env_root = os.environ.get("VACANCY_WATCH_HOME")
    if env_root:
        return Path(env_root).expanduser().resolve() / "logs"
    return Path(__file__).resolve().parents[1] / "logs"


def feed_slug(feed_url: str) -> str:
    """Turn a feed URL into a filesystem friendly name."""

    stripped = re.sub(r"^[a-z]+://", "", feed_url.strip().lower())
    slug = re.sub(r"[^0-9a-z]+", "-", stripped).strip("-")
    return slug[:120] or "feed"


def configure_logging(verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Configure structlog + stdlib handlers and return application logger."""

    global _LOGGING_INITIALISED
    log_dir = _default_log_dir()
    error_log = log_dir / "error.log"
    watch_log = log_dir / "watch.log"
    sources_dir = log_dir / "sources"
    sources_dir.mkdir(parents=True, exist_ok=True)
    error_log.touch(exist_ok=True)
    watch_log.touch(exist_ok=True)

    if not _LOGGING_INITIALISED:
        level = "DEBUG" if verbose else "INFO"
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {
                    "json": {
                        "()": "pythonjsonlogger.json.JsonFormatter",
                        "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    }
                },
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "level": level,
                        "formatter": "json",
                    },
                    "watch_file": {
                        "class": "logging.FileHandler",
                        "level": "INFO",
                        "filename": str(watch_log),
                        "encoding": "utf-8",
                        "formatter": "json",
                    },
                    "error_file": {
                        "class": "logging.FileHandler",
                        "level": "ERROR",
                        "filename": str(error_log),
                        "encoding": "utf-8",
                        "formatter": "json",
                    },
                },
                "loggers": {
                    "vacancy_watch": {
                        "handlers": ["console", "watch_file", "error_file"],
                        "level": level,
                        "propagate": False,
                    },
                },
            }
        )

        # Bound key-values travel as ``extra`` so the JSON formatter emits them as fields
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.contextvars.merge_contextvars,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.stdlib.render_to_log_kwargs,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        _LOGGING_INITIALISED = True
    return structlog.get_logger("vacancy_watch")


def source_logger(feed_url: str, verbose: bool = False) -> structlog.stdlib.BoundLogger:
    """Return a logger bound to a specific feed and ensure its file handler exists."""

    configure_logging(verbose)
    slug = feed_slug(feed_url)
    source_log_path = _default_log_dir() / "sources" / f"{slug}.log"
    source_log_path.parent.mkdir(parents=True, exist_ok=True)

    logger_name = f"vacancy_watch.source.{slug}"
    py_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler) and handler.baseFilename == str(source_log_path)
        for handler in py_logger.handlers
    ):
        file_handler = logging.FileHandler(source_log_path, encoding="utf-8")
        global_logger = logging.getLogger("vacancy_watch")
        if global_logger.handlers:
            file_handler.setFormatter(global_logger.handlers[0].formatter)
        file_handler.setLevel(logging.INFO)
        py_logger.addHandler(file_handler)

    return structlog.get_logger(logger_name).bind(feed=feed_url)


def tail_log(path: Path, line_count: int = 100) -> list[str]:
    """Return the last N lines from a log file."""

    if not path.exists():
        return []
    with path.open("r", encoding="utf-8", errors="ignore") as stream:
        lines = stream.readlines()
    return lines[-line_count:]


def log_dir() -> Path:
    return _default_log_dir()


def available_source_logs() -> Iterable[Path]:
    """Yield available per-feed log file paths."""

    sources_dir = _default_log_dir() / "sources"
    if not sources_dir.exists():
        return []
    return sorted(p for p in sources_dir.glob("*.log"))


__all__ = [
    "available_source_logs",
    "configure_logging",
    "feed_slug",
    "log_dir",
    "source_logger",
    "tail_log",
]
