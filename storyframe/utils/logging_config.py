"""
JSON logging for storyframe.

Every ``storyframe.*`` logger writes one JSON object per line to the log file
named in settings; warnings and errors are mirrored to stderr. Handlers are
attached to the ``storyframe`` logger the first time :func:`get_logger` runs.

Context that should travel with a record goes in ``extra``::

    logger = get_logger("storyframe.order")
    logger.warning("order fallback", extra={"template": "Custom", "act_key": "setup"})

Generation flows wrap their logger in :class:`ProjectAdapter` so every record
carries the project id.
"""
from __future__ import annotations

import json
import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, MutableMapping, Sequence

from storyframe.config import get_settings

ROOT_LOGGER = "storyframe"

CONTEXT_FIELDS = (
    "project_id",
    "act_key",
    "template",
    "level_built",
    "target_level",
    "duration_ms",
    "metadata",
)


class JSONFormatter(logging.Formatter):
    """Single-line JSON records with the known context fields lifted to the top level."""

    def __init__(self, fields: Sequence[str] = CONTEXT_FIELDS):
        super().__init__()
        self.fields = tuple(fields)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in self.fields
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class ProjectAdapter(logging.LoggerAdapter):
    """Adds ``project_id`` to each record, merged with any caller ``extra``."""

    def __init__(self, logger: logging.Logger, project_id: str):
        super().__init__(logger, {"project_id": project_id})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]):
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def setup_logging(log_file: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """Attach the file and stderr handlers once; later calls return the configured logger."""
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    root.setLevel(level)
    root.propagate = False
    formatter = JSONFormatter()

    file_handler = logging.FileHandler(log_file or get_settings().log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root.addHandler(file_handler)
    root.addHandler(stderr_handler)
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    setup_logging()
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


@contextmanager
def log_duration(logger: logging.Logger | logging.LoggerAdapter, message: str, **extra: Any) -> Iterator[None]:
    """Log ``message`` at INFO with ``duration_ms`` when the block completes without raising."""
    started = time.monotonic()
    yield
    extra["duration_ms"] = int((time.monotonic() - started) * 1000)
    logger.info(message, extra=extra)
