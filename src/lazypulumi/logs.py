"""Logging setup: a truncated log file plus an in-memory ring buffer.

The TUI owns the terminal, so nothing is logged to stderr. Records go
to ``app.log`` in the user cache directory and to a bounded buffer the
log viewer popup reads from.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}


class LogBuffer(logging.Handler):
    """Keeps the most recent formatted records for the log viewer."""

    def __init__(self, capacity: int = 1000) -> None:
        super().__init__()
        self._lines: deque[str] = deque(maxlen=capacity)
        self._guard = threading.Lock()
        self.setFormatter(logging.Formatter(LOG_FORMAT, "%H:%M:%S"))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return
        with self._guard:
            self._lines.extend(line.splitlines() or [""])

    def lines(self, limit: int | None = None) -> list[str]:
        with self._guard:
            items = list(self._lines)
        if limit is not None and limit < len(items):
            return items[-limit:]
        return items

    def __len__(self) -> int:
        return len(self._lines)


def parse_log_filter(spec: str) -> tuple[int, dict[str, int]]:
    """Parse ``"info,lazypulumi.api=debug"`` into root and per-logger levels.

    A bare level sets the root; ``target=level`` pairs set a named
    logger. Unknown levels are ignored.
    """
    root = logging.INFO
    targets: dict[str, int] = {}
    for part in (spec or "").split(","):
        part = part.strip()
        if not part:
            continue
        if "=" in part:
            target, _, level_name = part.partition("=")
            level = _LEVELS.get(level_name.strip().lower())
            if level is not None and target.strip():
                targets[target.strip()] = level
        else:
            level = _LEVELS.get(part.lower())
            if level is not None:
                root = level
    return root, targets


def setup_logging(
    log_file: Path | None,
    log_filter: str = "info",
    *,
    buffer: LogBuffer | None = None,
) -> LogBuffer:
    """Install the file handler and ring buffer on the root logger."""
    buffer = buffer or LogBuffer()
    root_level, targets = parse_log_filter(log_filter)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(root_level)
    root.addHandler(buffer)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
            root.addHandler(file_handler)
        except OSError as e:
            logging.getLogger(__name__).warning("Cannot open log file %s: %s", log_file, e)

    for name, level in targets.items():
        logging.getLogger(name).setLevel(level)

    # httpx logs every request at INFO
    if "httpx" not in targets:
        logging.getLogger("httpx").setLevel(max(root_level, logging.WARNING))
    return buffer
