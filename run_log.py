"""
run_log.py
==========
In-memory log of the current run, shown in the Log tab and uploaded on
request.

Two renderings are kept for every record:
  - upload form   ``[14:02:11] [main/INFO]: message``  (what mclo.gs expects)
  - display form  ``[14:02:11/INFO] message``
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime
from typing import Callable, List

def level_name(levelno: int) -> str:
    """Collapse stdlib levels to the three the run log shows."""
    if levelno >= logging.ERROR:
        return "ERROR"
    if levelno >= logging.WARNING:
        return "WARNING"
    return "INFO"


class RunLogHandler(logging.Handler):
    """Bounded buffer of formatted log lines with optional live listeners."""

    def __init__(self, level: int = logging.INFO, maxlen: int = 5000) -> None:
        super().__init__(level)
        self._upload: deque[str] = deque(maxlen=maxlen)
        self._display: deque[str] = deque(maxlen=maxlen)
        self.listeners: List[Callable[[str, str], None]] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
            level = level_name(record.levelno)
            message = record.getMessage()
            display = f"[{stamp}/{level}] {message}"
            self._upload.append(f"[{stamp}] [main/{level}]: {message}")
            self._display.append(display)
        except Exception:
            self.handleError(record)
            return
        for listener in list(self.listeners):
            try:
                listener(display, level)
            except Exception:
                self.handleError(record)

    def upload_text(self) -> str:
        return "\n".join(self._upload) + ("\n" if self._upload else "")

    def display_lines(self) -> List[str]:
        return list(self._display)

    def clear(self) -> None:
        self._upload.clear()
        self._display.clear()
