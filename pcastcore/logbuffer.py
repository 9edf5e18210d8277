"""A ring buffer of fixed-width log lines."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

from pcastcore.streams import Stream
from pcastcore.text import StringType, TypedString


class LogType(IntEnum):
    NONE = 0
    DEBUG = 1
    ERROR = 2
    NETWORK = 3
    CHANNEL = 4

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    LogType.NONE: "",
    LogType.DEBUG: "DBUG",
    LogType.ERROR: "EROR",
    LogType.NETWORK: "GNET",
    LogType.CHANNEL: "CHAN",
}


@dataclass
class LogEntry:
    time: int
    log_type: LogType
    text: str


def _default_clock() -> int:
    return int(time.time())


class LogBuffer:
    """Keeps the most recent ``max_lines`` lines of at most ``line_len - 1`` chars.

    Longer messages are split; only the first piece carries the time and type.
    """

    def __init__(self, max_lines: int = 1000, line_len: int = 100, *,
                 clock: Callable[[], int] | None = None):
        if max_lines < 1 or line_len < 2:
            raise ValueError("log buffer too small")
        self.max_lines = max_lines
        self.line_len = line_len
        self.curr_line = 0
        self._lines: list[LogEntry | None] = [None] * max_lines
        self._lock = threading.RLock()
        self._clock = clock or _default_clock

    def write(self, text: str, log_type: LogType = LogType.DEBUG) -> None:
        width = self.line_len - 1
        with self._lock:
            for start in range(0, len(text), width):
                if start == 0:
                    entry = LogEntry(self._clock(), LogType(log_type), text[:width])
                else:
                    entry = LogEntry(0, LogType.NONE, text[start:start + width])
                self._lines[self.curr_line % self.max_lines] = entry
                self.curr_line += 1

    def clear(self) -> None:
        with self._lock:
            self.curr_line = 0

    def entries(self) -> list[LogEntry]:
        """The retained lines, oldest first."""
        with self._lock:
            count = self.curr_line
            start = 0
            if count > self.max_lines:
                count = self.max_lines - 1
                start = (self.curr_line + 1) % self.max_lines
            return [
                self._lines[(start + offset) % self.max_lines]
                for offset in range(count)
            ]

    def dump_html(self, out: Stream) -> None:
        """Write the retained lines to ``out`` as HTML."""
        with self._lock:
            for entry in self.entries():
                if entry.log_type:
                    stamp = TypedString()
                    stamp.set_from_time(entry.time)
                    out.write_string(str(stamp))
                    out.write_string(" <b>[")
                    out.write_string(entry.log_type.label)
                    out.write_string("]</b> ")
                line = TypedString(entry.text)
                line.convert_to(StringType.HTML)
                out.write_string(str(line))
                out.write_string("<br>")