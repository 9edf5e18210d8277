"""Process-level services: clock, random numbers, threads and opening URLs."""

from __future__ import annotations

import os
import sys
import threading
import time
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from pcastcore.logbuffer import LogBuffer
from pcastcore.streams import StreamTimeout

_MASK = 0xFFFFFFFF


class Random:
    """Multiply-with-carry generator giving 32-bit values."""

    DEFAULT_SEED = 0x14235465

    def __init__(self, seed: int = DEFAULT_SEED):
        self.a = 0
        self.b = 0
        self.set_seed(seed)

    def set_seed(self, seed: int) -> None:
        self.a = self.b = seed & _MASK

    def next(self) -> int:
        self.a = (36969 * (self.a & 0xFFFF) + (self.a >> 16)) & _MASK
        self.b = (18000 * (self.b & 0xFFFF) + (self.b >> 16)) & _MASK
        return ((self.a << 16) + self.b) & _MASK


@dataclass
class ThreadInfo:
    """State shared between a worker thread and the code that started it."""

    func: Callable[["ThreadInfo"], Any] | None = None
    data: Any = None
    active: bool = False
    id: int = 0
    handle: threading.Thread | None = None

    def shutdown(self) -> None:
        """Ask the thread to stop; the thread checks ``active`` itself."""
        self.active = False


class System:
    """Time, randomness, threads and hand-off of URLs and files to the desktop."""

    def __init__(self, *, seed: int | None = None,
                 clock: Callable[[], int] | None = None,
                 opener: Callable[[str], Any] | None = None,
                 idle_sleep_time: int = 10):
        self.idle_sleep_time = idle_sleep_time
        self.num_threads = 0
        self._clock = clock
        self._opener = opener or webbrowser.open
        self._lock = threading.Lock()
        self.log_buf = LogBuffer(1000, 100, clock=self.get_time)
        self.rnd_gen = Random()
        if seed is None:
            seed = self.rnd() + os.getpid()
        self.rnd_gen.set_seed(seed)
        self.rnd_seed = self.rnd()

    def get_time(self) -> int:
        """Whole seconds since the epoch."""
        if self._clock is not None:
            return self._clock()
        return int(time.time())

    def get_dtime(self) -> float:
        """Seconds since the epoch with sub-second precision."""
        return time.time()

    def rnd(self) -> int:
        return self.rnd_gen.next()

    def sleep(self, ms: int) -> None:
        time.sleep(ms / 1000)

    def sleep_idle(self) -> None:
        self.sleep(self.idle_sleep_time)

    def start_thread(self, info: ThreadInfo) -> bool:
        """Run ``info.func(info)`` on a daemon thread; False if it cannot start."""
        info.active = True
        thread = threading.Thread(target=info.func, args=(info,), daemon=True)
        info.handle = thread
        with self._lock:
            self.num_threads += 1
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self.num_threads -= 1
            return False
        return True

    def end_thread(self, info: ThreadInfo) -> None:
        """Called by a thread function as it finishes."""
        with self._lock:
            self.num_threads -= 1

    def wait_thread(self, info: ThreadInfo, timeout: int = 30000) -> None:
        """Wait up to ``timeout`` ms for the thread to finish."""
        thread = info.handle
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout / 1000)
        if thread.is_alive():
            raise StreamTimeout("Timeout waiting for thread")

    def has_gui(self) -> bool:
        return False

    def get_url(self, url: str) -> None:
        self._opener(url)

    def call_local_url(self, path: str, port: int) -> None:
        self._opener(f"http://localhost:{port}/{path}")

    def execute_file(self, path) -> None:
        self._opener(Path(path).resolve().as_uri())

    def exit(self) -> None:
        sys.exit(0)