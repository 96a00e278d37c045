"""Concurrent capture of a subprocess's stdout and stderr.

Each stream gets its own reader thread so a chatty stderr can never stall
stdout (or the other way round). Lines land in a :class:`LineBuffer`,
which any thread may read while the reader appends.
"""

from __future__ import annotations

import logging
import subprocess
import threading
from typing import IO

logger = logging.getLogger(__name__)


class LineBuffer:
    """Append-only text buffer guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: list[str] = []

    def append(self, line: str) -> None:
        with self._lock:
            self._chunks.append(line)

    def text(self) -> str:
        with self._lock:
            return "".join(self._chunks)

    def lines(self) -> list[str]:
        return self.text().splitlines()

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)


def _drain(stream: IO[str], buffer: LineBuffer) -> None:
    try:
        for line in iter(stream.readline, ""):
            if not line.endswith("\n"):
                # EOF in the middle of a line.
                line += "\n"
            buffer.append(line)
    except ValueError:
        # Stream closed underneath us by the process owner.
        logger.debug("stream closed while reading")
    finally:
        stream.close()


class StreamCapture:
    """Drain a process's stdout and stderr into two live buffers.

    The process must have been started with ``stdout=PIPE, stderr=PIPE`` in
    text mode. This object does not own the process; its threads end when
    the streams close.
    """

    def __init__(self, process: subprocess.Popen) -> None:
        if process.stdout is None or process.stderr is None:
            raise ValueError("process must be started with stdout and stderr piped")
        self.stdout = LineBuffer()
        self.stderr = LineBuffer()
        self._threads = [
            threading.Thread(
                target=_drain, args=(process.stdout, self.stdout),
                name=f"stdout-{process.pid}", daemon=True,
            ),
            threading.Thread(
                target=_drain, args=(process.stderr, self.stderr),
                name=f"stderr-{process.pid}", daemon=True,
            ),
        ]
        for thread in self._threads:
            thread.start()

    def combined(self) -> str:
        """Stdout followed by stderr, as one string."""
        return f"{self.stdout.text()}\n{self.stderr.text()}"

    def join(self, timeout: float | None = None) -> bool:
        """Wait for both readers; return True if they finished."""
        for thread in self._threads:
            thread.join(timeout)
        return not any(thread.is_alive() for thread in self._threads)
