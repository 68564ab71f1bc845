# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import asyncio
import queue
import sys
import threading
from pathlib import Path
from typing import IO, Any, Optional, Sequence, Tuple, Union

from loguru import logger

from coreason_timestamp_logger.exceptions import SinkClosedError

# ANSI color codes, applied to the console prefix only
ANSI_COLOR_RESET = "\x1b[39m"
ANSI_GREY = "\x1b[90m"
ANSI_YELLOW = "\x1b[33m"
ANSI_RED = "\x1b[31m"

LEVEL_COLORS = {
    "debug": ANSI_GREY,
    "info": "",
    "warn": ANSI_YELLOW,
    "error": ANSI_RED,
}


def write_console(level: str, prefix: str, messages: Sequence[Any], colorize: bool = True) -> None:
    """
    Prints the prefix and the messages, as is, to stdout (debug, info) or stderr (warn, error).
    """
    stream = sys.stderr if level in ("warn", "error") else sys.stdout
    color = LEVEL_COLORS[level] if colorize else ""
    if color:
        prefix = f"{color}{prefix}{ANSI_COLOR_RESET}"
    print(prefix, *messages, file=stream)


class FileSink:
    """
    Append-mode text file fed through a queue and written by a background thread, so that logging calls
    never wait on the disk.

    `write` reports backpressure: it returns False once more than `high_water_mark` bytes are waiting to be
    written, and callers that care can `flush()` before writing more. I/O errors are reported and don't stop
    the sink, since they may be transient (e.g. a full disk); the file is reopened for the next line.
    """

    def __init__(self, path: Union[str, Path], high_water_mark: int = 16384, encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.high_water_mark = high_water_mark
        self.encoding = encoding

        self._queue: "queue.Queue[Optional[Tuple[str, int]]]" = queue.Queue()
        self._lock = threading.Lock()
        self._pending = 0
        self._ended = False
        self._file: Optional[IO[str]] = None
        self._thread = threading.Thread(target=self._run, name=f"FileSink({self.path.name})", daemon=True)
        self._thread.start()

    @property
    def pending_bytes(self) -> int:
        with self._lock:
            return self._pending

    @property
    def ended(self) -> bool:
        return self._ended

    @property
    def closed(self) -> bool:
        return self._ended and not self._thread.is_alive()

    def write(self, text: str) -> bool:
        """
        Queues `text` for writing.

        Returns:
            True if more can be written right away, False if the queue is above the high water mark.

        Raises:
            SinkClosedError: The sink has been ended.
        """
        size = len(text.encode(self.encoding))
        with self._lock:
            if self._ended:
                raise SinkClosedError(f"Cannot write to {self.path}: the file sink has been closed")
            self._pending += size
            pending = self._pending
        self._queue.put((text, size))
        return pending < self.high_water_mark

    def flush(self) -> None:
        """
        Blocks until every queued line has been written and flushed to the file.
        """
        self._queue.join()

    def end(self) -> None:
        """
        Requests the file to be closed once the queued lines are written, without waiting for it.
        """
        with self._lock:
            if self._ended:
                return
            self._ended = True
        self._queue.put(None)

    def close(self) -> None:
        """
        Ends the sink and waits until the file is closed.
        """
        self.end()
        self._thread.join()

    async def aclose(self) -> None:
        """
        Ends the sink and waits, without blocking the event loop, until the file is closed.
        """
        self.end()
        await asyncio.to_thread(self._thread.join)

    def _open(self) -> None:
        try:
            self._file = open(self.path, "a", encoding=self.encoding)
        except OSError as e:
            logger.error(f"Logger file {self.path} stream error: {e}")

    def _release(self) -> None:
        if self._file is None:
            return
        try:
            self._file.close()
        except OSError as e:
            logger.error(f"Logger file {self.path} stream error: {e}")
        finally:
            self._file = None

    def _write(self, text: str, size: int) -> None:
        try:
            if self._file is None:
                self._open()
            if self._file is not None:
                self._file.write(text)
                if self._queue.empty():
                    self._file.flush()
        except OSError as e:
            logger.error(f"Logger file {self.path} stream error: {e}")
            self._release()
        finally:
            with self._lock:
                self._pending -= size

    def _run(self) -> None:
        self._open()
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    break
                self._write(*item)
            finally:
                self._queue.task_done()
        self._release()
