# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import re
from types import TracebackType
from typing import Any, List, Optional, Type

from pydantic import ValidationError

from coreason_timestamp_logger.config import LEVELS, LoggerConfig
from coreason_timestamp_logger.exceptions import ConfigurationError
from coreason_timestamp_logger.sanitize import sanitize
from coreason_timestamp_logger.serialize import MessageSerializer
from coreason_timestamp_logger.sinks import FileSink, write_console
from coreason_timestamp_logger.timestamps import DateLike, local_iso_dt, timestamp

LEADING_NEWLINES_RE = re.compile(r"^\n+")

# Level tag written to the file
LEVEL_TAGS = {
    "debug": "debug",
    "info": "info",
    "warn": "WARN",
    "error": "ERROR",
}


class Logger:
    """
    Logs to the console and, optionally, to a file. Every line starts with the time in RFC3339
    `[YYYY-MM-DD HH:MM:SS]` format, in the local timezone (or UTC), optionally with milliseconds and a per-instance id.

    The console receives the values as is, with the prefix colored by level. The file receives full dumps of
    the values (see `MessageSerializer`) after a level tag: `debug`, `info`, `WARN` or `ERROR`.

    Example:
        >>> with Logger(filename="app.log") as log:
        ...     log.info("Got", 3, "results")
        ...     log.error("Failed:", ValueError("oops"))
    """

    def __init__(self, config: Optional[LoggerConfig] = None, **options: Any) -> None:
        """
        Args:
            config: A LoggerConfig. Alternatively, pass its fields as keyword arguments.
            **options: LoggerConfig fields: console, filename, show_millis, clean_stack, id, utc_time, level,
                high_water_mark.

        Raises:
            ConfigurationError: Invalid options, or neither console nor file output requested.
        """
        if config is not None and options:
            raise ConfigurationError("Pass either a LoggerConfig or keyword options, not both.")
        try:
            self.config = config if config is not None else LoggerConfig(**options)
        except ValidationError as e:
            raise ConfigurationError(str(e)) from e

        self.serializer = MessageSerializer(utc_time=self.config.utc_time, show_millis=self.config.show_millis)
        # The file sink, which can also be handed to anything expecting a `.write()` stream
        self.stream: Optional[FileSink] = None
        if self.config.filename is not None:
            self.stream = FileSink(self.config.filename, high_water_mark=self.config.high_water_mark)

    @property
    def id(self) -> Optional[str]:
        return self.config.id  # type: ignore[return-value]

    def local_iso_dt(self, d: DateLike = None) -> str:
        """
        `YYYY-MM-DDTHH:MM:SS[.mmm]` rendering of `d` (default: now), honoring the utc_time and show_millis options.
        """
        return local_iso_dt(d, utc_time=self.config.utc_time, show_millis=self.config.show_millis)

    def timestamp(self, d: DateLike = None) -> str:
        """
        The bracketed timestamp starting each line, e.g. `[2025-04-20 05:59:00]`.
        """
        return timestamp(d, utc_time=self.config.utc_time, show_millis=self.config.show_millis)

    def prepare_messages(self, messages: List[Any]) -> str:
        """
        Builds the line prefix: timestamp and optional id.

        Newlines at the start of a leading string message are moved *before* the timestamp, since the caller
        wanted them before the whole line. `messages[0]` is updated in place. Only the leading newlines of the
        first message count; newlines anywhere else are left alone.

        Returns:
            The prefix, e.g. `\\n\\n[2025-04-20 05:59:00] [d45c]`.
        """
        initial_newlines = ""
        if messages and isinstance(messages[0], str):
            match = LEADING_NEWLINES_RE.match(messages[0])
            if match:
                initial_newlines = match.group(0)
                messages[0] = messages[0][len(initial_newlines) :]
        prefix = initial_newlines + self.timestamp()
        if self.config.id:
            prefix += f" [{self.config.id}]"
        return prefix

    def _log(self, level: str, messages: List[Any], colorize: bool = True) -> bool:
        if not self.config.is_enabled_for(level):
            return True
        prefix = self.prepare_messages(messages)
        # A missing home directory must fail the call before anything is output; cycles are cut either way
        file_values = sanitize(messages, self.config.clean_stack_options)

        if self.config.console:
            write_console(level, prefix, messages, colorize=colorize)
        if self.stream is None:
            return True
        return self.stream.write(f"{prefix} {LEVEL_TAGS[level]}: {self.serializer.serialize_all(file_values)}\n")

    def log(self, level: str, *messages: Any) -> bool:
        """
        Logs at the given level, one of `debug`, `info`, `warn` or `error`.
        """
        if level not in LEVELS:
            raise ValueError(f"Unknown level {level!r}, expected one of {', '.join(LEVELS)}")
        return self._log(level, list(messages))

    def debug(self, *messages: Any) -> bool:
        """
        Logs with a grey prefix to the console, and with the `debug` tag to the file.

        Returns:
            True if logging to the console only, or if the file queue is below the high water mark; False if
            the caller should `flush()` before writing more.
        """
        return self._log("debug", list(messages))

    def info(self, *messages: Any) -> bool:
        """
        Logs to stdout, and with the `info` tag to the file. Same return value as `debug`.
        """
        return self._log("info", list(messages))

    def warn(self, *messages: Any) -> bool:
        """
        Logs with a yellow prefix to stderr, and with the `WARN` tag to the file. Same return value as `debug`.
        """
        return self._log("warn", list(messages))

    warning = warn

    def error(self, *messages: Any) -> bool:
        """
        Logs with a red prefix to stderr, and with the `ERROR` tag to the file. Same return value as `debug`.
        """
        return self._log("error", list(messages))

    def write(self, message: Any) -> bool:
        """
        Logs a single message at debug level, with an uncolored console prefix. This makes the Logger usable
        wherever a writable text stream is expected.
        """
        return self._log("debug", [message], colorize=False)

    def flush(self) -> None:
        """
        Waits until everything logged so far has been written to the file.
        """
        if self.stream is not None:
            self.stream.flush()

    def end(self) -> None:
        """
        Closes the file sink without waiting for the queued lines to be written. Read the file only after
        `close()` / `aclose()` if you need all of it.
        """
        if self.stream is not None:
            try:
                self.stream.end()
            finally:
                self.stream = None

    def close(self) -> None:
        """
        Flushes and closes the file sink, waiting until it is closed. Does nothing without a file sink.
        """
        if self.stream is not None:
            try:
                self.stream.close()
            finally:
                self.stream = None

    async def aclose(self) -> None:
        """
        Flushes and closes the file sink, awaiting until it is closed. Does nothing without a file sink.
        """
        if self.stream is not None:
            try:
                await self.stream.aclose()
            finally:
                self.stream = None

    def __enter__(self) -> "Logger":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.end()

    async def __aenter__(self) -> "Logger":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.aclose()
