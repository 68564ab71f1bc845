# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

class TimestampLoggerError(Exception):
    """Base class for every error raised by coreason_timestamp_logger."""


class ConfigurationError(TimestampLoggerError, ValueError):
    """The Logger options are invalid, e.g. neither console nor file output was requested."""


class HomeDirectoryUnavailableError(TimestampLoggerError, RuntimeError):
    """
    Stack cleaning with `pretty=True` needs the home directory, and it could not be determined.
    """

    def __init__(self, cause: Exception) -> None:
        super().__init__(
            "clean_stack with `pretty=True` needs to determine the home directory, which failed "
            f"({cause}); set the HOME environment variable, or pass `base_path` in the clean_stack options"
        )


class SinkClosedError(TimestampLoggerError):
    """A line was written to a file sink that has already been ended."""
