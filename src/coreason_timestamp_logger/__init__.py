# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

"""
Timestamped logging to the console and, optionally, to a file, with cleaned error stack traces and full
dumps of logged objects.
"""

from coreason_timestamp_logger.config import CleanStackOptions, LoggerConfig
from coreason_timestamp_logger.exceptions import (
    ConfigurationError,
    HomeDirectoryUnavailableError,
    SinkClosedError,
    TimestampLoggerError,
)
from coreason_timestamp_logger.logger import Logger
from coreason_timestamp_logger.sanitize import ErrorRecord, sanitize
from coreason_timestamp_logger.serialize import UNDEFINED, MessageSerializer
from coreason_timestamp_logger.timestamps import local_iso_dt, timestamp

__version__ = "0.1.0"

__all__ = [
    "UNDEFINED",
    "CleanStackOptions",
    "ConfigurationError",
    "ErrorRecord",
    "HomeDirectoryUnavailableError",
    "Logger",
    "LoggerConfig",
    "MessageSerializer",
    "SinkClosedError",
    "TimestampLoggerError",
    "local_iso_dt",
    "sanitize",
    "timestamp",
]
