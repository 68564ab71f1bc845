# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import argparse
import sys
from typing import Iterable

from loguru import logger

from coreason_timestamp_logger.config import LEVELS
from coreason_timestamp_logger.logger import Logger


def configure_diagnostics(level: str = "WARNING") -> None:
    """
    Sends the library's own warnings and errors (unclean stacks, file sink errors) to stderr.
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
            "<level>{message}</level>"
        ),
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Prefix lines with a timestamp and log them to the console and/or a file"
    )
    parser.add_argument(
        "message",
        nargs="*",
        help="Messages to log, one per line (default: read lines from stdin)",
    )
    parser.add_argument(
        "--filename",
        type=str,
        default=None,
        help="File to append the log lines to",
    )
    parser.add_argument(
        "--no-console",
        action="store_true",
        help="Don't log to the console (requires --filename)",
    )
    parser.add_argument(
        "--log-level",
        choices=LEVELS,
        default="info",
        help="Level of the logged messages (default: info)",
    )
    parser.add_argument(
        "--level",
        choices=LEVELS,
        default="debug",
        help="Minimum level to output (default: debug)",
    )
    parser.add_argument(
        "--show-millis",
        action="store_true",
        help="Include milliseconds in the timestamp",
    )
    parser.add_argument(
        "--utc",
        action="store_true",
        help="Use UTC instead of the local timezone",
    )
    parser.add_argument(
        "--id",
        nargs="?",
        const=True,
        default=None,
        help="Identifier added after the timestamp; without a value, a random 4-character one is generated",
    )
    parser.add_argument(
        "--no-clean-stack",
        action="store_true",
        help="Log error stack traces without cleaning them",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_diagnostics()

    try:
        log = Logger(
            console=not args.no_console,
            filename=args.filename,
            show_millis=args.show_millis,
            utc_time=args.utc,
            level=args.level,
            id=args.id,
            clean_stack=not args.no_clean_stack,
        )
        lines: Iterable[str] = args.message or (line.rstrip("\n") for line in sys.stdin)
        try:
            for line in lines:
                log.log(args.log_level, line)
        finally:
            log.close()

    except Exception as e:
        logger.exception(f"Logging failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()  # pragma: no cover
