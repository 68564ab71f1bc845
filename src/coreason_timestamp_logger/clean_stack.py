# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import os
import re
import sysconfig
import traceback
from pathlib import Path
from typing import List, Optional

from coreason_timestamp_logger.config import CleanStackOptions
from coreason_timestamp_logger.exceptions import HomeDirectoryUnavailableError

# `  File "/path/to/module.py", line 12, in func`
FRAME_RE = re.compile(r'^(?P<indent>\s*)File "(?P<path>[^"]+)"(?P<rest>, line \d+.*)$')

_STDLIB_DIRS = tuple(
    {os.path.normpath(p) + os.sep for p in (sysconfig.get_paths()["stdlib"], sysconfig.get_paths()["platstdlib"])}
)
_THIRD_PARTY_MARKERS = ("site-packages", "dist-packages")


def format_stack(exc: BaseException) -> str:
    """
    Returns the traceback text of an exception, without its chained causes.
    """
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__, chain=False)).rstrip("\n")


def is_internal_frame(path: str) -> bool:
    """
    Frames of the interpreter itself: frozen modules and the standard library (not third-party packages).
    """
    if path.startswith("<frozen "):
        return True
    if any(marker in path for marker in _THIRD_PARTY_MARKERS):
        return False
    return path.startswith(_STDLIB_DIRS)


def _home_directory(options: CleanStackOptions) -> Optional[str]:
    if not options.pretty:
        return None
    try:
        return str(Path.home())
    except (RuntimeError, KeyError) as e:
        if options.base_path is None:
            raise HomeDirectoryUnavailableError(e) from e
        return None


def _relativize(path: str, options: CleanStackOptions, home: Optional[str]) -> str:
    if options.base_path is not None:
        base = str(options.base_path).rstrip(os.sep) + os.sep
        if path.startswith(base):
            path = path[len(base) :]
    if home and (path == home or path.startswith(home.rstrip(os.sep) + os.sep)):
        path = "~" + path[len(home.rstrip(os.sep)) :]
    return path


def clean_stack(stack: str, options: CleanStackOptions) -> str:
    """
    Removes interpreter-internal frames from a traceback text and shortens the frame paths.

    Args:
        stack: Traceback text, as produced by `traceback.format_exception`.
        options: Cleaning options; `base_path` makes paths relative, `pretty` turns the home directory into `~`.

    Returns:
        The cleaned traceback, without blank lines.

    Raises:
        HomeDirectoryUnavailableError: `pretty` is set, no `base_path` was given, and the home directory
            can't be determined.
    """
    home = _home_directory(options)
    lines: List[str] = []
    skipping = False
    for line in stack.splitlines():
        match = FRAME_RE.match(line)
        if match:
            path = match.group("path")
            skipping = is_internal_frame(path) or (
                options.path_filter is not None and not options.path_filter(path)
            )
            if skipping:
                continue
            line = f'{match.group("indent")}File "{_relativize(path, options, home)}"{match.group("rest")}'
        elif skipping and line.startswith("    "):
            # Source line (and caret markers) of a dropped frame
            continue
        else:
            skipping = False
        if line.strip():
            lines.append(line)
    return "\n".join(lines)
