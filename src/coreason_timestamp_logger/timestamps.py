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
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Union

# YYYY-MM-DD[T ]HH:MM:SS[.mmm]Z, i.e. an already-UTC ISO8601 string
ISO8601_UTC_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(\.\d{3})?Z$")
DATE_PREFIX_RE = re.compile(r"^\d{4}-\d\d-\d\d")
NUMERIC_RE = re.compile(r"^\d+\.?\d*$")

# 2100-01-01, in seconds and in milliseconds
YEAR_2100_SECONDS = 4102512345
YEAR_2100_MILLIS = YEAR_2100_SECONDS * 1000

DateLike = Union[datetime, date, int, float, Decimal, str, None]


def epoch_millis(value: Union[int, float, Decimal, str]) -> float:
    """
    Guesses the unit of a UNIX timestamp from its magnitude and returns it in milliseconds.

    Best effort only: values below 2100-01-01 in seconds are taken as seconds, then anything past
    2100-01-01 in milliseconds is scaled down as microseconds, and once more as nanoseconds.
    Values close to the thresholds are ambiguous.
    """
    millis = float(value)
    if millis < YEAR_2100_SECONDS:
        millis *= 1000
    if millis > YEAR_2100_MILLIS:
        millis /= 1000
    if millis > YEAR_2100_MILLIS:
        millis /= 1000
    return millis


def parse_iso(text: str) -> datetime:
    """
    Parses an ISO8601/RFC3339 string. A trailing `Z` means UTC; no offset at all means local time.
    """
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _render(moment: datetime, utc_time: bool, show_millis: bool) -> str:
    # Naive datetimes are in local time, as everywhere else in Python
    moment = moment.astimezone(timezone.utc) if utc_time else moment.astimezone()
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    if show_millis:
        text += f".{moment.microsecond // 1000:03d}"
    return text


def local_iso_dt(d: DateLike = None, *, utc_time: bool = False, show_millis: bool = False) -> str:
    """
    Converts the most common representations of a moment to `YYYY-MM-DDTHH:MM:SS[.mmm]`, in the local
    timezone unless `utc_time` is set.

    Args:
        d: A datetime, a date, a UNIX timestamp in (milli/micro/nano)seconds (number or numeric string),
            an ISO8601 string, or None/0/"" for now.
        utc_time: Render in UTC instead of the local timezone.
        show_millis: Append `.mmm` milliseconds.

    Returns:
        The rendered string. Strings already starting with `YYYY-MM-DD` (and not ending in `Z`) are
        returned unchanged, which makes the function idempotent on its own output.

    Raises:
        ValueError: The string is neither numeric nor ISO8601.
        TypeError: The value is not date-like.
    """
    if not d:
        return _render(datetime.now(timezone.utc), utc_time, show_millis)

    if isinstance(d, str):
        if ISO8601_UTC_RE.match(d):
            return local_iso_dt(parse_iso(d), utc_time=utc_time, show_millis=show_millis)
        if DATE_PREFIX_RE.match(d):
            return d
        if NUMERIC_RE.match(d):
            d = float(d)
        else:
            return _render(parse_iso(d), utc_time, show_millis)

    if isinstance(d, datetime):
        return _render(d, utc_time, show_millis)
    if isinstance(d, date):
        # No time of day to convert
        return d.isoformat()
    if isinstance(d, bool) or not isinstance(d, (int, float, Decimal)):
        raise TypeError(f"Cannot convert {type(d).__name__} to a timestamp")

    millis = epoch_millis(d) if d >= 0 else float(d)
    return _render(datetime.fromtimestamp(millis / 1000, tz=timezone.utc), utc_time, show_millis)


def timestamp(d: DateLike = None, *, utc_time: bool = False, show_millis: bool = False) -> str:
    """
    Returns the bracketed line prefix, with a space instead of the `T`, e.g. `[2025-04-20 05:59:00]`.
    """
    text = local_iso_dt(d, utc_time=utc_time, show_millis=show_millis)
    return f"[{text.replace('T', ' ', 1)}]"
