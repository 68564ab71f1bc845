# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import json
import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, FrozenSet, Iterable, List

from coreason_timestamp_logger.sanitize import CIRCULAR, ErrorRecord, fields_of, sanitize
from coreason_timestamp_logger.timestamps import local_iso_dt

# Placeholder for stack traces while json.dumps runs, so they are written verbatim, real newlines included
STACK_TOKEN = "COREASON-TIMESTAMP-LOGGER-STACK-{}"
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")
MAX_SAFE_INTEGER = 2**53 - 1


class _Undefined:
    """An explicitly absent value, the counterpart of `None` (which is logged as `null`)."""

    _instance = None

    def __new__(cls) -> "_Undefined":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE_RE.sub("", text)


class MessageSerializer:
    """
    Renders logged values for the log file, the way the console would show them if it were redirected to the
    file, but with objects dumped in full:

    - strings and `UNDEFINED` are not quoted at the top level;
    - nested `UNDEFINED` values become `"undefined"`, so their keys are kept;
    - datetimes are rendered in the local timezone (or UTC) instead of their default form;
    - integers beyond the float-safe range are coerced to float, losing precision like JSON numbers do;
    - errors are rendered as `{"name", "message", "stack"}` objects, with the stack written
      verbatim, real newlines and quotes included (which makes that one field invalid JSON, on purpose, for
      readability);
    - nested structures are indented by 4 spaces.
    """

    def __init__(self, utc_time: bool = False, show_millis: bool = False, indent: int = 4) -> None:
        self.utc_time = utc_time
        self.show_millis = show_millis
        self.indent = indent

    def format_datetime(self, value: datetime) -> str:
        return local_iso_dt(value, utc_time=self.utc_time, show_millis=self.show_millis)

    def _key(self, key: Any) -> Any:
        if key is None or isinstance(key, (str, int, float, bool)):
            return key
        return self.format_datetime(key) if isinstance(key, datetime) else str(key)

    def _prepare(self, value: Any, stacks: List[str], path: FrozenSet[int] = frozenset()) -> Any:
        """
        Converts a (sanitized) value into something json.dumps renders the way we want.
        """
        if isinstance(value, str):
            return strip_ansi(value)
        if value is None or isinstance(value, bool):
            return value
        if value is UNDEFINED:
            return "undefined"
        if isinstance(value, int):
            if abs(value) <= MAX_SAFE_INTEGER:
                return value
            # Known limitation: precision is lost past 2**53, as for any JSON number; past float range it is null
            try:
                return int(float(value))
            except OverflowError:
                return None
        if isinstance(value, (float, Decimal)):
            number = float(value)
            return number if math.isfinite(number) else None
        if isinstance(value, datetime):
            return self.format_datetime(value)
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, (ErrorRecord, BaseException)):
            return self._prepare(sanitize(value).to_dict(), stacks)
        if id(value) in path:
            return CIRCULAR
        path = path | {id(value)}
        if isinstance(value, Mapping):
            prepared: Dict[Any, Any] = {}
            for key, item in value.items():
                if key == "stack" and isinstance(item, str):
                    prepared[key] = STACK_TOKEN.format(len(stacks))
                    stacks.append(item)
                else:
                    prepared[self._key(key)] = self._prepare(item, stacks, path)
            return prepared
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self._prepare(item, stacks, path) for item in value]
        record = fields_of(value)
        if record is not None:
            return self._prepare(record, stacks, path)
        return value

    def serialize(self, value: Any) -> str:
        """
        Renders a single top-level value.
        """
        if value is UNDEFINED:
            return "undefined"
        if isinstance(value, str):
            return value
        if isinstance(value, datetime):
            return self.format_datetime(value)
        if isinstance(value, date):
            return value.isoformat()
        stacks: List[str] = []
        text = json.dumps(self._prepare(value, stacks), indent=self.indent, ensure_ascii=False, default=str)
        for index, stack in enumerate(stacks):
            text = text.replace(json.dumps(STACK_TOKEN.format(index)), f"\"{stack}\"")
        return text

    def serialize_all(self, values: Iterable[Any]) -> str:
        """
        Renders the values of one logging call, space-separated, without any ANSI color sequence.
        """
        return strip_ansi(" ".join(self.serialize(value) for value in values))
