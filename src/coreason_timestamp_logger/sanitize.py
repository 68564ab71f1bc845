# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import dataclasses
from collections.abc import Mapping
from datetime import date
from types import SimpleNamespace
from typing import Any, Dict, FrozenSet, Optional

from loguru import logger
from pydantic import BaseModel

from coreason_timestamp_logger.clean_stack import clean_stack, format_stack
from coreason_timestamp_logger.config import CleanStackOptions
from coreason_timestamp_logger.exceptions import HomeDirectoryUnavailableError

CIRCULAR = "[Circular]"


@dataclasses.dataclass(frozen=True)
class ErrorRecord:
    """
    Plain, serializable form of an error: what ends up in the log file instead of the error object.
    """

    name: str
    message: str
    stack: Optional[str]
    cause: Optional["ErrorRecord"] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"name": self.name, "message": self.message, "stack": self.stack}
        if self.cause is not None:
            data["cause"] = self.cause.to_dict()
        return data


def fields_of(value: Any) -> Optional[Dict[str, Any]]:
    """
    Field mapping of record-like objects (dataclasses, pydantic models, namespaces); None for anything else.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, BaseModel):
        return dict(value)
    if isinstance(value, SimpleNamespace):
        return dict(vars(value))
    return None


def _clean(stack: str, options: Optional[CleanStackOptions]) -> str:
    if options is None:
        return stack
    try:
        return clean_stack(stack, options)
    except HomeDirectoryUnavailableError:
        raise
    except Exception as e:
        logger.warning(f"Failed to clean stack trace, logging it as is: {e!r}")
        return stack


def _error_record(error: BaseException, options: Optional[CleanStackOptions]) -> ErrorRecord:
    cause = error.__cause__
    return ErrorRecord(
        name=type(error).__name__,
        message=str(error),
        stack=_clean(format_stack(error), options),
        cause=_error_record(cause, options) if cause is not None else None,
    )


def _duck_error_record(value: Any, stack: str, options: Optional[CleanStackOptions]) -> ErrorRecord:
    return ErrorRecord(
        name=str(getattr(value, "name", type(value).__name__)),
        message=str(getattr(value, "message", "")),
        stack=_clean(stack, options),
    )


def sanitize(value: Any, options: Optional[CleanStackOptions] = None, _path: FrozenSet[int] = frozenset()) -> Any:
    """
    Returns a copy of `value` in which every error, however deeply nested, is replaced by an ErrorRecord with
    a cleaned stack trace. The value itself is never modified.

    Error-like means: an exception, an object with a string `stack` attribute, or a mapping with a string
    `"stack"` key (which keeps its shape, with the stack cleaned). Error-like values are not descended into.
    Mappings, sequences, sets and record-like objects are rebuilt with sanitized children; sets become lists.
    Dates and other leaves are returned as is. Reference cycles are replaced by `"[Circular]"`.

    Args:
        value: Anything passed to a logging call.
        options: How to clean stacks; None keeps them verbatim.

    Raises:
        HomeDirectoryUnavailableError: See `clean_stack`. Any other cleaning failure is logged as a warning.
    """
    if value is None or isinstance(value, (str, bytes, int, float, date, ErrorRecord)):
        return value
    if isinstance(value, BaseException):
        return _error_record(value, options)
    if id(value) in _path:
        return CIRCULAR
    path = _path | {id(value)}

    if isinstance(value, Mapping):
        stack = value.get("stack")
        if isinstance(stack, str):
            return {**value, "stack": _clean(stack, options)}
        return {key: sanitize(item, options, path) for key, item in value.items()}
    if isinstance(value, tuple):
        return tuple(sanitize(item, options, path) for item in value)
    if isinstance(value, (list, set, frozenset)):
        return [sanitize(item, options, path) for item in value]

    try:
        stack = getattr(value, "stack", None)
    except Exception as e:
        logger.warning(f"Failed to read the stack of {type(value).__name__}: {e!r}")
        return value
    if isinstance(stack, str):
        return _duck_error_record(value, stack, options)

    record = fields_of(value)
    if record is not None:
        return {key: sanitize(item, options, path) for key, item in record.items()}
    return value
