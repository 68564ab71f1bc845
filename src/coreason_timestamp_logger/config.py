# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_timestamp_logger

import random
import string
from pathlib import Path
from typing import Any, Callable, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Level = Literal["debug", "info", "warn", "error"]

# Ordered by severity
LEVELS: Tuple[str, ...] = ("debug", "info", "warn", "error")

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def generate_id(length: int = 4) -> str:
    """
    Returns a random lowercase Base36 token. Four characters give 1_679_616 combinations.
    """
    return "".join(random.choices(BASE36_ALPHABET, k=length))


class CleanStackOptions(BaseModel):
    """
    How error stack traces are cleaned before being logged.

    Attributes:
        pretty: Replace the home directory with `~` in frame paths. Needs the home directory to be
            resolvable, unless `base_path` is given.
        base_path: Directory prefix stripped from frame paths, making them relative.
        path_filter: Optional predicate on frame paths; frames for which it returns False are dropped.
    """

    model_config = ConfigDict(frozen=True)

    pretty: bool = False
    base_path: Optional[Path] = None
    path_filter: Optional[Callable[[str], bool]] = None


class LoggerConfig(BaseModel):
    """
    Options of a Logger instance. Immutable once validated; every instance gets its own copy of the defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    console: bool = True
    filename: Optional[Path] = None
    show_millis: bool = False
    clean_stack: Union[CleanStackOptions, bool] = Field(default=True, validate_default=True)
    id: Union[bool, str, None] = None
    utc_time: bool = False
    level: Level = "debug"
    high_water_mark: int = Field(default=16384, gt=0)

    @field_validator("filename", mode="before")
    @classmethod
    def empty_filename_is_none(cls, v: Any) -> Any:
        if v == "":
            return None
        return v

    @field_validator("clean_stack")
    @classmethod
    def resolve_clean_stack(cls, v: Union[CleanStackOptions, bool]) -> Union[CleanStackOptions, bool]:
        if v is True:
            return CleanStackOptions(pretty=True)
        return v

    @field_validator("id")
    @classmethod
    def resolve_id(cls, v: Union[bool, str, None]) -> Optional[str]:
        # `True` means "generate one", once per instance, so every line of the instance carries the same id
        if v is True:
            return generate_id()
        if not v:
            return None
        return str(v)

    @model_validator(mode="after")
    def check_outputs(self) -> "LoggerConfig":
        if not self.console and self.filename is None:
            raise ValueError("Please specify at least `console=True` or a filename to log to.")
        return self

    @property
    def clean_stack_options(self) -> Optional[CleanStackOptions]:
        if isinstance(self.clean_stack, CleanStackOptions):
            return self.clean_stack
        return None

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS.index(level) >= LEVELS.index(self.level)
