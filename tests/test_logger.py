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
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List
from unittest.mock import patch

import pytest

from coreason_timestamp_logger import UNDEFINED, Logger, LoggerConfig
from coreason_timestamp_logger.exceptions import ConfigurationError, HomeDirectoryUnavailableError
from coreason_timestamp_logger.sinks import ANSI_COLOR_RESET, ANSI_GREY, ANSI_RED, ANSI_YELLOW

HERE = Path(__file__).parent
TIMESTAMP_RE = r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}"
TIMESTAMP_LENGTH = len("[2010-04-11 05:59:00] ")
REFERENCE = "2010-04-11T05:59:00Z"
LEVELS = ("debug", "info", "warn", "error")


def return_error() -> ValueError:
    try:
        raise ValueError("clean me")
    except ValueError as e:
        return e


def log_body(path: Path, tag: str = "info") -> str:
    return path.read_text(encoding="utf-8")[TIMESTAMP_LENGTH + len(f"{tag}: ") :]


class TestConstructor:
    def test_console_only(self) -> None:
        logger = Logger()
        assert logger.stream is None
        assert logger.config == LoggerConfig()

    def test_config_object(self, tmp_path: Path) -> None:
        config = LoggerConfig(filename=tmp_path / "app.log", console=False)
        logger = Logger(config)
        assert logger.config is config
        assert logger.stream is not None
        logger.close()

    def test_requires_an_output(self) -> None:
        with pytest.raises(ConfigurationError, match="at least `console=True` or a filename"):
            Logger(console=False)

    def test_invalid_option(self) -> None:
        with pytest.raises(ConfigurationError):
            Logger(level="trace")

    def test_config_and_options(self) -> None:
        with pytest.raises(ConfigurationError):
            Logger(LoggerConfig(), level="info")

    def test_configuration_error_is_a_value_error(self) -> None:
        with pytest.raises(ValueError):
            Logger(console=False, filename="")


class TestPrefix:
    def test_timestamp(self) -> None:
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\]", Logger(show_millis=False).prepare_messages([]))

    def test_timestamp_with_millis(self) -> None:
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\.\d{{3}}\]", Logger(show_millis=True).prepare_messages([]))

    def test_initial_newlines_move_before_the_timestamp(self) -> None:
        logger = Logger(clean_stack=False)
        messages: List[Any] = ["\n\n\nStarting process..."]
        prefix = logger.prepare_messages(messages)
        assert re.fullmatch(rf"\n\n\n\[{TIMESTAMP_RE}\]", prefix)
        assert messages == ["Starting process..."]

    def test_only_leading_newlines_count(self) -> None:
        logger = Logger(clean_stack=False)
        messages: List[Any] = ["\n`, `\n`, `\nStarting process..."]
        prefix = logger.prepare_messages(messages)
        assert re.fullmatch(rf"\n\[{TIMESTAMP_RE}\]", prefix)
        assert messages == ["`, `\n`, `\nStarting process..."]

    def test_newlines_in_other_messages_are_left_alone(self) -> None:
        messages: List[Any] = [1, "\nsecond"]
        prefix = Logger().prepare_messages(messages)
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\]", prefix)
        assert messages == [1, "\nsecond"]

    def test_literal_id(self) -> None:
        logger = Logger(id="foo")
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\] \[foo\]", logger.prepare_messages(["Hello world!"]))
        assert re.fullmatch(rf"\n\n\n\[{TIMESTAMP_RE}\] \[foo\]", logger.prepare_messages(["\n\n\nStarting..."]))

    def test_generated_id_is_stable(self) -> None:
        logger = Logger(id=True)
        assert logger.id is not None
        assert re.fullmatch(r"[0-9a-z]{4}", logger.id)
        first = logger.prepare_messages(["Hello random!"])
        second = logger.prepare_messages(["Hello again!"])
        assert first.endswith(f" [{logger.id}]")
        assert second.endswith(f" [{logger.id}]")

    def test_array_message(self) -> None:
        messages: List[Any] = [['Variable "$ID" is not defined.', "query {\n  id\n}\n", None, [{"line": 2}], {}]]
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\]", Logger().prepare_messages(messages))

    @pytest.mark.usefixtures("new_york_tz")
    def test_timestamp_of_given_moment(self) -> None:
        assert Logger().timestamp(REFERENCE) == "[2010-04-11 01:59:00]"
        assert Logger(utc_time=True).timestamp(REFERENCE) == "[2010-04-11 05:59:00]"
        assert Logger().local_iso_dt(REFERENCE) == "2010-04-11T01:59:00"


class TestLevels:
    @pytest.mark.parametrize("index", range(len(LEVELS)))
    def test_minimum_level(self, tmp_path: Path, index: int) -> None:
        path = tmp_path / "app.log"
        logger = Logger(level=LEVELS[index], filename=path, console=False)
        logger.debug("debug")
        logger.info("info")
        logger.warn("warn")
        logger.error("error")
        logger.close()
        output = re.sub(r"\[.+?\] (debug|info|WARN|ERROR): ", "", path.read_text(encoding="utf-8"))
        assert output == "\n".join(LEVELS[index:]) + "\n"

    def test_level_tags(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False)
        logger.debug("a")
        logger.info("b")
        logger.warning("c")
        logger.error("d")
        logger.log("info", "e")
        logger.close()
        tags = re.findall(r"\] (\w+): ", path.read_text(encoding="utf-8"))
        assert tags == ["debug", "info", "WARN", "ERROR", "info"]

    def test_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Unknown level"):
            Logger().log("fatal", "x")

    def test_filtered_calls_output_nothing(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = Logger(level="error")
        assert logger.info("muted") is True
        assert capsys.readouterr().out == ""


class TestConsole:
    def test_values_are_printed_as_is(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = Logger()
        assert logger.info("Variable number of arguments, not just", 1) is True
        out = capsys.readouterr().out
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\] Variable number of arguments, not just 1\n", out)

    def test_prefix_colors(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = Logger()
        logger.debug("grey")
        logger.warn("yellow")
        logger.error("red")
        captured = capsys.readouterr()
        assert captured.out.startswith(ANSI_GREY)
        assert f"{ANSI_COLOR_RESET} grey" in captured.out
        assert captured.err.startswith(ANSI_YELLOW)
        assert f"\n{ANSI_RED}[" in captured.err

    def test_console_disabled(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        logger = Logger(filename=tmp_path / "app.log", console=False)
        logger.error("file only")
        logger.close()
        captured = capsys.readouterr()
        assert captured.out == captured.err == ""

    def test_console_gets_the_original_values(self, capsys: pytest.CaptureFixture[str]) -> None:
        error = return_error()
        Logger(clean_stack={"base_path": HERE}).error("Failed:", error)
        assert capsys.readouterr().err.endswith(" Failed: clean me\n")


class TestFile:
    def test_types(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False)
        logger.info(
            {"false": None, "true": UNDEFINED}, 2**64, 1, "foo", True, False, 0, None, UNDEFINED, [None, UNDEFINED]
        )
        logger.close()
        assert log_body(path) == """{
    "false": null,
    "true": "undefined"
} 18446744073709551616 1 foo true false 0 null undefined [
    null,
    "undefined"
]
"""

    @pytest.mark.usefixtures("new_york_tz")
    def test_dates_are_logged_in_local_time(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        date = datetime(2010, 4, 11, 5, 59, tzinfo=timezone.utc)
        logger = Logger(filename=path, console=False, show_millis=False)
        logger.info(REFERENCE, date, {"date": date}, [date], {"d": [1, date]})
        logger.close()
        assert log_body(path) == f"""{REFERENCE} 2010-04-11T01:59:00 {{
    "date": "2010-04-11T01:59:00"
}} [
    "2010-04-11T01:59:00"
] {{
    "d": [
        1,
        "2010-04-11T01:59:00"
    ]
}}
"""

    def test_newlines_in_strings_are_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        text = "String with newline\n. Escaped \\n should be output on one line"
        logger = Logger(filename=path, console=False)
        logger.info(text)
        logger.close()
        assert log_body(path) == text + "\n"

    def test_leading_newlines_go_before_the_line(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False)
        logger.info("\n\nStarting")
        logger.close()
        assert re.fullmatch(rf"\n\n\[{TIMESTAMP_RE}\] info: Starting\n", path.read_text(encoding="utf-8"))

    def test_id_in_file(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False, id="worker-1")
        logger.warn("slow")
        logger.close()
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\] \[worker-1\] WARN: slow\n", path.read_text(encoding="utf-8"))

    def test_error_stack_is_cleaned(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False, clean_stack={"base_path": HERE})
        logger.info(return_error())
        logger.close()
        output = log_body(path)
        assert output.startswith("""{
    "name": "ValueError",
    "message": "clean me",
    "stack": "Traceback (most recent call last):
  File "test_logger.py", line """)
        assert output.endswith('ValueError: clean me"\n}\n')
        assert str(HERE) not in output

    def test_nested_error_stack_is_cleaned(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        error = return_error()
        message: Dict[str, Any] = {"err": error}
        logger = Logger(filename=path, console=False, clean_stack={"base_path": HERE})
        logger.info(message)
        logger.close()
        assert log_body(path).startswith("""{
    "err": {
        "name": "ValueError",
        "message": "clean me",
        "stack": "Traceback (most recent call last):
  File "test_logger.py", line """)
        # Logging doesn't modify what was logged
        assert message == {"err": error}

    @pytest.mark.parametrize("clean_stack", [True, False])
    def test_cycles_are_cut(self, tmp_path: Path, capsys: pytest.CaptureFixture[str], clean_stack: bool) -> None:
        path = tmp_path / "app.log"
        looped: Dict[str, Any] = {"id": 1}
        looped["self"] = looped
        logger = Logger(filename=path, clean_stack=clean_stack)
        assert logger.info("cyc", looped) is True
        logger.close()
        assert "cyc" in capsys.readouterr().out
        assert log_body(path) == 'cyc {\n    "id": 1,\n    "self": "[Circular]"\n}\n'

    def test_uncleaned_stack(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False, clean_stack=False)
        logger.error(return_error())
        logger.close()
        assert f'File "{HERE / "test_logger.py"}"' in path.read_text(encoding="utf-8")

    def test_ansi_colors_do_not_reach_the_file(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False)
        logger.info("\x1b[32mgreen\x1b[39m")
        logger.close()
        assert log_body(path) == "green\n"

    def test_backpressure(self, tmp_path: Path) -> None:
        logger = Logger(filename=tmp_path / "app.log", console=False, high_water_mark=8)
        assert logger.info("longer than the high water mark") is False
        logger.flush()
        logger.close()

    def test_write(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path)
        assert logger.write({"query": "SELECT 1"}) is True
        logger.close()
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\] \{{'query': 'SELECT 1'\}}\n", capsys.readouterr().out)
        assert log_body(path, "debug") == '{\n    "query": "SELECT 1"\n}\n'

    def test_write_respects_the_level(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False, level="info")
        logger.write("muted")
        logger.close()
        assert path.read_text(encoding="utf-8") == ""


class TestStackCleaningErrors:
    def test_missing_home_directory_fails_the_call(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger = Logger(clean_stack=True)
        with patch("coreason_timestamp_logger.clean_stack.Path.home", side_effect=RuntimeError("no home")):
            with pytest.raises(HomeDirectoryUnavailableError, match="base_path"):
                logger.debug(ValueError("caught the missing home"))
        # Nothing was output for the failed call
        assert capsys.readouterr().out == ""

    def test_base_path_avoids_the_home_directory(self) -> None:
        logger = Logger(clean_stack={"pretty": True, "base_path": HERE})
        with patch("coreason_timestamp_logger.clean_stack.Path.home", side_effect=RuntimeError("no home")):
            assert logger.debug(ValueError("fine")) is True

    def test_messages_without_errors_never_need_the_home_directory(self) -> None:
        logger = Logger()
        with patch("coreason_timestamp_logger.clean_stack.Path.home", side_effect=RuntimeError("no home")):
            assert logger.info("plain", {"nested": [1, 2]}) is True


class TestDisposal:
    def test_close_without_file(self) -> None:
        logger = Logger()
        logger.close()
        asyncio.run(logger.aclose())
        logger.end()

    def test_close_twice(self, tmp_path: Path) -> None:
        logger = Logger(filename=tmp_path / "app.log", console=False)
        logger.close()
        logger.close()
        assert logger.stream is None

    def test_logging_after_close_goes_to_the_console_only(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path)
        logger.close()
        assert logger.info("after") is True
        assert "after" in capsys.readouterr().out
        assert path.read_text(encoding="utf-8") == ""

    def test_with_ends_without_waiting(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        with Logger(filename=path, console=False) as logger:
            sink = logger.stream
            logger.info("")
        assert logger.stream is None
        assert sink is not None and sink.ended
        # Ended, but closing may still be in progress: wait for it before reading
        sink.close()
        assert re.fullmatch(rf"\[{TIMESTAMP_RE}\] info: \n", path.read_text(encoding="utf-8"))

    def test_async_with_waits_for_the_file(self, tmp_path: Path) -> None:
        path = tmp_path / "datetime.log"

        async def run() -> None:
            async with Logger(filename=path, console=False) as logger:
                logger.info("")

        asyncio.run(run())
        output = path.read_text(encoding="utf-8")
        assert re.fullmatch(TIMESTAMP_RE, output[1:20])

    def test_aclose(self, tmp_path: Path) -> None:
        path = tmp_path / "app.log"
        logger = Logger(filename=path, console=False)
        logger.error("bye")
        asyncio.run(logger.aclose())
        assert logger.stream is None
        assert path.read_text(encoding="utf-8").endswith(" ERROR: bye\n")
