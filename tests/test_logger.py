"""Tests for scraper_analytics.utils.logger: levels, stderr output and file logging."""

from __future__ import annotations

import pathlib
from collections.abc import Iterator

import pytest

from scraper_analytics.utils import logger


@pytest.fixture(autouse=True)
def _reset_logger() -> Iterator[None]:
    yield
    logger.configure(level="INFO", log_file=None)


class TestLevels:
    """Tests for the configured level threshold."""

    def test_debug_hidden_at_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger.configure(level="INFO")
        logger.create_logger("Test").debug("hidden detail")
        assert "hidden detail" not in capsys.readouterr().err

    def test_debug_shown_at_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        logger.configure(level="debug")
        logger.create_logger("Test").debug("visible detail")
        assert "visible detail" in capsys.readouterr().err

    def test_unknown_level_falls_back_to_info(self) -> None:
        logger.configure(level="chatty")
        log = logger.create_logger("Test")
        assert log.is_enabled_for("info")
        assert not log.is_enabled_for("debug")

    def test_error_threshold_hides_warnings(self) -> None:
        logger.configure(level="ERROR")
        log = logger.create_logger("Test")
        assert not log.is_enabled_for("warn")
        assert log.is_enabled_for("error")


class TestOutput:
    """Tests for where log lines go."""

    def test_never_writes_to_stdout(self, capsys: pytest.CaptureFixture[str]) -> None:
        log = logger.create_logger("Stdio")
        log.info("hello", {"count": 3})
        log.section("Banner")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "[Stdio]" in captured.err
        assert "hello" in captured.err

    def test_context_prefix(self) -> None:
        assert logger.create_logger("Analyzer").context == "Analyzer"


class TestLogFile:
    """Tests for appending to the log file."""

    def test_lines_written_without_ansi(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "logs" / "server.log"
        logger.configure(level="INFO", log_file=path)
        logger.create_logger("File").warn("careful", {"url": "https://example.com"})
        content = path.read_text(encoding="utf-8")
        assert "careful" in content
        assert "\033[" not in content

    def test_relative_path_resolves_against_cwd(self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        logger.configure(log_file="logs/server.log")
        assert logger.get_log_file_path() == tmp_path / "logs" / "server.log"

    def test_disabled_by_default(self) -> None:
        logger.configure()
        assert logger.get_log_file_path() is None

    def test_unwritable_destination_is_ignored(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        logger.configure(log_file=blocker / "server.log")
        logger.create_logger("File").error("still fine")


class TestTimers:
    """Tests for start_timer() / end_timer()."""

    def test_returns_elapsed_ms(self) -> None:
        log = logger.create_logger("Timer")
        log.start_timer("analysis")
        assert log.end_timer("analysis") >= 0.0

    def test_unknown_timer_returns_zero(self) -> None:
        assert logger.create_logger("Timer").end_timer("never-started") == 0.0
