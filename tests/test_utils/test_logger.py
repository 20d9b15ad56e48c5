from __future__ import annotations

import io
import logging
from typing import Generator
from unittest.mock import patch

import pytest

from buildkeeper.utils.logger import (
    ComponentFormatter,
    component_name,
    get_logger,
    level_for_verbosity,
    setup_logging,
)


@pytest.fixture
def clean_logger_state() -> Generator[None, None, None]:
    """Reset the buildkeeper logger hierarchy around each test."""
    root_logger = logging.getLogger("buildkeeper")
    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)

    yield

    root_logger.handlers.clear()
    root_logger.setLevel(logging.NOTSET)
    root_logger.propagate = True


def _record(name: str, level: int = logging.INFO, msg: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="test.py",
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.mark.unit
class TestComponentFormatter:
    """Tests for ComponentFormatter."""

    def test_prefixes_component(self) -> None:
        formatter = ComponentFormatter("%(levelname)s: %(message)s", use_color=False)

        result = formatter.format(_record("buildkeeper.core.matcher"))

        assert result == "INFO: matcher: hello"

    def test_root_logger_has_no_prefix(self) -> None:
        formatter = ComponentFormatter("%(message)s", use_color=False)

        assert formatter.format(_record("buildkeeper")) == "hello"

    def test_color_applied_when_enabled(self) -> None:
        formatter = ComponentFormatter("%(levelname)s: %(message)s", use_color=True)

        with patch.object(ComponentFormatter, "_should_use_color", return_value=True):
            result = formatter.format(_record("buildkeeper.fallback", logging.WARNING))

        assert "\033[33m" in result
        assert "WARNING" in result

    def test_no_color_when_terminal_check_fails(self) -> None:
        formatter = ComponentFormatter("%(levelname)s: %(message)s", use_color=True)

        with patch.object(ComponentFormatter, "_should_use_color", return_value=False):
            result = formatter.format(_record("buildkeeper.fallback"))

        assert "\033[" not in result

    def test_record_restored_after_format(self) -> None:
        """Test other handlers see the record unchanged."""
        formatter = ComponentFormatter("%(levelname)s: %(message)s", use_color=True)
        record = _record("buildkeeper.matcher")

        with patch.object(ComponentFormatter, "_should_use_color", return_value=True):
            formatter.format(record)

        assert record.msg == "hello"
        assert record.levelname == "INFO"

    def test_should_use_color_respects_no_color(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")

        assert ComponentFormatter._should_use_color() is False

    def test_should_use_color_respects_ci(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("CI", "true")

        assert ComponentFormatter._should_use_color() is False


@pytest.mark.unit
class TestHelpers:
    """Tests for component_name and level_for_verbosity."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("buildkeeper", ""),
            ("buildkeeper.matcher", "matcher"),
            ("buildkeeper.commands.resolve", "resolve"),
        ],
    )
    def test_component_name(self, name: str, expected: str) -> None:
        assert component_name(name) == expected

    @pytest.mark.parametrize(
        "verbose,level",
        [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
    )
    def test_level_for_verbosity(self, verbose: int, level: int) -> None:
        assert level_for_verbosity(verbose) == level


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging."""

    def test_writes_to_stream(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.INFO, stream=stream)

        get_logger("matcher").info("Selected %s", "libfoo=1.0.0")

        assert "matcher: Selected libfoo=1.0.0" in stream.getvalue()

    def test_filters_below_level(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.WARNING, stream=stream)

        get_logger("matcher").info("hidden")
        get_logger("fallback").warning("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output

    def test_repeated_setup_replaces_handler(self, clean_logger_state: None) -> None:
        setup_logging(stream=io.StringIO())
        setup_logging(stream=io.StringIO())

        assert len(logging.getLogger("buildkeeper").handlers) == 1

    def test_verbose_format_includes_logger_name(self, clean_logger_state: None) -> None:
        stream = io.StringIO()
        setup_logging(level=logging.DEBUG, verbose=True, stream=stream)

        get_logger("synthesizer").debug("detail")

        assert "buildkeeper.synthesizer" in stream.getvalue()


@pytest.mark.unit
class TestGetLogger:
    """Tests for get_logger."""

    def test_no_name_returns_root(self, clean_logger_state: None) -> None:
        assert get_logger().name == "buildkeeper"

    def test_short_name_is_namespaced(self, clean_logger_state: None) -> None:
        assert get_logger("matcher").name == "buildkeeper.matcher"

    def test_qualified_name_kept(self, clean_logger_state: None) -> None:
        assert get_logger("buildkeeper.core.fallback").name == "buildkeeper.core.fallback"

    def test_null_handler_when_unconfigured(self, clean_logger_state: None) -> None:
        logger = get_logger("unconfigured_component")

        assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)
