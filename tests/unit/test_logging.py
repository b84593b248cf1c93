"""Unit tests for scenario-aware logging."""

import logging
from collections.abc import Generator

import pytest

from healwright.core.context import scenario_binding
from healwright.logging import ScenarioContextFilter, ScenarioFormatter, configure_logging


def make_record(message: str = "Clicked on element") -> logging.LogRecord:
    return logging.LogRecord("healwright.test", logging.INFO, __file__, 1, message, None, None)


@pytest.fixture
def restore_root_logger() -> Generator[None, None, None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestScenarioFormatter:
    def test_prefixes_scenario(self) -> None:
        record = make_record()
        record.scenario = "Valid login"

        assert ScenarioFormatter("%(message)s").format(record) == "[Valid login] Clicked on element"

    def test_no_prefix_without_scenario(self) -> None:
        assert ScenarioFormatter("%(message)s").format(make_record()) == "Clicked on element"


class TestScenarioContextFilter:
    def test_attaches_bound_scenario(self) -> None:
        record = make_record()

        with scenario_binding("Invalid credentials are rejected"):
            assert ScenarioContextFilter().filter(record) is True

        assert record.scenario == "Invalid credentials are rejected"

    def test_unbound_is_none(self) -> None:
        record = make_record()
        ScenarioContextFilter().filter(record)

        assert record.scenario is None

    def test_explicit_extra_kept(self) -> None:
        record = make_record()
        record.scenario = "from extra"

        with scenario_binding("bound"):
            ScenarioContextFilter().filter(record)

        assert record.scenario == "from extra"


class TestConfigureLogging:
    def test_does_not_stack_handlers(self, restore_root_logger: None) -> None:
        first = configure_logging()
        second = configure_logging(logging.DEBUG)

        root = logging.getLogger()
        assert first not in root.handlers
        assert second in root.handlers
        assert root.level == logging.DEBUG
