"""Unit tests for the logging helpers."""

import logging
from collections.abc import Generator

import pytest

from dalite._serialization import decode_json
from dalite.utils.logging import (
    CorrelationIDFilter,
    StructuredFormatter,
    configure_logging,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)


@pytest.fixture
def restore_dalite_logger() -> Generator[None, None, None]:
    logger = logging.getLogger("dalite")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture(autouse=True)
def clear_correlation_id() -> Generator[None, None, None]:
    yield
    set_correlation_id(None)


def _record(message: str = "hello") -> logging.LogRecord:
    return logging.LogRecord(
        name="dalite.test", level=logging.INFO, pathname=__file__, lineno=1, msg=message, args=(), exc_info=None
    )


def test_get_logger_namespaces_under_dalite() -> None:
    assert get_logger().name == "dalite"
    assert get_logger("driver").name == "dalite.driver"
    assert get_logger("dalite.sql").name == "dalite.sql"


def test_get_logger_adds_single_correlation_filter() -> None:
    logger = get_logger("test_filters")
    get_logger("test_filters")
    assert sum(isinstance(item, CorrelationIDFilter) for item in logger.filters) == 1


def test_correlation_id_round_trip() -> None:
    assert get_correlation_id() is None
    set_correlation_id("abc")
    assert get_correlation_id() == "abc"


def test_structured_formatter_outputs_json() -> None:
    set_correlation_id("cid-1")
    record = _record()
    record.extra_fields = {"operation": "get_count"}
    entry = decode_json(StructuredFormatter().format(record))
    assert entry["message"] == "hello"
    assert entry["level"] == "INFO"
    assert entry["correlation_id"] == "cid-1"
    assert entry["operation"] == "get_count"


def test_correlation_filter_sets_attribute() -> None:
    set_correlation_id("cid-2")
    record = _record()
    assert CorrelationIDFilter().filter(record)
    assert record.correlation_id == "cid-2"  # type: ignore[attr-defined]


@pytest.mark.usefixtures("restore_dalite_logger")
def test_configure_logging_installs_handlers() -> None:
    extra = logging.NullHandler()
    configure_logging(level="debug", format_style="simple", handlers=[extra])
    logger = logging.getLogger("dalite")
    assert logger.level == logging.DEBUG
    assert logger.handlers[1] is extra
    assert len(logger.handlers) == 2
    assert not isinstance(logger.handlers[0].formatter, StructuredFormatter)
    assert logger.propagate is False


@pytest.mark.usefixtures("restore_dalite_logger")
def test_configure_logging_replaces_handlers_with_structured_output(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(handlers=[logging.NullHandler()])
    configure_logging(level="info")
    logger = get_logger()
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0].formatter, StructuredFormatter)
    get_logger("driver").info("ready", extra={"extra_fields": {"dialect": "mysql"}})
    entry = decode_json(capsys.readouterr().out.strip().splitlines()[-1])
    assert entry["message"] == "ready"
    assert entry["dialect"] == "mysql"
