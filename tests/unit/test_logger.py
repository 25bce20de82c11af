"""
Unit Tests for Structured Logging
"""

import json
import logging
import sys

import pytest

from src.shared.logger import CorrelationAdapter, JSONFormatter, PlainTextFormatter, setup_logger


def _record(msg="Order processed", **extra):
    record = logging.LogRecord("src.consumer.handler", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.unit
def test_json_formatter_fields():
    line = JSONFormatter(service_name="order-service").format(
        _record(correlation_id="o1", partition=0, offset=42)
    )
    data = json.loads(line)

    assert data["level"] == "INFO"
    assert data["service"] == "order-service"
    assert data["logger"] == "src.consumer.handler"
    assert data["message"] == "Order processed"
    assert data["correlation_id"] == "o1"
    assert data["extra"] == {"partition": 0, "offset": 42}
    assert data["timestamp"].endswith("Z")


@pytest.mark.unit
def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "src", logging.ERROR, __file__, 1, "failed", None, sys.exc_info()
        )

    data = json.loads(JSONFormatter().format(record))

    assert "ValueError: boom" in data["exception"]


@pytest.mark.unit
def test_plain_text_formatter():
    line = PlainTextFormatter(service_name="order-producer").format(_record())
    assert "INFO [order-producer] Order processed" in line


@pytest.mark.unit
def test_setup_logger_is_idempotent():
    logger = setup_logger("test-setup-logger", "order-service", log_level="DEBUG")
    again = setup_logger("test-setup-logger", "order-service", log_level="WARNING")

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


@pytest.mark.unit
def test_correlation_adapter_adds_correlation_id(caplog):
    logger = logging.getLogger("test-correlation")
    adapter = CorrelationAdapter(logger, {"correlation_id": "o1"})

    with caplog.at_level(logging.INFO, logger="test-correlation"):
        adapter.info("Order stored", extra={"items_count": 2})

    record = caplog.records[0]
    assert record.correlation_id == "o1"
    assert record.items_count == 2
