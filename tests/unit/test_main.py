"""
Unit Tests for the Order Service Entry Point

Tests the shutdown and wiring helpers used by main() without starting
Kafka, PostgreSQL or the HTTP server.
"""

import threading

import pytest

from src.consumer.config import ConsumerConfig
from src.consumer.main import build_dead_letter_sink, stop_consumer


class FakeConsumer:
    def __init__(self):
        self.closed = False

    def close(self):
        self.closed = True


def _loop_thread(cancel, stuck):
    """Thread that exits on cancel, unless stuck is set (a poll() that never returns)."""

    def run():
        cancel.wait()
        stuck.wait()

    return threading.Thread(target=run, daemon=True)


# ==============================================================================
# SHUTDOWN
# ==============================================================================


@pytest.mark.unit
def test_stop_consumer_closes_after_loop_exits():
    consumer = FakeConsumer()
    cancel = threading.Event()
    stuck = threading.Event()
    stuck.set()
    thread = _loop_thread(cancel, stuck)
    thread.start()

    assert stop_consumer(consumer, thread, cancel, timeout_s=5.0) is True

    assert cancel.is_set()
    assert not thread.is_alive()
    assert consumer.closed is True


@pytest.mark.unit
def test_stop_consumer_leaves_consumer_open_while_loop_runs(caplog):
    consumer = FakeConsumer()
    cancel = threading.Event()
    stuck = threading.Event()
    thread = _loop_thread(cancel, stuck)
    thread.start()

    try:
        with caplog.at_level("WARNING", logger="src.consumer.main"):
            assert stop_consumer(consumer, thread, cancel, timeout_s=0.1) is False

        assert thread.is_alive()
        assert consumer.closed is False
        assert "did not stop in time" in caplog.text
    finally:
        stuck.set()
        thread.join(timeout=5)


# ==============================================================================
# DEAD-LETTER WIRING
# ==============================================================================


@pytest.mark.unit
def test_build_dead_letter_sink_disabled():
    assert build_dead_letter_sink(ConsumerConfig(kafka_topic_dlq="")) is None


@pytest.mark.unit
def test_build_dead_letter_sink_uses_configured_timeout():
    config = ConsumerConfig(kafka_topic_dlq="dead", dlq_flush_timeout_ms=250)

    sink = build_dead_letter_sink(config)
    try:
        assert sink.topic == "dead"
        assert sink.flush_timeout_s == 0.25
    finally:
        sink.close()
