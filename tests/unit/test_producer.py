"""
Unit Tests for OrderProducer

Uses a fake confluent_kafka.Producer; delivery reports are fired by hand.
"""

import json

import pytest
from confluent_kafka import KafkaError

from src.producer.mock_data import MockDataGenerator
from src.producer.producer import OrderProducer


class FakeMessage:
    def __init__(self, key, topic="orders", partition=0, offset=0):
        self._key = key
        self._topic = topic
        self._partition = partition
        self._offset = offset

    def key(self):
        return self._key

    def topic(self):
        return self._topic

    def partition(self):
        return self._partition

    def offset(self):
        return self._offset


class FakeProducer:
    def __init__(self, remaining=0):
        self.produced = []
        self.remaining = remaining
        self.polls = 0

    def produce(self, topic, key=None, value=None, on_delivery=None):
        self.produced.append({"topic": topic, "key": key, "value": value, "on_delivery": on_delivery})

    def poll(self, timeout):
        self.polls += 1
        return 0

    def flush(self, timeout=None):
        return self.remaining


@pytest.fixture
def fake_producer():
    return FakeProducer()


@pytest.fixture
def order_producer(fake_producer):
    return OrderProducer({"bootstrap.servers": "fake:9092"}, "orders", producer=fake_producer)


@pytest.mark.unit
def test_produce_order_keys_by_order_uid(order_producer, fake_producer):
    order = MockDataGenerator(seed=42).generate_order()

    order_producer.produce_order(order)

    produced = fake_producer.produced[0]
    assert produced["topic"] == "orders"
    assert produced["key"] == order["order_uid"].encode("utf-8")
    assert json.loads(produced["value"]) == order
    assert fake_producer.polls == 1


@pytest.mark.unit
def test_produce_order_without_uid_has_no_key(order_producer, fake_producer):
    order_producer.produce_order({"order_uid": ""})
    assert fake_producer.produced[0]["key"] is None


@pytest.mark.unit
def test_produce_raw_sends_bytes_unchanged(order_producer, fake_producer):
    order_producer.produce_raw(b"{not json", key=b"k")

    assert fake_producer.produced[0]["value"] == b"{not json"
    assert fake_producer.produced[0]["key"] == b"k"


@pytest.mark.unit
def test_delivery_callback_counts(order_producer):
    order_producer._default_delivery_callback(None, FakeMessage(b"o1"))
    order_producer._default_delivery_callback(KafkaError(KafkaError._MSG_TIMED_OUT), FakeMessage(b"o2"))

    assert order_producer.messages_sent == 1
    assert order_producer.messages_failed == 1


@pytest.mark.unit
def test_buffer_error_propagates():
    class FullProducer(FakeProducer):
        def produce(self, *args, **kwargs):
            raise BufferError("queue full")

    producer = OrderProducer({}, "orders", producer=FullProducer())

    with pytest.raises(BufferError):
        producer.produce_raw(b"x")


@pytest.mark.unit
def test_flush_returns_remaining():
    producer = OrderProducer({}, "orders", producer=FakeProducer(remaining=3))
    assert producer.flush(timeout=0.1) == 3
