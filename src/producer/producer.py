"""
Kafka Order Producer

Publishes order documents to the orders topic.

PARTITION KEY:
- key = order_uid: every delivery of the same order lands on the same
  partition, so a redelivered duplicate is always processed after the
  original by the single consumer of that partition

DELIVERY GUARANTEES:
- enable.idempotence=true with acks=all: broker-side retries never create
  duplicates
- delivery reports update messages_sent / messages_failed
"""

import json
import logging
from typing import Any, Callable, Dict, Optional

from confluent_kafka import KafkaError, KafkaException, Message, Producer


class OrderProducer:
    """
    Kafka producer for order documents.

    Attributes:
        topic: Target topic
        producer: confluent_kafka.Producer instance
        messages_sent: Messages acknowledged by the broker
        messages_failed: Messages whose delivery failed
    """

    def __init__(
        self,
        producer_config: Dict[str, Any],
        topic: str,
        delivery_callback: Optional[Callable] = None,
        producer: Optional[Producer] = None,
    ):
        self.topic = topic
        self.logger = logging.getLogger(__name__)
        self.delivery_callback = delivery_callback or self._default_delivery_callback

        self.messages_sent = 0
        self.messages_failed = 0

        try:
            self.producer = producer or Producer(producer_config)
        except KafkaException:
            self.logger.error("Failed to initialize Kafka producer", exc_info=True)
            raise

        self.logger.info(
            "Kafka producer initialized",
            extra={"topic": topic, "bootstrap_servers": producer_config.get("bootstrap.servers")},
        )

    def _default_delivery_callback(self, err: Optional[KafkaError], msg: Message) -> None:
        """Count and log a delivery report. Runs from poll()/flush()."""
        if err is not None:
            self.messages_failed += 1
            self.logger.error(
                "Message delivery failed",
                extra={
                    "error": err.str(),
                    "topic": msg.topic(),
                    "key": msg.key().decode("utf-8", errors="replace") if msg.key() else None,
                },
            )
            return

        self.messages_sent += 1
        self.logger.debug(
            "Message delivered",
            extra={
                "correlation_id": msg.key().decode("utf-8", errors="replace") if msg.key() else None,
                "partition": msg.partition(),
                "offset": msg.offset(),
            },
        )

    def produce_order(self, order: Dict[str, Any]) -> None:
        """
        Publish one order document keyed by its order_uid.

        Raises:
            BufferError: Local queue full (slow down or flush)
            KafkaException: Kafka client error
        """
        order_uid = order.get("order_uid") or ""
        self.produce_raw(json.dumps(order).encode("utf-8"), key=order_uid.encode("utf-8") or None)

    def produce_raw(self, value: bytes, key: Optional[bytes] = None) -> None:
        """Publish an already-encoded payload unchanged (e.g. a model.json file)."""
        try:
            self.producer.produce(
                topic=self.topic,
                key=key,
                value=value,
                on_delivery=self.delivery_callback,
            )
            self.producer.poll(0)
        except BufferError:
            self.logger.error(
                "Producer buffer full",
                exc_info=True,
                extra={"advice": "Slow down production or flush more often"},
            )
            raise
        except KafkaException:
            self.logger.error("Kafka error publishing order", exc_info=True)
            raise

    def flush(self, timeout: float = 30.0) -> int:
        """
        Wait for outstanding deliveries.

        Returns:
            Number of messages still queued (0 = all delivered)
        """
        remaining = self.producer.flush(timeout=timeout)
        if remaining > 0:
            self.logger.warning(
                "Producer flush timeout",
                extra={"remaining_messages": remaining, "timeout": timeout},
            )
        return remaining

    def close(self, timeout: float = 30.0) -> None:
        remaining = self.flush(timeout=timeout)
        self.logger.info(
            "Producer closed",
            extra={
                "messages_sent": self.messages_sent,
                "messages_failed": self.messages_failed,
                "undelivered": remaining,
            },
        )
