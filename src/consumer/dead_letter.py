"""
Dead-Letter Sink

Side channel for messages the ingestion pipeline cannot process (undecodable
payloads, orders missing order_uid/transaction). The raw bytes are published
unchanged to a dead-letter topic for out-of-band inspection.

BEST-EFFORT CONTRACT:
- send() never raises: buffer-full, broker and delivery errors are logged
- send() waits at most flush_timeout_s for the delivery report, so a
  broken dead-letter topic can slow the loop down but never block it
"""

import logging
import time
from typing import Optional

from confluent_kafka import KafkaError, KafkaException, Message, Producer


class KafkaDeadLetterSink:
    """
    Publishes unprocessable payloads to a dead-letter Kafka topic.

    Attributes:
        topic: Dead-letter topic name
        producer: confluent_kafka.Producer instance
        messages_sent: Payloads acknowledged by the broker
        messages_failed: Payloads that could not be delivered
    """

    def __init__(
        self,
        producer_config: dict,
        topic: str,
        flush_timeout_s: float = 1.0,
        producer: Optional[Producer] = None,
    ):
        self.topic = topic
        self.flush_timeout_s = flush_timeout_s
        self.logger = logging.getLogger(__name__)

        self.messages_sent = 0
        self.messages_failed = 0

        self.producer = producer or Producer(producer_config)

        self.logger.info("Dead-letter sink initialized", extra={"topic": topic})

    def send(
        self,
        value: Optional[bytes],
        key: Optional[bytes] = None,
        timestamp: Optional[float] = None,
    ) -> bool:
        """
        Publish a raw payload to the dead-letter topic.

        Args:
            value: Original message value, unchanged
            key: Original message key
            timestamp: Epoch seconds; defaults to now

        Returns:
            True if the broker acknowledged the message in time
        """
        timestamp_ms = int((timestamp if timestamp is not None else time.time()) * 1000)
        delivered = []

        def on_delivery(err: Optional[KafkaError], msg: Message) -> None:
            delivered.append(err)

        try:
            self.producer.produce(
                topic=self.topic,
                key=key,
                value=value,
                timestamp=timestamp_ms,
                on_delivery=on_delivery,
            )
            remaining = self.producer.flush(timeout=self.flush_timeout_s)
        except (BufferError, KafkaException) as e:
            self.messages_failed += 1
            self.logger.error(
                "Failed to publish to dead-letter topic",
                exc_info=True,
                extra={"topic": self.topic, "error": str(e)},
            )
            return False

        if remaining > 0 or not delivered or delivered[0] is not None:
            self.messages_failed += 1
            self.logger.error(
                "Dead-letter message not delivered",
                extra={
                    "topic": self.topic,
                    "remaining": remaining,
                    "error": delivered[0].str() if delivered and delivered[0] else None,
                },
            )
            return False

        self.messages_sent += 1
        return True

    def close(self) -> None:
        """Flush anything still buffered."""
        remaining = self.producer.flush(timeout=self.flush_timeout_s)
        self.logger.info(
            "Dead-letter sink closed",
            extra={
                "messages_sent": self.messages_sent,
                "messages_failed": self.messages_failed,
                "undelivered": remaining,
            },
        )
