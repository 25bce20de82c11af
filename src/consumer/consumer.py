"""
Kafka Order Consumer Loop

Drives the fetch → handle → commit/retry cycle for the orders topic.

LOOP (one message in flight at a time):
┌─────────────────────────────────────────────────────────────────────────┐
│  1. poll(timeout)           → None: poll again                          │
│                             → broker error: back off, poll again        │
│  2. handler.handle(message) → Outcome                                   │
│  3. PROCESSED / DISCARDED   → commit this message's offset              │
│     DEFERRED                → seek back to this offset, back off;       │
│                               the same message is fetched again next    │
│  4. repeat until the cancel event is set                                │
└─────────────────────────────────────────────────────────────────────────┘

AT-LEAST-ONCE DELIVERY:
- enable.auto.commit is always False; offsets are committed explicitly and
  synchronously, per message, only after a terminal outcome
- a crash before commit redelivers the message; the store ignores the
  duplicate order_uid, so reprocessing is harmless
- a commit failure is logged and not fatal: the next successful commit on
  the partition covers it

ORDERING:
- the next poll only happens after the current message's outcome has been
  applied; with the seek-back on DEFERRED a failing message is retried
  before anything behind it on its partition

CANCELLATION:
- run() returns once the cancel event is set; a blocked poll returns within
  poll_timeout_s and backoffs are interruptible waits on the same event
- the message being handled when cancellation arrives finishes normally
"""

import logging
import threading
from typing import Optional

from confluent_kafka import Consumer, KafkaError, KafkaException, Message, TopicPartition

from src.consumer.config import ConsumerConfig
from src.consumer.exceptions import TransientFetchError
from src.consumer.handler import OrderMessageHandler, Outcome, RetryPolicy

# ==============================================================================
# KAFKA CONSUMER
# ==============================================================================


class OrderConsumer:
    """
    Single-threaded Kafka consumer for the orders topic.

    Attributes:
        config: Service configuration
        handler: Per-message policy returning an Outcome
        retry_policy: Backoff delays for deferred messages and fetch errors
        consumer: confluent_kafka.Consumer (or any object with the same
            poll/commit/seek/close surface)
        messages_processed / messages_discarded / messages_deferred /
        fetch_errors / commit_failures: counters logged at shutdown
    """

    def __init__(
        self,
        config: ConsumerConfig,
        handler: OrderMessageHandler,
        retry_policy: Optional[RetryPolicy] = None,
        consumer: Optional[Consumer] = None,
    ):
        self.config = config
        self.handler = handler
        self.retry_policy = retry_policy or RetryPolicy.from_config(config)
        self.logger = logging.getLogger(__name__)

        self.messages_processed = 0
        self.messages_discarded = 0
        self.messages_deferred = 0
        self.fetch_errors = 0
        self.commit_failures = 0

        self._cancel = threading.Event()

        self.consumer = consumer or self._create_consumer()
        self.consumer.subscribe([config.kafka_topic_orders])

        self.logger.info(
            "Order consumer initialized",
            extra={
                "topic": config.kafka_topic_orders,
                "group_id": config.consumer_group_id,
                "bootstrap_servers": config.kafka_bootstrap_servers,
                "dead_letter_topic": config.kafka_topic_dlq,
            },
        )

    def _create_consumer(self) -> Consumer:
        kafka_config = self.config.get_kafka_config()
        self.logger.debug("Creating Kafka consumer", extra={"config": kafka_config})
        return Consumer(kafka_config)

    # ==========================================================================
    # MAIN LOOP
    # ==========================================================================

    def run(self, cancel: Optional[threading.Event] = None) -> None:
        """
        Consume until cancelled. Blocks the calling thread.

        Args:
            cancel: Event that stops the loop when set; defaults to the
                consumer's own event, which stop() sets
        """
        if cancel is not None:
            self._cancel = cancel
        cancel = self._cancel

        self.logger.info("Starting consumer loop...")

        while not cancel.is_set():
            try:
                msg = self._fetch()
            except TransientFetchError as e:
                self.fetch_errors += 1
                delay = self.retry_policy.delay_after_fetch_error()
                self.logger.warning(
                    "Kafka fetch failed, retrying",
                    extra={"error": str(e), "retry_in_s": delay},
                )
                cancel.wait(delay)
                continue

            if msg is None:
                continue

            outcome = self._handle(msg)
            self._apply_outcome(msg, outcome, cancel)

        self.logger.info(
            "Consumer loop stopped",
            extra={
                "messages_processed": self.messages_processed,
                "messages_discarded": self.messages_discarded,
                "messages_deferred": self.messages_deferred,
                "fetch_errors": self.fetch_errors,
                "commit_failures": self.commit_failures,
            },
        )

    def _fetch(self) -> Optional[Message]:
        """
        Poll for one message.

        Returns:
            The next message, or None when nothing arrived or the partition
            end was reached

        Raises:
            TransientFetchError: The broker reported an error
        """
        try:
            msg = self.consumer.poll(timeout=self.config.poll_timeout_s)
        except KafkaException as e:
            raise TransientFetchError(str(e)) from e

        if msg is None:
            return None

        error = msg.error()
        if error is None:
            return msg

        if error.code() == KafkaError._PARTITION_EOF:
            self.logger.debug(
                "Reached end of partition",
                extra={"partition": msg.partition(), "offset": msg.offset()},
            )
            return None

        raise TransientFetchError(f"{error.name()}: {error.str()}")

    def _handle(self, msg: Message) -> Outcome:
        try:
            return self.handler.handle(
                msg.value(),
                key=msg.key(),
                partition=msg.partition(),
                offset=msg.offset(),
            )
        except Exception:
            # Unknown failure: keep the offset, the message is retried
            self.logger.error(
                "Unexpected error handling message",
                exc_info=True,
                extra={"partition": msg.partition(), "offset": msg.offset()},
            )
            return Outcome.DEFERRED

    def _apply_outcome(self, msg: Message, outcome: Outcome, cancel: threading.Event) -> None:
        self.logger.debug(
            "Message handled",
            extra={"partition": msg.partition(), "offset": msg.offset(), "outcome": outcome.value},
        )

        if outcome is Outcome.PROCESSED:
            self.messages_processed += 1
        elif outcome is Outcome.DISCARDED:
            self.messages_discarded += 1
        else:
            self.messages_deferred += 1

        if outcome.commits:
            self._commit(msg)
            return

        self._rewind(msg)
        cancel.wait(self.retry_policy.delay_after(outcome))

    def _commit(self, msg: Message) -> None:
        """Synchronously commit the offset after msg. Failures are logged only."""
        try:
            self.consumer.commit(message=msg, asynchronous=False)
        except KafkaException as e:
            self.commit_failures += 1
            self.logger.error(
                "Offset commit failed",
                extra={"partition": msg.partition(), "offset": msg.offset(), "error": str(e)},
            )

    def _rewind(self, msg: Message) -> None:
        """Seek the partition back so msg is the next message fetched."""
        try:
            self.consumer.seek(TopicPartition(msg.topic(), msg.partition(), msg.offset()))
        except KafkaException as e:
            self.logger.error(
                "Seek back to deferred message failed",
                extra={"partition": msg.partition(), "offset": msg.offset(), "error": str(e)},
            )

    # ==========================================================================
    # SHUTDOWN
    # ==========================================================================

    def stop(self) -> None:
        """Signal the loop to stop after the current message."""
        self.logger.info("Stopping consumer...")
        self._cancel.set()

    def close(self) -> None:
        """Leave the consumer group and close the Kafka client."""
        try:
            self.consumer.close()
            self.logger.info("Kafka consumer closed")
        except KafkaException:
            self.logger.error("Error closing Kafka consumer", exc_info=True)
