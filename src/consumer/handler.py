"""
Per-message ingestion policy.

OrderMessageHandler decides what happens to one Kafka message and reports it
as an Outcome. It never touches offsets: the consumer loop turns the outcome
into a commit or a retry, so this module is testable without a broker.

DECISION TABLE:
┌──────────────────────────────┬───────────────────────┬────────────┐
│ Situation                    │ Side effect           │ Outcome    │
├──────────────────────────────┼───────────────────────┼────────────┤
│ undecodable, DLQ configured  │ raw bytes → DLQ       │ DISCARDED  │
│ undecodable, no DLQ          │ none                  │ DEFERRED   │
│ invalid order, DLQ configured│ raw bytes → DLQ       │ DISCARDED  │
│ invalid order, no DLQ        │ none (logged)         │ DISCARDED  │
│ store transaction failed     │ rolled back           │ DEFERRED   │
│ stored (new or duplicate)    │ cache updated         │ PROCESSED  │
└──────────────────────────────┴───────────────────────┴────────────┘

Without a dead-letter topic an undecodable payload is retried rather than
dropped, so nothing unparseable is lost silently when it has nowhere to go.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError

from src.consumer.cache import OrderCache
from src.consumer.exceptions import (
    InvalidOrder,
    MalformedPayload,
    OrderNotFound,
    TransientStoreError,
)
from src.consumer.schemas import parse_order, validate_order
from src.consumer.store import OrderStore
from src.shared.logger import CorrelationAdapter


class Outcome(str, Enum):
    """Terminal result of handling one message."""

    PROCESSED = "processed"
    DISCARDED = "discarded"
    DEFERRED = "deferred"

    @property
    def commits(self) -> bool:
        """Whether the message's offset may be committed."""
        return self is not Outcome.DEFERRED


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed backoff delays applied by the consumer loop.

    Attributes:
        deferred_backoff_s: Wait before re-fetching a deferred message
        fetch_error_backoff_s: Wait before polling again after a broker error
    """

    deferred_backoff_s: float = 0.5
    fetch_error_backoff_s: float = 2.0

    @classmethod
    def from_config(cls, config) -> "RetryPolicy":
        return cls(
            deferred_backoff_s=config.process_error_backoff_ms / 1000,
            fetch_error_backoff_s=config.fetch_error_backoff_ms / 1000,
        )

    def delay_after(self, outcome: Outcome) -> float:
        """Seconds to wait after a message outcome (0 when the offset advances)."""
        return 0.0 if outcome.commits else self.deferred_backoff_s

    def delay_after_fetch_error(self) -> float:
        return self.fetch_error_backoff_s


class DeadLetterSink(Protocol):
    def send(
        self, value: Optional[bytes], key: Optional[bytes] = None, timestamp: Optional[float] = None
    ) -> bool: ...


class OrderMessageHandler:
    """
    Validate, persist and cache one order message.

    Attributes:
        store: Durable order store
        cache: In-memory order cache (written after every stored order)
        dead_letter: Optional sink for unprocessable payloads
    """

    def __init__(
        self,
        store: OrderStore,
        cache: OrderCache,
        dead_letter: Optional[DeadLetterSink] = None,
    ):
        self.store = store
        self.cache = cache
        self.dead_letter = dead_letter
        self.logger = logging.getLogger(__name__)

    def handle(
        self,
        value: Optional[bytes],
        key: Optional[bytes] = None,
        partition: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Outcome:
        """
        Decide the fate of one message.

        Args:
            value: Raw message value
            key: Raw message key (forwarded to the dead-letter topic)
            partition: Source partition, for logging
            offset: Source offset, for logging

        Returns:
            Outcome telling the loop whether to commit or retry
        """
        start_time = time.time()
        position = {"partition": partition, "offset": offset}

        # 1. Deserialize
        try:
            order = parse_order(value)
        except MalformedPayload as e:
            self.logger.error("Invalid order payload", extra={**position, "error": str(e)})
            if self._dead_letter(value, key):
                return Outcome.DISCARDED
            return Outcome.DEFERRED

        order_logger = CorrelationAdapter(self.logger, {"correlation_id": order.order_uid})

        # 2. Business validation
        try:
            validate_order(order)
        except InvalidOrder as e:
            order_logger.warning("Invalid order", extra={**position, "error": str(e)})
            self._dead_letter(value, key)
            return Outcome.DISCARDED

        # 3. Persist
        try:
            created = self.store.insert(order)
        except TransientStoreError as e:
            order_logger.warning(
                "Store write failed, message will be retried",
                extra={**position, "error": str(e)},
            )
            return Outcome.DEFERRED

        # 4. Mirror into the cache
        if created:
            self.cache.set(order)
        else:
            # Redelivery: cache what was stored first, not the new payload
            try:
                self.cache.set(self.store.get(order.order_uid))
            except (SQLAlchemyError, OrderNotFound) as e:
                order_logger.warning(
                    "Could not reload duplicate order, message will be retried",
                    extra={**position, "error": str(e)},
                )
                return Outcome.DEFERRED

        order_logger.info(
            "Order processed",
            extra={
                **position,
                "duplicate": not created,
                "items_count": len(order.items),
                "processing_time_ms": round((time.time() - start_time) * 1000, 2),
            },
        )
        return Outcome.PROCESSED

    def _dead_letter(self, value: Optional[bytes], key: Optional[bytes]) -> bool:
        """Forward a payload to the sink; returns False when no sink is configured."""
        if self.dead_letter is None:
            return False
        self.dead_letter.send(value, key=key, timestamp=time.time())
        return True
