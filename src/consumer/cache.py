"""
In-memory order cache.

A read-through mirror of stored orders keyed by order_uid. The ingestion
thread writes it after every successful insert; the HTTP endpoint reads it
and fills misses from the store. The store stays the source of truth.

Values are frozen pydantic models, and a write swaps the whole value under
the lock, so readers only ever see complete aggregates.
"""

import logging
import threading
from collections import OrderedDict
from typing import Optional, Tuple

from src.consumer.schemas import Order


class OrderCache:
    """
    Thread-safe order_uid → Order mapping.

    Args:
        max_entries: 0 keeps every order ever seen; a positive value evicts
            the least recently written entry once the cap is exceeded
    """

    def __init__(self, max_entries: int = 0):
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        self.max_entries = max_entries
        self._orders: "OrderedDict[str, Order]" = OrderedDict()
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def get(self, order_uid: str) -> Tuple[Optional[Order], bool]:
        """Return (order, True) on a hit and (None, False) on a miss."""
        with self._lock:
            order = self._orders.get(order_uid)
        return order, order is not None

    def set(self, order: Order) -> None:
        """Insert or overwrite the entry for order.order_uid."""
        with self._lock:
            self._orders[order.order_uid] = order
            self._orders.move_to_end(order.order_uid)

            if self.max_entries and len(self._orders) > self.max_entries:
                evicted, _ = self._orders.popitem(last=False)
                self.logger.debug("Cache entry evicted", extra={"order_uid": evicted})

    def warm_up(self, orders) -> int:
        """
        Load orders given newest first, as OrderStore.recent_orders returns
        them. They are written oldest first so the newest survive a size cap.

        Returns:
            Number of orders cached
        """
        count = 0
        for order in reversed(list(orders)):
            self.set(order)
            count += 1
        return count

    def clear(self) -> None:
        with self._lock:
            self._orders.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._orders)

    def __contains__(self, order_uid: object) -> bool:
        with self._lock:
            return order_uid in self._orders
