"""
Order Store

Transactional persistence and read-back of the order aggregate across the
deliveries / payments / orders / items tables.

WRITE PATH (one transaction per order):
1. INSERT delivery row  → surrogate delivery_id
2. INSERT payment row   → surrogate payment_id
3. INSERT order row referencing both ids, ON CONFLICT (order_uid) DO NOTHING
   - conflict: the order already exists; the transaction is rolled back so
     no orphan delivery/payment rows and no duplicate items are left behind
4. INSERT one item row per order line, tagged with order_uid
5. COMMIT (any failure before this rolls everything back)

READ PATH:
order row → delivery + payment rows by surrogate id → item rows by order_uid
(in insertion order) → immutable schemas.Order

ERRORS:
- insert(): every SQLAlchemyError (connectivity, pool exhaustion, constraint
  violations other than the duplicate order_uid) → TransientStoreError
- get(): no order row → OrderNotFound; other errors propagate unchanged
"""

import logging
from typing import List, Optional

from sqlalchemy import Table, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.consumer.database import DatabaseManager
from src.consumer.exceptions import OrderNotFound, TransientStoreError
from src.consumer.models import DeliveryRow, ItemRow, OrderRow, PaymentRow
from src.consumer.schemas import Order
from src.shared.logger import CorrelationAdapter

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class OrderStore:
    """
    Durable source of truth for orders.

    Attributes:
        db_manager: Shared database manager (engine + session factory)
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)

        if db_manager.dialect_name not in _UPSERT_DIALECTS:
            raise ValueError(f"Unsupported database dialect: {db_manager.dialect_name}")
        self._dialect_insert = _UPSERT_DIALECTS[db_manager.dialect_name]

    # ==========================================================================
    # WRITES
    # ==========================================================================

    def insert(self, order: Order) -> bool:
        """
        Persist an order aggregate atomically.

        Args:
            order: Validated order (non-empty order_uid and transaction)

        Returns:
            True if the order was created, False if an order with the same
            order_uid already existed (nothing was written)

        Raises:
            TransientStoreError: The transaction failed and was rolled back
        """
        order_logger = CorrelationAdapter(self.logger, {"correlation_id": order.order_uid})

        try:
            with self.db_manager.get_session() as session:
                created = self._insert_aggregate(session, order)
        except SQLAlchemyError as e:
            raise TransientStoreError(f"failed to store order {order.order_uid}: {e}") from e

        if created:
            order_logger.debug("Order stored", extra={"items_count": len(order.items)})
        else:
            order_logger.info("Duplicate order ignored")
        return created

    def _insert_aggregate(self, session: Session, order: Order) -> bool:
        delivery = DeliveryRow.from_domain(order.delivery)
        payment = PaymentRow.from_domain(order.payment)
        session.add_all([delivery, payment])
        session.flush()  # assigns surrogate ids

        order_table: Table = OrderRow.__table__
        stmt = (
            self._dialect_insert(order_table)
            .values(**OrderRow.values_from_domain(order, delivery.id, payment.id))
            .on_conflict_do_nothing(index_elements=[order_table.c.order_uid])
        )
        result = session.execute(stmt)

        if result.rowcount == 0:
            session.rollback()
            return False

        self._insert_items(session, order)
        return True

    def _insert_items(self, session: Session, order: Order) -> None:
        session.add_all([ItemRow.from_domain(item, order.order_uid) for item in order.items])
        session.flush()

    # ==========================================================================
    # READS
    # ==========================================================================

    def get(self, order_uid: str) -> Order:
        """
        Load the full aggregate for order_uid.

        Raises:
            OrderNotFound: No order row matches
            SQLAlchemyError: Any other read failure, unchanged
        """
        with self.db_manager.get_session() as session:
            order = self._load_aggregate(session, order_uid)

        if order is None:
            raise OrderNotFound(order_uid)
        return order

    def _load_aggregate(self, session: Session, order_uid: str) -> Optional[Order]:
        row = session.get(OrderRow, order_uid)
        if row is None:
            return None

        delivery = session.get(DeliveryRow, row.delivery_id)
        payment = session.get(PaymentRow, row.payment_id)
        items = session.scalars(
            select(ItemRow).where(ItemRow.order_uid == order_uid).order_by(ItemRow.id)
        ).all()

        return row.to_domain(
            delivery=delivery.to_domain(),
            payment=payment.to_domain(),
            items=[item.to_domain() for item in items],
        )

    def recent_orders(self, limit: int) -> List[Order]:
        """
        Load up to `limit` most recently created orders, newest first.

        Used once at startup to warm the cache.
        """
        if limit <= 0:
            return []

        with self.db_manager.get_session() as session:
            order_uids = session.scalars(
                select(OrderRow.order_uid)
                .order_by(OrderRow.date_created.desc().nulls_last(), OrderRow.order_uid)
                .limit(limit)
            ).all()

        return [self.get(order_uid) for order_uid in order_uids]
