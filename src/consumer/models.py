"""
SQLAlchemy ORM Models for Order Storage

The order aggregate is stored normalized across four tables:

┌──────────────┐      ┌──────────────────┐      ┌──────────────┐
│  deliveries  │◀─────│      orders      │─────▶│   payments   │
│  id (PK)     │  1:1 │  order_uid (PK)  │ 1:1  │  id (PK)     │
└──────────────┘      │  delivery_id(FK) │      └──────────────┘
                      │  payment_id (FK) │
                      └──────────────────┘
                               ▲ 1:N
                      ┌──────────────────┐
                      │      items       │
                      │  id (PK)         │
                      │  order_uid (FK)  │
                      └──────────────────┘

SURROGATE KEYS:
- deliveries.id and payments.id are assigned at insert time and referenced
  from the order row
- items.id preserves the order of the item list on read-back

IDEMPOTENCY:
- orders.order_uid is the natural business key (PRIMARY KEY)
- the store inserts order rows with ON CONFLICT (order_uid) DO NOTHING
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import TIMESTAMP, BigInteger, ForeignKey, Integer, String, text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.consumer import schemas

# ==============================================================================
# DECLARATIVE BASE
# ==============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ==============================================================================
# DELIVERY
# ==============================================================================


class DeliveryRow(Base):
    """Recipient and shipping address, one row per stored order."""

    __tablename__ = "deliveries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    phone: Mapped[str] = mapped_column(String, nullable=False, default="")
    zip: Mapped[str] = mapped_column(String, nullable=False, default="")
    city: Mapped[str] = mapped_column(String, nullable=False, default="")
    address: Mapped[str] = mapped_column(String, nullable=False, default="")
    region: Mapped[str] = mapped_column(String, nullable=False, default="")
    email: Mapped[str] = mapped_column(String, nullable=False, default="")

    @classmethod
    def from_domain(cls, delivery: schemas.Delivery) -> "DeliveryRow":
        return cls(**delivery.model_dump())

    def to_domain(self) -> schemas.Delivery:
        return schemas.Delivery(
            name=self.name,
            phone=self.phone,
            zip=self.zip,
            city=self.city,
            address=self.address,
            region=self.region,
            email=self.email,
        )


# ==============================================================================
# PAYMENT
# ==============================================================================
# Amounts are integers in minor currency units, exactly as they arrive on the
# wire. payment_dt is a unix timestamp (seconds).


class PaymentRow(Base):
    """Payment details, one row per stored order."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    transaction: Mapped[str] = mapped_column(
        String, nullable=False, comment="Payment transaction id, never empty"
    )
    request_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    currency: Mapped[str] = mapped_column(String, nullable=False, default="")
    provider: Mapped[str] = mapped_column(String, nullable=False, default="")
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    payment_dt: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    bank: Mapped[str] = mapped_column(String, nullable=False, default="")
    delivery_cost: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    goods_total: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    custom_fee: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    @classmethod
    def from_domain(cls, payment: schemas.Payment) -> "PaymentRow":
        return cls(**payment.model_dump())

    def to_domain(self) -> schemas.Payment:
        return schemas.Payment(
            transaction=self.transaction,
            request_id=self.request_id,
            currency=self.currency,
            provider=self.provider,
            amount=self.amount,
            payment_dt=self.payment_dt,
            bank=self.bank,
            delivery_cost=self.delivery_cost,
            goods_total=self.goods_total,
            custom_fee=self.custom_fee,
        )


# ==============================================================================
# ORDER
# ==============================================================================


class OrderRow(Base):
    """
    Order aggregate root.

    Rows are written once, on first ingestion, and never updated by the
    pipeline. processed_at is set by the database and is not part of the
    aggregate returned to callers.
    """

    __tablename__ = "orders"

    order_uid: Mapped[str] = mapped_column(
        String, primary_key=True, comment="Unique order identifier from the Kafka message"
    )
    track_number: Mapped[str] = mapped_column(String, nullable=False, default="")
    entry: Mapped[str] = mapped_column(String, nullable=False, default="")
    locale: Mapped[str] = mapped_column(String, nullable=False, default="")
    internal_signature: Mapped[str] = mapped_column(String, nullable=False, default="")
    customer_id: Mapped[str] = mapped_column(String, nullable=False, default="")
    delivery_service: Mapped[str] = mapped_column(String, nullable=False, default="")
    shardkey: Mapped[str] = mapped_column(String, nullable=False, default="")
    sm_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    date_created: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=True,
        index=True,  # Cache warm-up reads the newest orders first
        comment="Order creation timestamp from the Kafka message",
    )
    oof_shard: Mapped[str] = mapped_column(String, nullable=False, default="")

    delivery_id: Mapped[int] = mapped_column(ForeignKey("deliveries.id"), nullable=False)
    payment_id: Mapped[int] = mapped_column(ForeignKey("payments.id"), nullable=False)

    processed_at: Mapped[Optional[datetime]] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        comment="Database write timestamp",
    )

    __table_args__ = ({"comment": "Orders consumed from the Kafka orders topic"},)

    @staticmethod
    def values_from_domain(order: schemas.Order, delivery_id: int, payment_id: int) -> dict:
        """Column values for an INSERT of this order row."""
        return {
            "order_uid": order.order_uid,
            "track_number": order.track_number,
            "entry": order.entry,
            "locale": order.locale,
            "internal_signature": order.internal_signature,
            "customer_id": order.customer_id,
            "delivery_service": order.delivery_service,
            "shardkey": order.shardkey,
            "sm_id": order.sm_id,
            "date_created": (
                order.date_created.astimezone(timezone.utc) if order.date_created else None
            ),
            "oof_shard": order.oof_shard,
            "delivery_id": delivery_id,
            "payment_id": payment_id,
        }

    def to_domain(
        self,
        delivery: schemas.Delivery,
        payment: schemas.Payment,
        items: List[schemas.Item],
    ) -> schemas.Order:
        return schemas.Order(
            order_uid=self.order_uid,
            track_number=self.track_number,
            entry=self.entry,
            delivery=delivery,
            payment=payment,
            items=items,
            locale=self.locale,
            internal_signature=self.internal_signature,
            customer_id=self.customer_id,
            delivery_service=self.delivery_service,
            shardkey=self.shardkey,
            sm_id=self.sm_id,
            date_created=self.date_created,
            oof_shard=self.oof_shard,
        )

    def __repr__(self) -> str:
        return (
            f"<OrderRow(order_uid={self.order_uid}, "
            f"customer_id={self.customer_id}, "
            f"delivery_id={self.delivery_id}, "
            f"payment_id={self.payment_id})>"
        )


# ==============================================================================
# ITEMS
# ==============================================================================


class ItemRow(Base):
    """Order line, tagged with the owning order's order_uid."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_uid: Mapped[str] = mapped_column(
        ForeignKey("orders.order_uid"), nullable=False, index=True
    )
    chrt_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    track_number: Mapped[str] = mapped_column(String, nullable=False, default="")
    price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    rid: Mapped[str] = mapped_column(String, nullable=False, default="")
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    sale: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    size: Mapped[str] = mapped_column(String, nullable=False, default="")
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    nm_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    brand: Mapped[str] = mapped_column(String, nullable=False, default="")
    status: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    @classmethod
    def from_domain(cls, item: schemas.Item, order_uid: str) -> "ItemRow":
        return cls(order_uid=order_uid, **item.model_dump())

    def to_domain(self) -> schemas.Item:
        return schemas.Item(
            chrt_id=self.chrt_id,
            track_number=self.track_number,
            price=self.price,
            rid=self.rid,
            name=self.name,
            sale=self.sale,
            size=self.size,
            total_price=self.total_price,
            nm_id=self.nm_id,
            brand=self.brand,
            status=self.status,
        )
