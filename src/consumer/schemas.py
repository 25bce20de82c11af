"""
Order Message Schemas

Pydantic models for the order document carried on the Kafka orders topic.
The same models are the in-memory aggregate: the store returns them, the
cache holds them, and the HTTP endpoint serializes them.

MESSAGE FORMAT (JSON, UTF-8):
{
  "order_uid": "b563feb7b2b84b6test",
  "track_number": "WBILMTESTTRACK",
  "entry": "WBIL",
  "delivery": {"name": "...", "phone": "...", "zip": "...", "city": "...",
               "address": "...", "region": "...", "email": "..."},
  "payment": {"transaction": "b563feb7b2b84b6test", "request_id": "",
              "currency": "USD", "provider": "wbpay", "amount": 1817,
              "payment_dt": 1637907727, "bank": "alpha",
              "delivery_cost": 1500, "goods_total": 317, "custom_fee": 0},
  "items": [{"chrt_id": 9934930, "track_number": "WBILMTESTTRACK",
             "price": 453, "rid": "...", "name": "Mascaras", "sale": 30,
             "size": "0", "total_price": 317, "nm_id": 2389212,
             "brand": "Vivienne Sabo", "status": 202}],
  "locale": "en",
  "internal_signature": "",
  "customer_id": "test",
  "delivery_service": "meest",
  "shardkey": "9",
  "sm_id": 99,
  "date_created": "2021-11-26T06:22:19Z",
  "oof_shard": "1"
}

PARSING RULES:
- Missing or null fields take their zero value ("" / 0 / [] / None), so
  a document with an empty order_uid still parses and is rejected by
  validate_order()
- A null document or list element decodes to an all-zero part
- Wrong types, invalid JSON, or a non-object document are malformed
- Unknown fields are ignored

Models are frozen: a cached aggregate is replaced as a whole, never mutated.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from src.consumer.exceptions import InvalidOrder, MalformedPayload


class _OrderPart(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _null_means_absent(cls, data: Any) -> Any:
        # A JSON null leaves the field, or the whole part, at its zero value
        if data is None:
            return {}
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class Delivery(_OrderPart):
    """Recipient and address of an order."""

    name: str = ""
    phone: str = ""
    zip: str = ""
    city: str = ""
    address: str = ""
    region: str = ""
    email: str = ""


class Payment(_OrderPart):
    """Payment details. Monetary amounts are integers in minor units."""

    transaction: str = ""
    request_id: str = ""
    currency: str = ""
    provider: str = ""
    amount: int = 0
    payment_dt: int = 0
    bank: str = ""
    delivery_cost: int = 0
    goods_total: int = 0
    custom_fee: int = 0


class Item(_OrderPart):
    """A single order line."""

    chrt_id: int = 0
    track_number: str = ""
    price: int = 0
    rid: str = ""
    name: str = ""
    sale: int = 0
    size: str = ""
    total_price: int = 0
    nm_id: int = 0
    brand: str = ""
    status: int = 0


class Order(_OrderPart):
    """Order aggregate root: owns one Delivery, one Payment and its Items."""

    order_uid: str = ""
    track_number: str = ""
    entry: str = ""
    delivery: Delivery = Field(default_factory=Delivery)
    payment: Payment = Field(default_factory=Payment)
    items: List[Item] = Field(default_factory=list)
    locale: str = ""
    internal_signature: str = ""
    customer_id: str = ""
    delivery_service: str = ""
    shardkey: str = ""
    sm_id: int = 0
    date_created: Optional[datetime] = None
    oof_shard: str = ""

    @field_validator("date_created")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Databases without timezone support hand back naive UTC values
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def parse_order(raw: Union[bytes, str, None]) -> Order:
    """
    Deserialize a Kafka message value into an Order.

    Raises:
        MalformedPayload: empty value, invalid JSON/UTF-8, non-object
            document, or a field of the wrong type
    """
    if raw is None or len(raw) == 0:
        raise MalformedPayload("empty message value")

    try:
        return Order.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedPayload(
            f"cannot decode order: {e.error_count()} error(s), first: {e.errors()[0]['msg']}"
        ) from e


def validate_order(order: Order) -> Order:
    """
    Check the business invariants that gate durable storage.

    Raises:
        InvalidOrder: order_uid or payment.transaction is empty
    """
    if not order.order_uid or not order.payment.transaction:
        raise InvalidOrder("missing order_uid/transaction")
    return order
