"""
Error taxonomy of the order ingestion pipeline.

Per-message terminal errors (the offset still advances):
- MalformedPayload: the message value is not a decodable order document
- InvalidOrder: the document decoded but breaks a business invariant

Transient errors (retried locally, never fatal):
- TransientFetchError: reading from the broker failed
- TransientStoreError: the store transaction failed, the offset is withheld

Retrieval path only:
- OrderNotFound: no order row matches the requested identifier
"""


class OrderPipelineError(Exception):
    """Base class for all order pipeline errors."""


class MalformedPayload(OrderPipelineError):
    """Raised when a message value cannot be deserialized as an order."""


class InvalidOrder(OrderPipelineError):
    """Raised when an order is missing its order_uid or payment transaction."""


class TransientFetchError(OrderPipelineError):
    """Raised when polling the broker fails for a reason other than cancellation."""


class TransientStoreError(OrderPipelineError):
    """Raised when persisting an order fails and the message should be retried."""


class OrderNotFound(OrderPipelineError):
    """Raised when no stored order matches an order_uid."""

    def __init__(self, order_uid: str):
        super().__init__(f"Order {order_uid!r} not found")
        self.order_uid = order_uid
