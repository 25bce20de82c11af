"""
Order Ingestion Package

Consumes order documents from the Kafka 'orders' topic, stores them in
PostgreSQL and keeps an in-memory cache of them for the retrieval API.

ARCHITECTURE:
┌─────────────┐    ┌──────────────────┐    ┌──────────────┐    ┌────────────┐
│   Kafka     │───▶│  OrderConsumer   │───▶│  OrderStore  │───▶│ PostgreSQL │
│   orders    │    │  (fetch/commit)  │    │ (1 tx/order) │    │  4 tables  │
└─────────────┘    └──────────────────┘    └──────────────┘    └────────────┘
                     │             │
                     ▼             ▼
              ┌────────────┐  ┌────────────┐
              │ orders_dlq │  │ OrderCache │◀── GET /order/{uid}
              └────────────┘  └────────────┘

OFFSET MANAGEMENT (at-least-once):
1. Poll one message
2. OrderMessageHandler decides: PROCESSED / DISCARDED / DEFERRED
3. PROCESSED or DISCARDED → commit the offset
4. DEFERRED → seek back, back off, fetch the same message again
5. Duplicate deliveries are absorbed by ON CONFLICT (order_uid) DO NOTHING

Package components:
- config.py: Settings from environment variables
- schemas.py: Order document / aggregate (pydantic)
- models.py: SQLAlchemy tables
- database.py: Engine, pool and sessions
- store.py: Transactional insert and aggregate read-back
- cache.py: Thread-safe in-memory cache
- dead_letter.py: Dead-letter topic publisher
- handler.py: Per-message policy (Outcome, RetryPolicy)
- consumer.py: Kafka fetch/commit loop
- main.py: Service entry point (consumer thread + HTTP server)
"""

__version__ = "1.0.0"

from src.consumer.config import ConsumerConfig, load_config

__all__ = [
    "ConsumerConfig",
    "load_config",
]
