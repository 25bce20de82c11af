"""
Order Retrieval API Package

Read side of the order service:

┌──────────┐  GET /order/{uid}  ┌──────────────┐  miss  ┌──────────────┐
│  client  │───────────────────▶│  OrderCache  │───────▶│  OrderStore  │
└──────────┘                    └──────────────┘◀───────└──────────────┘
                                        set on store hit

- app.py: FastAPI application factory, read-through lookup, health check

The cache and the store are built by the service entry point
(src/consumer/main.py) and injected into create_app().
"""
