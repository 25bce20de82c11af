"""
HTTP retrieval endpoint.

ROUTES:
- GET /order/{order_uid}: order aggregate as JSON; 404 {"error": "not found"}
  when the order is unknown to both cache and store
- GET /health: cache size and database connectivity
- /: static assets from the configured directory, when it exists

Handlers are plain (sync) functions: FastAPI runs them in its thread pool,
so the blocking store read never stalls the event loop.
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from src.consumer.cache import OrderCache
from src.consumer.database import DatabaseManager
from src.consumer.exceptions import OrderNotFound
from src.consumer.schemas import Order
from src.consumer.store import OrderStore

logger = logging.getLogger(__name__)


class OrderLookup:
    """Read-through lookup: cache first, then store, filling the cache on a store hit."""

    def __init__(self, cache: OrderCache, store: OrderStore):
        self.cache = cache
        self.store = store

    def get(self, order_uid: str) -> Order:
        """
        Raises:
            OrderNotFound: Unknown in both cache and store
        """
        order, found = self.cache.get(order_uid)
        if found:
            return order

        order = self.store.get(order_uid)
        self.cache.set(order)
        return order


def create_app(
    cache: OrderCache,
    store: OrderStore,
    db_manager: Optional[DatabaseManager] = None,
    static_dir: Optional[str] = None,
) -> FastAPI:
    """Build the FastAPI application around an existing cache and store."""
    app = FastAPI(title="Order Service", description="Read-through order lookup")
    lookup = OrderLookup(cache, store)
    app.state.lookup = lookup

    @app.get("/order/{order_uid}")
    def get_order(order_uid: str):
        try:
            order = lookup.get(order_uid)
        except OrderNotFound:
            return JSONResponse(status_code=404, content={"error": "not found"})
        except SQLAlchemyError:
            logger.error("Order lookup failed", exc_info=True, extra={"order_uid": order_uid})
            return JSONResponse(status_code=404, content={"error": "not found"})

        return JSONResponse(content=order.model_dump(mode="json"))

    @app.get("/health")
    def health():
        database_ok = db_manager.check_health() if db_manager is not None else None
        return {
            "status": "degraded" if database_ok is False else "healthy",
            "cached_orders": len(cache),
            "database": database_ok,
        }

    # Mounted last so the API routes above take precedence over the catch-all
    if static_dir and os.path.isdir(static_dir):
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info("Serving static assets", extra={"static_dir": static_dir})

    return app
