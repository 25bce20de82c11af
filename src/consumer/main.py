"""
Order Service - Main Entry Point

Wires the ingestion pipeline and the retrieval endpoint into one process.

USAGE:
    python -m src.consumer.main [--log-level LEVEL] [--log-format json|text]

STARTUP SEQUENCE:
1. Load configuration (environment / .env)
2. Set up structured logging for the whole src package
3. Connect to PostgreSQL and create the schema (fatal on failure: exit 1)
4. Build the cache and warm it with the most recent orders
5. Build the store, dead-letter sink, message handler and Kafka consumer
6. Start the consumer loop on a background thread
7. Serve HTTP with uvicorn in the main thread

GRACEFUL SHUTDOWN (SIGINT / SIGTERM):
- uvicorn stops accepting requests and returns
- the cancel event stops the consumer loop after its current message
- Kafka clients and the connection pool are closed
"""

import argparse
import logging
import sys
import threading

import uvicorn

from src.api.app import create_app
from src.consumer.cache import OrderCache
from src.consumer.config import ConsumerConfig, load_config
from src.consumer.consumer import OrderConsumer
from src.consumer.dead_letter import KafkaDeadLetterSink
from src.consumer.database import init_database
from src.consumer.handler import OrderMessageHandler
from src.consumer.store import OrderStore
from src.shared.logger import setup_logger

SHUTDOWN_JOIN_TIMEOUT_S = 30.0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Order Service: Kafka ingestion + read-through HTTP lookup",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with settings from the environment / .env
  python -m src.consumer.main

  # Debug logging in plain text
  python -m src.consumer.main --log-level DEBUG --log-format text

Environment Variables:
  KAFKA_BOOTSTRAP_SERVERS    Kafka broker addresses (default: localhost:9092)
  KAFKA_TOPIC_ORDERS         Topic to consume (default: orders)
  KAFKA_TOPIC_DLQ            Dead-letter topic, empty to disable (default: orders_dlq)
  DLQ_FLUSH_TIMEOUT_MS       Wait for a dead-letter delivery (default: 1000)
  CONSUMER_GROUP_ID          Consumer group (default: orders-consumer)
  POSTGRES_HOST / _PORT / _DB / _USER / _PASSWORD
  DATABASE_URL               Full SQLAlchemy URL (overrides POSTGRES_*)
  CACHE_WARMUP_LIMIT         Orders preloaded at startup (default: 50)
  HTTP_HOST / HTTP_PORT      HTTP bind address (default: 0.0.0.0:8080)
  LOG_LEVEL / LOG_FORMAT     Logging (default: INFO / json)
        """,
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (overrides LOG_LEVEL env var)",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Log output format (overrides LOG_FORMAT env var)",
    )

    return parser.parse_args()


def stop_consumer(
    consumer: OrderConsumer,
    consumer_thread: threading.Thread,
    cancel: threading.Event,
    timeout_s: float = SHUTDOWN_JOIN_TIMEOUT_S,
) -> bool:
    """
    Cancel the consumer loop and close the Kafka consumer once the loop exits.

    If the thread is still running after timeout_s, the consumer is left
    open: it may still be inside poll() on that thread.

    Returns:
        True if the loop stopped and the consumer was closed
    """
    cancel.set()
    consumer_thread.join(timeout=timeout_s)
    if consumer_thread.is_alive():
        logging.getLogger(__name__).warning(
            "Consumer thread did not stop in time, leaving consumer open",
            extra={"join_timeout_s": timeout_s},
        )
        return False
    consumer.close()
    return True


def build_dead_letter_sink(config: ConsumerConfig):
    if not config.kafka_topic_dlq:
        return None
    return KafkaDeadLetterSink(
        config.get_dlq_producer_config(),
        config.kafka_topic_dlq,
        flush_timeout_s=config.dlq_flush_timeout_ms / 1000.0,
    )


def main() -> int:
    """
    Run the order service until SIGINT/SIGTERM.

    Returns:
        Exit code (0 = clean shutdown, 1 = fatal startup error)
    """
    args = parse_args()

    try:
        config = load_config()
    except Exception as e:
        print(f"ERROR: Failed to load configuration: {e}", file=sys.stderr)
        return 1

    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    # Configure the package root so every src.* module logger inherits it
    setup_logger(
        name="src",
        service_name="order-service",
        log_level=config.log_level,
        log_format=config.log_format,
    )
    logger = logging.getLogger(__name__)

    logger.info(
        "Starting Order Service",
        extra={
            "kafka_bootstrap_servers": config.kafka_bootstrap_servers,
            "kafka_topic": config.kafka_topic_orders,
            "dead_letter_topic": config.kafka_topic_dlq,
            "consumer_group": config.consumer_group_id,
            "http_port": config.http_port,
        },
    )

    try:
        db_manager = init_database(config)
    except Exception:
        logger.critical("Failed to initialize database", exc_info=True)
        return 1

    store = OrderStore(db_manager)
    cache = OrderCache(max_entries=config.cache_max_entries)

    try:
        warmed = cache.warm_up(store.recent_orders(config.cache_warmup_limit))
        logger.info("Cache warmed up", extra={"orders": warmed})
    except Exception:
        logger.warning("Cache warm-up failed, starting cold", exc_info=True)

    dead_letter = None
    try:
        dead_letter = build_dead_letter_sink(config)
        handler = OrderMessageHandler(store, cache, dead_letter=dead_letter)
        consumer = OrderConsumer(config, handler)
    except Exception:
        logger.critical("Failed to create Kafka clients", exc_info=True)
        if dead_letter is not None:
            dead_letter.close()
        db_manager.close()
        return 1

    cancel = threading.Event()
    consumer_thread = threading.Thread(
        target=consumer.run, args=(cancel,), name="order-consumer", daemon=True
    )
    consumer_thread.start()

    app = create_app(cache, store, db_manager=db_manager, static_dir=config.static_dir)
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.http_host, port=config.http_port, log_config=None)
    )

    exit_code = 0
    try:
        server.run()
    except Exception:
        logger.error("HTTP server failed", exc_info=True)
        exit_code = 1
    finally:
        logger.info("Shutting down...")
        stop_consumer(consumer, consumer_thread, cancel)
        if dead_letter is not None:
            dead_letter.close()
        db_manager.close()
        logger.info("Order Service stopped")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
