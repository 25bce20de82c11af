"""
Order Producer - Main Entry Point

Publishes sample orders to the orders topic.

RUN MODES:
- Mock orders: generate PRODUCER_COUNT orders at PRODUCER_RATE per second
  (PRODUCER_COUNT=0 runs until Ctrl+C)
- File: publish the content of one JSON file unchanged (--file model.json),
  for replaying a specific or intentionally broken document

USAGE:
    python -m src.producer.main
    python -m src.producer.main --count 20 --rate 5
    python -m src.producer.main --file model.json
"""

import argparse
import signal
import sys
import threading
import time
from typing import Optional

from src.producer.config import ProducerConfig, load_config, validate_kafka_connection
from src.producer.mock_data import MockDataGenerator
from src.producer.producer import OrderProducer
from src.shared.logger import setup_logger

shutdown_requested = threading.Event()


def signal_handler(signum, frame):
    """Stop the production loop on SIGINT / SIGTERM; pending messages are flushed."""
    shutdown_requested.set()


def publish_file(producer: OrderProducer, path: str, key: Optional[str]) -> None:
    with open(path, "rb") as f:
        payload = f.read()
    producer.produce_raw(payload, key=key.encode("utf-8") if key else None)


def publish_mock_orders(producer: OrderProducer, config: ProducerConfig, logger) -> int:
    """Publish generated orders until the count is reached or shutdown is requested."""
    generator = MockDataGenerator(seed=config.mock_seed)
    sleep_interval = 1.0 / config.producer_rate
    produced = 0
    start_time = time.time()

    while not shutdown_requested.is_set():
        if config.producer_count and produced >= config.producer_count:
            break

        order = generator.generate_order()
        try:
            producer.produce_order(order)
        except BufferError:
            producer.flush(timeout=5.0)
            continue
        produced += 1

        if produced % 100 == 0:
            elapsed = time.time() - start_time
            logger.info(
                "Production progress",
                extra={
                    "orders_produced": produced,
                    "actual_rate": round(produced / elapsed, 2) if elapsed > 0 else 0,
                },
            )

        shutdown_requested.wait(sleep_interval)

    return produced


def run_producer(config: ProducerConfig, file_path: Optional[str] = None,
                 key: Optional[str] = None) -> int:
    logger = setup_logger(
        name="src",
        service_name="order-producer",
        log_level=config.log_level,
        log_format=config.log_format,
    )

    if not validate_kafka_connection(config):
        logger.error(
            "Cannot connect to Kafka brokers",
            extra={"bootstrap_servers": config.kafka_bootstrap_servers},
        )
        return 1

    producer = OrderProducer(config.get_kafka_config(), config.kafka_topic_orders)

    try:
        if file_path:
            publish_file(producer, file_path, key)
            logger.info("File published", extra={"path": file_path, "topic": producer.topic})
        else:
            produced = publish_mock_orders(producer, config, logger)
            logger.info("Mock orders published", extra={"orders_produced": produced})
    except OSError:
        logger.error("Cannot read payload file", exc_info=True, extra={"path": file_path})
        return 1
    finally:
        producer.close(timeout=30.0)

    return 0 if producer.messages_failed == 0 else 1


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish sample orders to the Kafka orders topic",
    )
    parser.add_argument("--bootstrap-servers", type=str, help="Kafka bootstrap servers")
    parser.add_argument("--topic", type=str, help="Kafka topic name")
    parser.add_argument("--rate", type=int, help="Orders per second (1-1000)")
    parser.add_argument("--count", type=int, help="Orders to publish (0 = until stopped)")
    parser.add_argument("--seed", type=int, help="Random seed for reproducible orders")
    parser.add_argument("--file", type=str, help="Publish this file's content as one message")
    parser.add_argument("--key", type=str, help="Message key for --file (default: none)")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    parser.add_argument("--log-format", type=str, choices=["json", "text"], help="Log format")
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    config = load_config()

    if args.bootstrap_servers:
        config.kafka_bootstrap_servers = args.bootstrap_servers
    if args.topic:
        config.kafka_topic_orders = args.topic
    if args.rate:
        config.producer_rate = args.rate
    if args.count is not None:
        config.producer_count = args.count
    if args.seed is not None:
        config.mock_seed = args.seed
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    return run_producer(config, file_path=args.file, key=args.key)


if __name__ == "__main__":
    sys.exit(main())
