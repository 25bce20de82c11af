"""
Producer Configuration Module

Settings for the sample order publisher, loaded from environment variables
(and a local .env file) with Pydantic validation.

CONFIGURATION SOURCES (priority order):
1. Command-line flags (applied by main.py)
2. Environment variables
3. .env file (loaded by python-dotenv)
4. Default values
"""

import logging

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class ProducerConfig(BaseSettings):
    """
    Order publisher configuration.

    Example:
        >>> config = ProducerConfig()
        >>> config.kafka_topic_orders
        'orders'
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === KAFKA CONNECTION ===
    kafka_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Kafka broker addresses (comma-separated for multiple brokers)",
    )

    kafka_topic_orders: str = Field(
        default="orders",
        description="Kafka topic for order messages",
    )

    producer_client_id: str = Field(
        default="order-producer",
        description="Producer client identifier",
    )

    # === PRODUCTION SETTINGS ===
    producer_rate: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Orders to publish per second (1-1000)",
    )

    producer_count: int = Field(
        default=100,
        ge=0,
        description="Number of orders to publish (0 = until stopped)",
    )

    mock_seed: int = Field(
        default=42,
        description="Random seed for reproducible mock orders",
    )

    # === DELIVERY ===
    producer_compression: str = Field(
        default="snappy",
        pattern="^(none|gzip|snappy|lz4|zstd)$",
        description="Compression algorithm",
    )

    producer_linger_ms: int = Field(
        default=10,
        ge=0,
        le=1000,
        description="Time to wait for batching messages (milliseconds)",
    )

    enable_idempotence: bool = Field(
        default=True,
        description="Idempotent producer (no broker-side duplicates on retry)",
    )

    # === LOGGING ===
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log output format (json or text)")

    def get_kafka_config(self) -> dict:
        """Get confluent_kafka.Producer configuration dictionary."""
        return {
            "bootstrap.servers": self.kafka_bootstrap_servers,
            "client.id": self.producer_client_id,
            "compression.type": self.producer_compression,
            "linger.ms": self.producer_linger_ms,
            "enable.idempotence": self.enable_idempotence,
            "acks": "all",
        }


def load_config() -> ProducerConfig:
    """Load and validate producer configuration."""
    return ProducerConfig()


def validate_kafka_connection(config: ProducerConfig) -> bool:
    """Return True if the brokers answer a metadata request within 10 seconds."""
    from confluent_kafka import KafkaException
    from confluent_kafka.admin import AdminClient

    try:
        admin_client = AdminClient({"bootstrap.servers": config.kafka_bootstrap_servers})
        admin_client.list_topics(timeout=10)
        return True
    except KafkaException as e:
        logging.getLogger(__name__).error("Kafka connection failed", extra={"error": str(e)})
        return False
