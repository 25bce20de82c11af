"""
Order Service Configuration Module

Settings for the ingestion consumer, the dead-letter topic, PostgreSQL, the
in-memory cache and the HTTP endpoint. Loaded from environment variables
(and a local .env file) with Pydantic validation.

ENVIRONMENT VARIABLES (case-insensitive, field name in upper case):
    KAFKA_BOOTSTRAP_SERVERS, KAFKA_TOPIC_ORDERS, KAFKA_TOPIC_DLQ,
    CONSUMER_GROUP_ID, POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB,
    POSTGRES_USER, POSTGRES_PASSWORD, DATABASE_URL, CACHE_WARMUP_LIMIT,
    HTTP_PORT, LOG_LEVEL, LOG_FORMAT, ...
"""

from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file if present (local development)
load_dotenv()


class ConsumerConfig(BaseSettings):
    """
    Order service configuration with validation.

    Offsets are always committed manually; Kafka auto-commit cannot be
    enabled from configuration.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === KAFKA CONSUMER SETTINGS ===
    kafka_bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Kafka broker addresses (comma-separated)",
    )

    kafka_topic_orders: str = Field(
        default="orders",
        description="Kafka topic to consume orders from",
    )

    kafka_topic_dlq: Optional[str] = Field(
        default="orders_dlq",
        description="Dead-letter topic for unprocessable messages (empty = disabled)",
    )

    dlq_flush_timeout_ms: int = Field(
        default=1000,
        ge=0,
        le=30000,
        description="Upper bound on waiting for a dead-letter delivery report",
    )

    consumer_group_id: str = Field(
        default="orders-consumer",
        description="Consumer group ID",
    )

    consumer_client_id: str = Field(
        default="order-service",
        description="Consumer client identifier",
    )

    consumer_auto_offset_reset: str = Field(
        default="earliest",
        pattern="^(earliest|latest)$",
        description="Where to start consuming without a committed offset",
    )

    poll_timeout_s: float = Field(
        default=1.0,
        gt=0,
        le=30,
        description="Upper bound on a single poll; also bounds cancellation latency",
    )

    # === RETRY / BACKOFF ===
    fetch_error_backoff_ms: int = Field(
        default=2000,
        ge=0,
        le=60000,
        description="Delay before polling again after a broker read error",
    )

    process_error_backoff_ms: int = Field(
        default=500,
        ge=0,
        le=60000,
        description="Delay before retrying a message whose processing was deferred",
    )

    # === DATABASE SETTINGS ===
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, ge=1, le=65535, description="PostgreSQL port")
    postgres_db: str = Field(default="wb_orders", description="PostgreSQL database name")
    postgres_user: str = Field(default="wb", description="PostgreSQL username")
    postgres_password: str = Field(default="wb", description="PostgreSQL password")

    database_url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; overrides the postgres_* settings when set",
    )

    db_pool_size: int = Field(
        default=5,
        ge=1,
        le=20,
        description="SQLAlchemy connection pool size",
    )

    db_max_overflow: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Connections allowed beyond pool_size under load",
    )

    db_pool_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds to wait for a pooled connection before giving up",
    )

    # === CACHE ===
    cache_warmup_limit: int = Field(
        default=50,
        ge=0,
        description="Most recent orders loaded into the cache at startup",
    )

    cache_max_entries: int = Field(
        default=0,
        ge=0,
        description="Cache size cap (0 = unbounded)",
    )

    # === HTTP ===
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    http_port: int = Field(default=8080, ge=1, le=65535, description="HTTP port")
    static_dir: str = Field(default="web", description="Static assets served at /, if present")

    # === LOGGING ===
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log output format (json or text)")

    @field_validator("kafka_topic_dlq")
    @classmethod
    def _empty_topic_disables_dlq(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    def get_kafka_config(self) -> dict:
        """Get Kafka consumer configuration dictionary."""
        return {
            "bootstrap.servers": self.kafka_bootstrap_servers,
            "group.id": self.consumer_group_id,
            "client.id": self.consumer_client_id,
            "auto.offset.reset": self.consumer_auto_offset_reset,
            "enable.auto.commit": False,
        }

    def get_dlq_producer_config(self) -> dict:
        """Get Kafka producer configuration for the dead-letter topic."""
        return {
            "bootstrap.servers": self.kafka_bootstrap_servers,
            "client.id": f"{self.consumer_client_id}-dlq",
            "acks": "all",
        }

    def get_database_url(self) -> str:
        """Get SQLAlchemy database URL."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


def load_config() -> ConsumerConfig:
    """Load and validate service configuration."""
    return ConsumerConfig()
