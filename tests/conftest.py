"""
Pytest Configuration and Shared Fixtures

Shared fixtures for the order service tests.

UNIT FIXTURES (no external services):
- sqlite_config / db_manager / order_store: an in-memory SQLite database with
  the full schema, fresh for every test
- order_cache: empty OrderCache
- sample_order_data: a complete order document in wire format

INTEGRATION FIXTURES (testcontainers):
- postgres_container / kafka_container: real services in Docker containers,
  started once per session
- consumer_config / producer_config: configs pointing at those containers
- pg_db_manager: PostgreSQL database manager with a clean schema per test

FIXTURE SCOPES:
- session: Created once for entire test session (containers)
- function: Created for each test function (databases, configs)
"""

import copy
import uuid
from typing import Generator

import pytest
from testcontainers.kafka import KafkaContainer
from testcontainers.postgres import PostgresContainer

from src.consumer.cache import OrderCache
from src.consumer.config import ConsumerConfig
from src.consumer.database import DatabaseManager
from src.consumer.models import Base
from src.consumer.store import OrderStore
from src.producer.config import ProducerConfig

# ==============================================================================
# SAMPLE DATA
# ==============================================================================

SAMPLE_ORDER = {
    "order_uid": "b563feb7b2b84b6test",
    "track_number": "WBILMTESTTRACK",
    "entry": "WBIL",
    "delivery": {
        "name": "Test Testov",
        "phone": "+9720000000",
        "zip": "2639809",
        "city": "Kiryat Mozkin",
        "address": "Ploshad Mira 15",
        "region": "Kraiot",
        "email": "test@gmail.com",
    },
    "payment": {
        "transaction": "b563feb7b2b84b6test",
        "request_id": "",
        "currency": "USD",
        "provider": "wbpay",
        "amount": 1817,
        "payment_dt": 1637907727,
        "bank": "alpha",
        "delivery_cost": 1500,
        "goods_total": 317,
        "custom_fee": 0,
    },
    "items": [
        {
            "chrt_id": 9934930,
            "track_number": "WBILMTESTTRACK",
            "price": 453,
            "rid": "ab4219087a764ae0btest",
            "name": "Mascaras",
            "sale": 30,
            "size": "0",
            "total_price": 317,
            "nm_id": 2389212,
            "brand": "Vivienne Sabo",
            "status": 202,
        }
    ],
    "locale": "en",
    "internal_signature": "",
    "customer_id": "test",
    "delivery_service": "meest",
    "shardkey": "9",
    "sm_id": 99,
    "date_created": "2021-11-26T06:22:19Z",
    "oof_shard": "1",
}


def make_order_data(order_uid: str = None, **overrides) -> dict:
    """
    Copy of SAMPLE_ORDER with a new order_uid (also used as the transaction).

    Usage:
        data = make_order_data("order-1", date_created="2024-01-01T00:00:00Z")
    """
    data = copy.deepcopy(SAMPLE_ORDER)
    order_uid = order_uid if order_uid is not None else uuid.uuid4().hex
    data["order_uid"] = order_uid
    data["payment"]["transaction"] = order_uid
    data.update(overrides)
    return data


@pytest.fixture
def order_factory():
    """make_order_data as a fixture: order_factory("order-1") -> dict."""
    return make_order_data


@pytest.fixture
def sample_order_data():
    """Complete, valid order document (fresh copy per test)."""
    return copy.deepcopy(SAMPLE_ORDER)


@pytest.fixture
def sample_invalid_order_data():
    """Decodable order with neither order_uid nor payment.transaction."""
    data = copy.deepcopy(SAMPLE_ORDER)
    data["order_uid"] = ""
    data["payment"]["transaction"] = ""
    return data


# ==============================================================================
# SQLITE FIXTURES (UNIT)
# ==============================================================================


@pytest.fixture
def sqlite_config() -> ConsumerConfig:
    """Config backed by an in-memory SQLite database, no dead-letter topic."""
    return ConsumerConfig(database_url="sqlite://", kafka_topic_dlq="")


@pytest.fixture
def db_manager(sqlite_config) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(sqlite_config)
    manager.create_schema()
    try:
        yield manager
    finally:
        manager.close()


@pytest.fixture
def order_store(db_manager) -> OrderStore:
    return OrderStore(db_manager)


@pytest.fixture
def order_cache() -> OrderCache:
    return OrderCache()


# ==============================================================================
# POSTGRESQL FIXTURES (INTEGRATION)
# ==============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Provides PostgreSQL testcontainer for the entire test session.

    Scope: session (started once, shared across all tests)
    """
    with PostgresContainer("postgres:15") as postgres:
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="session")
def kafka_container() -> Generator[KafkaContainer, None, None]:
    """
    Provides Kafka testcontainer for the entire test session.

    Scope: session (started once, shared across all tests)
    """
    with KafkaContainer() as kafka:
        kafka.get_bootstrap_server()
        yield kafka


@pytest.fixture
def postgres_config(postgres_container) -> ConsumerConfig:
    """ConsumerConfig pointing at the PostgreSQL container only."""
    return ConsumerConfig(
        postgres_host=postgres_container.get_container_host_ip(),
        postgres_port=int(postgres_container.get_exposed_port(5432)),
        postgres_user=postgres_container.username,
        postgres_password=postgres_container.password,
        postgres_db=postgres_container.dbname,
    )


@pytest.fixture
def pg_db_manager(postgres_config) -> Generator[DatabaseManager, None, None]:
    """
    PostgreSQL database manager with a clean schema for each test.

    - Creates all tables before the test
    - Drops all tables after the test
    """
    manager = DatabaseManager(postgres_config)
    manager.create_schema()
    try:
        yield manager
    finally:
        Base.metadata.drop_all(manager.engine)
        manager.close()


@pytest.fixture
def consumer_config(postgres_config, kafka_container) -> ConsumerConfig:
    """
    ConsumerConfig pointing at both containers.

    Topics are unique per test so offsets and leftovers never leak between
    tests sharing the session broker.
    """
    suffix = uuid.uuid4().hex[:8]
    return postgres_config.model_copy(
        update={
            "kafka_bootstrap_servers": kafka_container.get_bootstrap_server(),
            "kafka_topic_orders": f"test-orders-{suffix}",
            "kafka_topic_dlq": f"test-orders-dlq-{suffix}",
            "consumer_group_id": f"test-consumer-group-{suffix}",
            "poll_timeout_s": 0.5,
            "process_error_backoff_ms": 100,
            "fetch_error_backoff_ms": 200,
        }
    )


@pytest.fixture
def producer_config(consumer_config) -> ProducerConfig:
    """ProducerConfig publishing to the same topic the consumer reads."""
    return ProducerConfig(
        kafka_bootstrap_servers=consumer_config.kafka_bootstrap_servers,
        kafka_topic_orders=consumer_config.kafka_topic_orders,
        producer_client_id="test-producer",
        producer_compression="none",
        mock_seed=42,
    )


# ==============================================================================
# TEST ENVIRONMENT CONFIGURATION
# ==============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as integration test (requires containers)"
    )
    config.addinivalue_line("markers", "slow: mark test as slow (takes more than 5 seconds)")
    config.addinivalue_line("markers", "unit: mark test as unit test (no external dependencies)")
