"""
Unit Tests for OrderCache

TEST STRATEGY:
- Test hit / miss semantics and overwrite
- Test warm-up ordering and the optional size cap
- Test concurrent readers and writers never observe a partial value
"""

import threading

import pytest

from src.consumer.cache import OrderCache
from src.consumer.schemas import Delivery, Item, Order, Payment


def _order(order_uid: str, track_number: str = "WBILMTESTTRACK", items: int = 1) -> Order:
    return Order(
        order_uid=order_uid,
        track_number=track_number,
        delivery=Delivery(name="Test Testov"),
        payment=Payment(transaction=order_uid, amount=100 * items),
        items=[Item(chrt_id=i, track_number=track_number, price=100) for i in range(items)],
    )


# ==============================================================================
# BASIC OPERATIONS
# ==============================================================================


@pytest.mark.unit
def test_get_miss(order_cache):
    assert order_cache.get("unknown") == (None, False)


@pytest.mark.unit
def test_set_then_get(order_cache):
    order = _order("order-1")
    order_cache.set(order)

    cached, found = order_cache.get("order-1")

    assert found is True
    assert cached == order
    assert "order-1" in order_cache
    assert len(order_cache) == 1


@pytest.mark.unit
def test_set_overwrites_existing_entry(order_cache):
    order_cache.set(_order("order-1", track_number="FIRST"))
    order_cache.set(_order("order-1", track_number="SECOND"))

    cached, _ = order_cache.get("order-1")

    assert cached.track_number == "SECOND"
    assert len(order_cache) == 1


@pytest.mark.unit
def test_clear(order_cache):
    order_cache.set(_order("order-1"))
    order_cache.clear()

    assert len(order_cache) == 0
    assert order_cache.get("order-1") == (None, False)


# ==============================================================================
# WARM-UP AND SIZE CAP
# ==============================================================================


@pytest.mark.unit
def test_warm_up_loads_all_orders(order_cache):
    orders = [_order(f"order-{i}") for i in range(5)]

    assert order_cache.warm_up(orders) == 5
    assert all(order.order_uid in order_cache for order in orders)


@pytest.mark.unit
def test_warm_up_empty(order_cache):
    assert order_cache.warm_up([]) == 0
    assert len(order_cache) == 0


@pytest.mark.unit
def test_size_cap_evicts_least_recently_written():
    cache = OrderCache(max_entries=2)
    cache.set(_order("a"))
    cache.set(_order("b"))
    cache.set(_order("c"))

    assert "a" not in cache
    assert "b" in cache
    assert "c" in cache


@pytest.mark.unit
def test_rewrite_refreshes_position_under_cap():
    cache = OrderCache(max_entries=2)
    cache.set(_order("a"))
    cache.set(_order("b"))
    cache.set(_order("a"))
    cache.set(_order("c"))

    assert "a" in cache
    assert "b" not in cache


@pytest.mark.unit
def test_warm_up_under_cap_keeps_newest():
    """Newest-first input: the newest orders survive the cap."""
    cache = OrderCache(max_entries=2)
    newest_first = [_order("newest"), _order("middle"), _order("oldest")]

    cache.warm_up(newest_first)

    assert "newest" in cache
    assert "middle" in cache
    assert "oldest" not in cache


@pytest.mark.unit
def test_negative_cap_rejected():
    with pytest.raises(ValueError):
        OrderCache(max_entries=-1)


# ==============================================================================
# CONCURRENCY
# ==============================================================================


@pytest.mark.unit
def test_concurrent_readers_see_complete_orders():
    """Readers racing a writer only ever see one of the complete versions."""
    cache = OrderCache()
    versions = [_order("shared", track_number=f"V{i}", items=i + 1) for i in range(20)]
    cache.set(versions[0])

    stop = threading.Event()
    errors = []

    def writer():
        while not stop.is_set():
            for version in versions:
                cache.set(version)

    def reader():
        for _ in range(2000):
            order, found = cache.get("shared")
            if not found:
                errors.append("miss")
                continue
            expected_items = int(order.track_number[1:]) + 1
            if len(order.items) != expected_items or order.payment.amount != 100 * expected_items:
                errors.append(order.track_number)

    writer_thread = threading.Thread(target=writer)
    readers = [threading.Thread(target=reader) for _ in range(4)]

    writer_thread.start()
    for thread in readers:
        thread.start()
    for thread in readers:
        thread.join()
    stop.set()
    writer_thread.join()

    assert errors == []


@pytest.mark.unit
def test_concurrent_writers_distinct_keys():
    cache = OrderCache()

    def write(prefix):
        for i in range(200):
            cache.set(_order(f"{prefix}-{i}"))

    threads = [threading.Thread(target=write, args=(p,)) for p in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 600
