"""
Mock Order Generator

Generates realistic order documents in the wire format consumed by the
order service, for local runs, load tests and end-to-end tests.

DATA GENERATION STRATEGY:
1. Fixed pool of customers (Faker names, phones, addresses)
2. Fixed product catalog (brand, name, price, nm_id)
3. Each order picks a customer and 1-5 catalog products
4. Payment totals are derived from the items, so every order is consistent:
   goods_total = sum(total_price), amount = goods_total + delivery_cost

Same seed → same customers, catalog and order sequence.
"""

import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

from faker import Faker

RANDOM_SEED = 42

NUM_CUSTOMERS = 100

NUM_PRODUCTS = 20

DELIVERY_SERVICES = ["meest", "cdek", "dpd", "boxberry"]

BANKS = ["alpha", "sber", "tinkoff", "vtb"]

CURRENCIES = ["USD", "EUR", "RUB"]

# (brand, product name, base price)
CATALOG = [
    ("Vivienne Sabo", "Mascaras", 453),
    ("Maybelline", "Lipstick", 389),
    ("L'Oreal", "Shampoo", 512),
    ("Nivea", "Hand Cream", 199),
    ("Garnier", "Micellar Water", 345),
    ("Adidas", "Running Shoes", 7490),
    ("Nike", "Sports Socks", 990),
    ("Puma", "T-Shirt", 1990),
    ("Xiaomi", "Power Bank", 2490),
    ("Samsung", "USB-C Cable", 790),
    ("Apple", "Phone Case", 1490),
    ("Lego", "Building Set", 3990),
    ("Hasbro", "Board Game", 2290),
    ("Bosch", "Screwdriver Set", 1890),
    ("Tefal", "Frying Pan", 2790),
    ("IKEA", "Storage Box", 599),
    ("Colgate", "Toothpaste", 149),
    ("Oral-B", "Toothbrush", 299),
    ("Levi's", "Jeans", 5990),
    ("Zara", "Scarf", 1290),
]

SIZES = ["0", "S", "M", "L", "XL"]


class MockDataGenerator:
    """
    Generates mock order documents.

    Attributes:
        customers: Fixed customer pool
        products: Fixed product catalog
        order_sequence: Number of orders generated so far
    """

    def __init__(
        self,
        seed: int = RANDOM_SEED,
        num_customers: int = NUM_CUSTOMERS,
        num_products: int = NUM_PRODUCTS,
    ):
        self.seed = seed
        self.random = random.Random(seed)
        self.fake = Faker()
        self.fake.seed_instance(seed)

        self.customers = self._generate_customers(num_customers)
        self.products = self._generate_products(num_products)
        self.order_sequence = 0

    def _generate_customers(self, count: int) -> List[Dict[str, str]]:
        customers = []
        for i in range(1, count + 1):
            name = self.fake.name()
            customers.append({
                "customer_id": f"customer-{i:05d}",
                "name": name,
                "phone": self.fake.phone_number(),
                "email": f"{name.lower().replace(' ', '.')}.{i}@example.com",
                "zip": self.fake.postcode(),
                "city": self.fake.city(),
                "address": self.fake.street_address(),
                "region": self.fake.state(),
            })
        return customers

    def _generate_products(self, count: int) -> List[Dict[str, Any]]:
        products = []
        for i, (brand, name, price) in enumerate(CATALOG[:count], start=1):
            products.append({
                "nm_id": 2389200 + i,
                "brand": brand,
                "name": name,
                "price": price,
            })
        return products

    def generate_order_uid(self) -> str:
        """32-char lowercase hex id, e.g. b563feb7b2b84b6a9c2d1e0f3a4b5c6d."""
        self.order_sequence += 1
        return uuid.UUID(int=self.random.getrandbits(128), version=4).hex

    def generate_items(
        self, track_number: str, min_items: int = 1, max_items: int = 5
    ) -> List[Dict[str, Any]]:
        num_items = self.random.randint(min_items, min(max_items, len(self.products)))
        items = []
        for product in self.random.sample(self.products, num_items):
            sale = self.random.choice([0, 0, 10, 20, 30])
            items.append({
                "chrt_id": self.random.randint(1_000_000, 9_999_999),
                "track_number": track_number,
                "price": product["price"],
                "rid": uuid.UUID(int=self.random.getrandbits(128), version=4).hex,
                "name": product["name"],
                "sale": sale,
                "size": self.random.choice(SIZES),
                "total_price": product["price"] * (100 - sale) // 100,
                "nm_id": product["nm_id"],
                "brand": product["brand"],
                "status": 202,
            })
        return items

    def generate_order(self) -> Dict[str, Any]:
        """
        Generate one complete order document.

        Returns:
            Dict ready for json.dumps(); order_uid doubles as the Kafka key
            and payment.transaction equals order_uid
        """
        customer = self.random.choice(self.customers)
        order_uid = self.generate_order_uid()
        track_number = f"WBILM{self.order_sequence:09d}"
        items = self.generate_items(track_number)

        goods_total = sum(item["total_price"] for item in items)
        delivery_cost = self.random.choice([0, 500, 1500])
        created = datetime.now(timezone.utc).replace(microsecond=0)

        return {
            "order_uid": order_uid,
            "track_number": track_number,
            "entry": "WBIL",
            "delivery": {
                "name": customer["name"],
                "phone": customer["phone"],
                "zip": customer["zip"],
                "city": customer["city"],
                "address": customer["address"],
                "region": customer["region"],
                "email": customer["email"],
            },
            "payment": {
                "transaction": order_uid,
                "request_id": "",
                "currency": self.random.choice(CURRENCIES),
                "provider": "wbpay",
                "amount": goods_total + delivery_cost,
                "payment_dt": int(created.timestamp()),
                "bank": self.random.choice(BANKS),
                "delivery_cost": delivery_cost,
                "goods_total": goods_total,
                "custom_fee": 0,
            },
            "items": items,
            "locale": self.random.choice(["en", "ru"]),
            "internal_signature": "",
            "customer_id": customer["customer_id"],
            "delivery_service": self.random.choice(DELIVERY_SERVICES),
            "shardkey": str(self.random.randint(0, 9)),
            "sm_id": self.random.randint(1, 99),
            "date_created": created.isoformat().replace("+00:00", "Z"),
            "oof_shard": str(self.random.randint(1, 2)),
        }
