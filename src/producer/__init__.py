"""
Order Producer Package

Sample publisher for the order service: generates (or reads from a file)
order documents and publishes them to the Kafka 'orders' topic.

PACKAGE STRUCTURE:
- mock_data.py: Faker-based order generator (wire format)
- producer.py: confluent-kafka producer keyed by order_uid
- config.py: Producer configuration from environment variables
- main.py: CLI entry point

USAGE:
    python -m src.producer.main --count 10
    python -m src.producer.main --file model.json
"""

__version__ = "1.0.0"
