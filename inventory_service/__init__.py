"""inventory-service: reserves stock for orders consumed from Kafka."""

__version__ = "0.1.0"
