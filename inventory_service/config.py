"""inventory-service configuration.

Only environment variables are read here. Defaults are meant for local
development against a single broker on localhost.
"""

from __future__ import annotations

import os

# --- Kafka -------------------------------------------------------------------
# Broker address. Example: "kafka:29092"
KAFKA_BROKER: str = os.getenv("KAFKA_BROKER", "localhost:9092")

KAFKA_CLIENT_ID: str = os.getenv("KAFKA_CLIENT_ID", "inventory-service")

# Offsets are tracked per consumer group. Running a second process with the
# same group splits partitions between them, and each keeps its own ledger.
KAFKA_GROUP_ID: str = os.getenv("KAFKA_GROUP_ID", "inventory-group")

# Fixed delay between connection attempts. Retries never stop.
KAFKA_RETRY_DELAY_SECONDS: float = float(os.getenv("KAFKA_RETRY_DELAY_SECONDS", "5"))

# Optional dead-letter topic for payloads that fail to decode or validate.
# Empty means malformed messages are only logged and skipped.
KAFKA_DLQ_TOPIC: str = os.getenv("KAFKA_DLQ_TOPIC", "")

# Seconds to wait for broker acknowledgement after each publish.
KAFKA_FLUSH_TIMEOUT_SECONDS: float = float(os.getenv("KAFKA_FLUSH_TIMEOUT_SECONDS", "5"))

# --- Topics ------------------------------------------------------------------
ORDER_TOPIC = "order-events"
PRODUCT_TOPIC = "product-events"
INVENTORY_TOPIC = "inventory-events"

# --- HTTP / process ----------------------------------------------------------
PORT: int = int(os.getenv("PORT", "3003"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

SERVICE_NAME = "inventory-service"
