"""Kafka producer helper for inventory-service.

Key points:

1) One producer per process
It is created when the consumer connects and shared by every outcome publish
(and by the dead-letter path).

2) Flush per message
Each publish flushes before returning, so the consumer only commits an order
offset after the broker has acknowledged its outcome event. Anything still
queued after the flush timeout is reported as a PublishError.

3) Message key
Outcome events are keyed by orderId: same key => same partition => ordering
per order is preserved for downstream consumers.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from confluent_kafka import KafkaError, Message, Producer

from .config import KAFKA_BROKER, KAFKA_CLIENT_ID, KAFKA_FLUSH_TIMEOUT_SECONDS
from .errors import PublishError

logger = logging.getLogger(__name__)


def create_producer() -> Producer:
    """Create and configure a Confluent Kafka Producer."""
    conf: dict[str, Any] = {
        "bootstrap.servers": KAFKA_BROKER,
        "client.id": KAFKA_CLIENT_ID,
        "enable.idempotence": True,
    }
    return Producer(conf)


class _DeliveryReport:
    """Delivery callback that remembers the first failure it sees."""

    def __init__(self) -> None:
        self.error: KafkaError | None = None

    def __call__(self, err: KafkaError | None, msg: Message) -> None:
        if err is not None:
            logger.error("Delivery failed: %s", err)
            if self.error is None:
                self.error = err
        else:
            logger.debug("Delivered to %s [%s] @ offset %s", msg.topic(), msg.partition(), msg.offset())


def publish_raw(
    producer: Producer,
    topic: str,
    value: bytes,
    key: str | None = None,
    timeout: float = KAFKA_FLUSH_TIMEOUT_SECONDS,
) -> None:
    """Produce one message and block until it is acknowledged.

    Raises:
        PublishError: delivery failed or did not complete within `timeout`.
    """
    report = _DeliveryReport()
    producer.produce(
        topic=topic,
        key=key.encode("utf-8") if key is not None else None,
        value=value,
        callback=report,
    )

    remaining = producer.flush(timeout)
    if report.error is not None:
        raise PublishError(f"delivery to {topic} failed: {report.error}")
    if remaining:
        raise PublishError(f"{remaining} message(s) to {topic} still queued after {timeout}s")


def publish_event(
    producer: Producer,
    topic: str,
    key: str,
    event: dict[str, Any],
    timeout: float = KAFKA_FLUSH_TIMEOUT_SECONDS,
) -> None:
    """Serialize `event` as JSON and publish it under `key`."""
    publish_raw(producer, topic, json.dumps(event).encode("utf-8"), key=key, timeout=timeout)
