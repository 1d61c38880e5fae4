"""Kafka consumer loop for inventory-service.

High-level flow:
    connect (retry forever) -> poll -> engine.handle_message -> commit offset

Kafka settings used here:

1) Consumer group `inventory-group`
- Offsets are tracked per group. A single instance must own all partitions of
  `order-events`: the ledger is process-local, so a second instance would make
  reservation decisions against a different ledger.

2) `auto.offset.reset = latest`
- A group with no committed offsets starts at the end of the topics; history
  is not replayed on first start.

3) Manual offset commit
- Offsets are committed only after the message is fully processed, including
  the flush of the outcome event. This is at-least-once: a crash between
  publish and commit redelivers the order, and it is decided again.

Poison-pill handling:
    A payload that cannot be decoded or validated is logged, optionally copied
    to the dead-letter topic, and committed so the partition keeps moving.
    Publish failures are NOT skipped: they propagate and stop the consumer.
"""

from __future__ import annotations

import json
import logging
import threading
from functools import partial
from typing import Any, NamedTuple

from confluent_kafka import Consumer, KafkaException, Message, Producer

from .config import (
    KAFKA_BROKER,
    KAFKA_CLIENT_ID,
    KAFKA_DLQ_TOPIC,
    KAFKA_FLUSH_TIMEOUT_SECONDS,
    KAFKA_GROUP_ID,
    KAFKA_RETRY_DELAY_SECONDS,
    ORDER_TOPIC,
    PRODUCT_TOPIC,
)
from .engine import ReservationEngine
from .errors import MalformedEventError
from .kafka_producer import create_producer, publish_event, publish_raw
from .ledger import InventoryLedger
from .models import now_iso

logger = logging.getLogger(__name__)

SUBSCRIBED_TOPICS = [ORDER_TOPIC, PRODUCT_TOPIC]

# How long the broker probe in `connect` may block.
_PROBE_TIMEOUT_SECONDS = 10.0


class KafkaClients(NamedTuple):
    consumer: Consumer
    producer: Producer


def create_consumer() -> Consumer:
    """Create and configure a Confluent Kafka Consumer."""
    conf: dict[str, Any] = {
        "bootstrap.servers": KAFKA_BROKER,
        "client.id": KAFKA_CLIENT_ID,
        "group.id": KAFKA_GROUP_ID,
        "auto.offset.reset": "latest",
        "enable.auto.commit": False,
    }
    return Consumer(conf)


def connect(
    stop_event: threading.Event,
    retry_delay: float = KAFKA_RETRY_DELAY_SECONDS,
) -> KafkaClients | None:
    """Create the producer and consumer, check the broker, subscribe.

    librdkafka connects lazily, so the broker is probed with `list_topics`.
    On failure the attempt is retried after `retry_delay` seconds, with no
    limit and no backoff growth.

    Returns None only if `stop_event` is set before a connection succeeds.
    """
    attempt = 0
    while not stop_event.is_set():
        attempt += 1
        consumer = None
        try:
            producer = create_producer()
            consumer = create_consumer()
            consumer.list_topics(timeout=_PROBE_TIMEOUT_SECONDS)
            consumer.subscribe(SUBSCRIBED_TOPICS)
        except KafkaException as e:
            logger.error(
                "Kafka connection failed (attempt %d): %s. Retrying in %ss",
                attempt,
                e,
                retry_delay,
            )
            if consumer is not None:
                consumer.close()
            stop_event.wait(retry_delay)
            continue

        logger.info("Kafka connected to %s, subscribed to %s", KAFKA_BROKER, SUBSCRIBED_TOPICS)
        return KafkaClients(consumer=consumer, producer=producer)

    return None


def dead_letter(producer: Producer, topic: str, msg: Message, error: MalformedEventError) -> None:
    """Copy a poison message to the dead-letter topic."""
    raw = msg.value()
    payload = {
        "eventType": "POISON_MESSAGE",
        "data": {
            "topic": msg.topic(),
            "partition": msg.partition(),
            "offset": msg.offset(),
            "error": str(error),
            "raw": raw.decode("utf-8", errors="replace") if raw is not None else None,
            "timestamp": now_iso(),
        },
    }
    key = msg.key()
    publish_raw(
        producer,
        topic,
        json.dumps(payload).encode("utf-8"),
        key=key.decode("utf-8", errors="replace") if key is not None else None,
    )


def process_message(
    consumer: Consumer,
    msg: Message,
    engine: ReservationEngine,
    producer: Producer,
    dlq_topic: str | None = None,
) -> None:
    """Handle one polled message and commit its offset.

    `dlq_topic` defaults to KAFKA_DLQ_TOPIC; an empty value disables dead-lettering.

    Raises:
        PublishError: the outcome (or dead-letter) event was not delivered.
            The offset is left uncommitted.
    """
    # `msg.error()` is a Kafka-level error, not an application payload error.
    if msg.error():
        logger.warning("Kafka error: %s", msg.error())
        return

    try:
        engine.handle_message(msg.topic(), msg.value())
    except MalformedEventError as e:
        logger.warning(
            "Skipping malformed message: %s (topic=%s p=%s o=%s)",
            e,
            msg.topic(),
            msg.partition(),
            msg.offset(),
        )
        if dlq_topic is None:
            dlq_topic = KAFKA_DLQ_TOPIC
        if dlq_topic:
            dead_letter(producer, dlq_topic, msg, e)

    consumer.commit(msg)


def run_consumer(ledger: InventoryLedger, stop_event: threading.Event, poll_timeout: float = 1.0) -> None:
    """Run the consumer loop until `stop_event.is_set()` becomes True.

    Args:
        ledger: Ledger the reservation engine reads and mutates.
        stop_event: A threading.Event used to stop the loop.
        poll_timeout: Seconds each poll may block, which bounds shutdown latency.
    """
    logger.info("Starting Kafka consumer (group=%s)", KAFKA_GROUP_ID)

    clients = connect(stop_event)
    if clients is None:
        return
    consumer, producer = clients

    engine = ReservationEngine(ledger, partial(publish_event, producer))

    try:
        while not stop_event.is_set():
            msg = consumer.poll(poll_timeout)
            if msg is None:
                continue
            process_message(consumer, msg, engine, producer)
    finally:
        consumer.close()
        producer.flush(KAFKA_FLUSH_TIMEOUT_SECONDS)
        logger.info("Consumer closed")
