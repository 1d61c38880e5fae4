"""Reservation engine: the consumer-side decision logic.

Flow per message:
    decode -> dispatch on (topic, eventType) -> mutate ledger -> publish outcome

Orders are processed one at a time by the consumer thread; the outcome is
published (and flushed) before the next message is polled.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from .config import INVENTORY_TOPIC
from .ledger import InventoryLedger
from .models import (
    ConsumedEvent,
    InventoryOutcomeEvent,
    OrderCreatedEvent,
    ProductCreatedEvent,
    StockRecord,
    parse_event,
)

logger = logging.getLogger(__name__)

# publish(topic, key, event) -> None; raises on delivery failure.
Publish = Callable[[str, str, dict[str, Any]], None]


def coerce_stock(value: Any) -> int:
    """Turn a PRODUCT_CREATED quantity into a non-negative stock level.

    Numbers and numeric strings are accepted (fractions are truncated).
    Anything else, including booleans, NaN and negative values, becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        value = int(value)
    if isinstance(value, int):
        return max(value, 0)
    return 0


class ReservationEngine:
    """Consumes order/product events and emits inventory outcomes.

    Args:
        ledger: The ledger this engine owns. Seed it before passing it in.
        publish: Callable used to emit outcome events.
        outcome_topic: Topic outcome events are written to.
    """

    def __init__(
        self,
        ledger: InventoryLedger,
        publish: Publish,
        outcome_topic: str = INVENTORY_TOPIC,
    ) -> None:
        self.ledger = ledger
        self.publish = publish
        self.outcome_topic = outcome_topic

    def handle_message(self, topic: str, value: bytes | None) -> InventoryOutcomeEvent | None:
        """Process one raw bus message.

        Returns the outcome event for orders, None for anything else.

        Raises:
            MalformedEventError: the payload could not be decoded or validated.
            PublishError: the outcome event was not delivered.
        """
        return self.dispatch(parse_event(topic, value))

    def dispatch(self, event: ConsumedEvent) -> InventoryOutcomeEvent | None:
        if isinstance(event, OrderCreatedEvent):
            return self.reserve(event)
        if isinstance(event, ProductCreatedEvent):
            self.apply_product(event)
            return None
        logger.debug("Ignoring eventType=%s on topic=%s", event.eventType, event.topic)
        return None

    def reserve(self, event: OrderCreatedEvent) -> InventoryOutcomeEvent:
        """Reserve stock for every item of an order, or for none of them."""
        order = event.data
        logger.info("Processing order: %s", order.orderId)

        # An item listed twice is checked against its combined quantity; a
        # per-line check would pass 30 + 30 against a stock of 50.
        requested: dict[str, int] = {}
        for item in order.items:
            requested[item.itemId] = requested.get(item.itemId, 0) + item.quantity

        with self.ledger.transaction():
            available = all(
                self.ledger.has_sufficient_stock(item_id, quantity)
                for item_id, quantity in requested.items()
            )
            if available:
                for item in order.items:
                    self.ledger.decrement(item.itemId, item.quantity)

        outcome = InventoryOutcomeEvent.for_order(order.orderId, available)
        # No rollback if this fails: the decrement above stays applied.
        self.publish(self.outcome_topic, order.orderId, outcome.model_dump())

        logger.info(
            "Inventory %s for order: %s",
            "reserved" if available else "insufficient",
            order.orderId,
        )
        return outcome

    def apply_product(self, event: ProductCreatedEvent) -> StockRecord:
        """Create or overwrite the ledger entry for a new product."""
        product = event.data
        # A zero or missing data.quantity falls through to the top-level field.
        stock = coerce_stock(product.quantity or event.quantity or 0)
        name = "" if product.name is None else str(product.name)
        record = self.ledger.upsert(product.productId, name, stock)
        logger.info("Inventory updated with new product: %s stock: %d", product.productId, record.stock)
        return record
