"""Pydantic models for inventory-service.

Every message on the bus is a JSON envelope `{"eventType": ..., "data": {...}}`.
The consumer decodes it into exactly one of:

- `OrderCreatedEvent`   (`order-events` / `ORDER_CREATED`)
- `ProductCreatedEvent` (`product-events` / `PRODUCT_CREATED`)
- `UnknownEvent`        (any other topic/eventType pair; ignored downstream)

Payloads that are not JSON objects, or that carry a known eventType but fail
validation, raise `MalformedEventError`.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from .config import ORDER_TOPIC, PRODUCT_TOPIC
from .errors import MalformedEventError

ORDER_CREATED = "ORDER_CREATED"
PRODUCT_CREATED = "PRODUCT_CREATED"
INVENTORY_RESERVED = "INVENTORY_RESERVED"
INVENTORY_INSUFFICIENT = "INVENTORY_INSUFFICIENT"


def now_iso() -> str:
    """UTC timestamp such as `2026-10-19T08:15:02.123Z`."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class StockRecord(BaseModel):
    """One ledger entry. The item id is the ledger key, not a field."""

    name: str
    stock: int = Field(ge=0)


# --- Consumed events ---------------------------------------------------------


class OrderItem(BaseModel):
    itemId: str
    quantity: int = Field(gt=0)


class OrderCreatedData(BaseModel):
    orderId: str
    items: list[OrderItem]


class OrderCreatedEvent(BaseModel):
    """Published by the order service when an order is placed.

    Extra fields in `data` (userId, timestamp, ...) are ignored.
    """

    eventType: Literal["ORDER_CREATED"] = ORDER_CREATED
    data: OrderCreatedData


class ProductCreatedData(BaseModel):
    productId: str
    # Both left untyped: producers forward these unvalidated and the engine coerces them.
    name: Any = None
    quantity: Any = None


class ProductCreatedEvent(BaseModel):
    """Published by the product service.

    Older producers put `quantity` next to `data` instead of inside it, so the
    top-level field is kept as a fallback.
    """

    eventType: Literal["PRODUCT_CREATED"] = PRODUCT_CREATED
    data: ProductCreatedData
    quantity: Any = None


class UnknownEvent(BaseModel):
    """Any topic/eventType combination this service does not react to."""

    topic: str
    eventType: str | None = None


ConsumedEvent = Union[OrderCreatedEvent, ProductCreatedEvent, UnknownEvent]

_EVENT_MODELS: dict[tuple[str, str], type[BaseModel]] = {
    (ORDER_TOPIC, ORDER_CREATED): OrderCreatedEvent,
    (PRODUCT_TOPIC, PRODUCT_CREATED): ProductCreatedEvent,
}


# --- Produced events ---------------------------------------------------------


class InventoryOutcomeData(BaseModel):
    orderId: str
    available: bool
    timestamp: str = Field(default_factory=now_iso)


class InventoryOutcomeEvent(BaseModel):
    """Reservation decision for one order, keyed by orderId on `inventory-events`."""

    eventType: Literal["INVENTORY_RESERVED", "INVENTORY_INSUFFICIENT"]
    data: InventoryOutcomeData

    @classmethod
    def for_order(cls, order_id: str, available: bool) -> "InventoryOutcomeEvent":
        return cls(
            eventType=INVENTORY_RESERVED if available else INVENTORY_INSUFFICIENT,
            data=InventoryOutcomeData(orderId=order_id, available=available),
        )


def parse_event(topic: str, raw: bytes | None) -> ConsumedEvent:
    """Decode a raw message value read from `topic`.

    Raises:
        MalformedEventError: the value is empty, not UTF-8 JSON, not an object,
            or a known event that fails schema validation.
    """
    if raw is None:
        raise MalformedEventError("empty message value", topic=topic, raw=raw)

    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedEventError(f"bad payload (decode/json): {e}", topic=topic, raw=raw) from e

    if not isinstance(payload, dict):
        raise MalformedEventError("payload is not a JSON object", topic=topic, raw=raw)

    event_type = payload.get("eventType")
    if not isinstance(event_type, str):
        return UnknownEvent(topic=topic)

    model = _EVENT_MODELS.get((topic, event_type))
    if model is None:
        return UnknownEvent(topic=topic, eventType=event_type)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise MalformedEventError(f"bad {event_type} schema: {e}", topic=topic, raw=raw) from e
