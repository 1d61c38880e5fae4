"""In-memory inventory ledger.

The ledger lives as long as the process and is never persisted. A restart
falls back to the seed catalog.

Only the reservation engine mutates it, from the single consumer thread. The
lock exists so HTTP handlers (running on other threads) can read a consistent
snapshot; it does nothing for several processes sharing a consumer group,
since each of those holds its own ledger.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Mapping

from .models import StockRecord

logger = logging.getLogger(__name__)

# Catalog the service starts with.
DEFAULT_CATALOG: dict[str, tuple[str, int]] = {
    "ITEM-001": ("Laptop", 50),
    "ITEM-002": ("Mouse", 200),
    "ITEM-003": ("Keyboard", 100),
}


class InventoryLedger:
    """Mapping of item id -> StockRecord."""

    def __init__(self, catalog: Mapping[str, tuple[str, int]] | None = None) -> None:
        self._records: dict[str, StockRecord] = {}
        self._lock = threading.RLock()
        for item_id, (name, stock) in (catalog or {}).items():
            self._records[item_id] = StockRecord(name=name, stock=stock)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    @contextmanager
    def transaction(self) -> Iterator["InventoryLedger"]:
        """Hold the ledger lock across a check-then-mutate sequence."""
        with self._lock:
            yield self

    def get(self, item_id: str) -> StockRecord | None:
        return self._records.get(item_id)

    def has_sufficient_stock(self, item_id: str, quantity: int) -> bool:
        record = self._records.get(item_id)
        return record is not None and record.stock >= quantity

    def decrement(self, item_id: str, quantity: int) -> None:
        """Subtract `quantity` from the item's stock.

        There is no bounds check here. Callers must have seen
        `has_sufficient_stock` return True inside the same `transaction()`.
        """
        with self._lock:
            self._records[item_id].stock -= quantity

    def upsert(self, item_id: str, name: str, quantity: int) -> StockRecord:
        """Insert or replace the record. Stock is set, never added to."""
        with self._lock:
            record = StockRecord(name=name, stock=quantity)
            previous = self._records.get(item_id)
            self._records[item_id] = record
        if previous is not None:
            logger.info(
                "Replaced stock record %s (stock %d -> %d)", item_id, previous.stock, record.stock
            )
        return record

    def snapshot(self) -> dict[str, dict[str, object]]:
        """Copy of the ledger as plain dicts, e.g. for `GET /inventory`."""
        with self._lock:
            return {item_id: record.model_dump() for item_id, record in self._records.items()}
