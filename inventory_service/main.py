"""inventory-service FastAPI application.

Responsibilities:
- Serve read endpoints: `GET /inventory` and `GET /health`
- Run the Kafka consumer that reserves inventory for new orders and records
  new products

The consumer loop blocks, so it runs in a background thread. It is the only
writer to the ledger; HTTP handlers only read snapshots of it.
"""

from __future__ import annotations

import logging
from threading import Event, Thread

from fastapi import FastAPI, HTTPException

from .config import SERVICE_NAME
from .kafka_consumer import run_consumer
from .ledger import DEFAULT_CATALOG, InventoryLedger

logger = logging.getLogger(__name__)

app = FastAPI(title="Inventory Service")

# Lives as long as the process; never persisted.
ledger = InventoryLedger(DEFAULT_CATALOG)

# Used to signal the consumer thread to stop on shutdown.
stop_event = Event()

consumer_thread: Thread | None = None


def _consume() -> None:
    """Thread target: log the error that ends the consumer loop, if any."""
    try:
        run_consumer(ledger, stop_event)
    except Exception:
        logger.exception("Consumer stopped on an unrecoverable error")


@app.on_event("startup")
def on_startup() -> None:
    """Start the Kafka consumer thread."""
    global consumer_thread

    stop_event.clear()
    consumer_thread = Thread(target=_consume, name="inventory-consumer", daemon=True)
    consumer_thread.start()


@app.on_event("shutdown")
def on_shutdown() -> None:
    """Stop polling and disconnect from Kafka.

    Uvicorn runs this on SIGTERM/SIGINT. The message currently being handled
    finishes; nothing queued behind it is drained.
    """
    stop_event.set()
    if consumer_thread is not None:
        consumer_thread.join(timeout=10)


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness endpoint.

    Reports 503 once the consumer thread has died outside a shutdown: the
    process would still serve HTTP but no longer reserve inventory.
    """
    if consumer_thread is not None and not consumer_thread.is_alive() and not stop_event.is_set():
        raise HTTPException(
            status_code=503,
            detail={"status": "unhealthy", "service": SERVICE_NAME, "reason": "consumer stopped"},
        )
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/inventory")
def get_inventory():
    """Return the whole ledger.

    Returns:
        {"inventory": {"ITEM-001": {"name": "Laptop", "stock": 50}, ...}}
    """
    return {"inventory": ledger.snapshot()}
