"""Entry point: `python -m inventory_service` or the `inventory-service` script."""

from __future__ import annotations

import logging

import uvicorn

from .config import LOG_LEVEL, PORT


def main() -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    uvicorn.run("inventory_service.main:app", host="0.0.0.0", port=PORT, log_config=None)


if __name__ == "__main__":
    main()
