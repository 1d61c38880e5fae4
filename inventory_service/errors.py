"""Exceptions raised by inventory-service."""

from __future__ import annotations


class InventoryServiceError(Exception):
    """Base class for errors raised by this service."""


class MalformedEventError(InventoryServiceError):
    """A consumed payload could not be decoded or failed validation.

    Attributes:
        topic: Topic the payload was read from.
        raw: The undecoded message value, kept for dead-lettering.
    """

    def __init__(self, message: str, topic: str = "", raw: bytes | None = None) -> None:
        super().__init__(message)
        self.topic = topic
        self.raw = raw


class PublishError(InventoryServiceError):
    """An outcome event was not acknowledged by the broker."""
