import json

import pytest
from inventory_service.ledger import InventoryLedger


class RecordingPublisher:
    """Stands in for `publish_event`; keeps every (topic, key, event) it gets."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = fail_with

    def __call__(self, topic, key, event):
        if self.fail_with is not None:
            raise self.fail_with
        self.calls.append((topic, key, event))


class FakeMessage:
    def __init__(self, topic, value, key=None, partition=0, offset=0, error=None):
        self._topic = topic
        self._value = value
        self._key = key
        self._partition = partition
        self._offset = offset
        self._error = error

    def topic(self):
        return self._topic

    def value(self):
        return self._value

    def key(self):
        return self._key

    def partition(self):
        return self._partition

    def offset(self):
        return self._offset

    def error(self):
        return self._error


class FakeProducer:
    """Acknowledges every message on flush unless told otherwise."""

    def __init__(self, delivery_error=None, stuck=0):
        self.produced = []
        self.flushes = 0
        self._pending = []
        self.delivery_error = delivery_error
        self.stuck = stuck

    def produce(self, topic, key=None, value=None, callback=None):
        self.produced.append({"topic": topic, "key": key, "value": value})
        self._pending.append((FakeMessage(topic, value, key=key), callback))

    def flush(self, timeout=None):
        self.flushes += 1
        pending, self._pending = self._pending, []
        for msg, callback in pending:
            if callback is not None:
                callback(self.delivery_error, msg)
        return self.stuck


class FakeConsumer:
    """Feeds a fixed list of messages, then sets `stop_event`."""

    def __init__(self, messages=(), stop_event=None, probe_error=None):
        self.messages = list(messages)
        self.stop_event = stop_event
        self.probe_error = probe_error
        self.subscribed = None
        self.commits = []
        self.closed = False

    def list_topics(self, timeout=None):
        if self.probe_error is not None:
            raise self.probe_error
        return {}

    def subscribe(self, topics):
        self.subscribed = list(topics)

    def poll(self, timeout=None):
        if self.messages:
            return self.messages.pop(0)
        if self.stop_event is not None:
            self.stop_event.set()
        return None

    def commit(self, message=None, asynchronous=True):
        self.commits.append(message)

    def close(self):
        self.closed = True


def encode(payload):
    return json.dumps(payload).encode("utf-8")


def order_payload(order_id, *items):
    return {
        "eventType": "ORDER_CREATED",
        "data": {
            "orderId": order_id,
            "userId": "USER-1",
            "items": [{"itemId": item_id, "quantity": quantity} for item_id, quantity in items],
        },
    }


def product_payload(product_id, name, quantity=None, **extra):
    data = {"productId": product_id, "name": name, "price": 49.99}
    if quantity is not None:
        data["quantity"] = quantity
    payload = {"eventType": "PRODUCT_CREATED", "data": data}
    payload.update(extra)
    return payload


@pytest.fixture
def ledger():
    return InventoryLedger({"ITEM-001": ("Laptop", 50), "ITEM-002": ("Mouse", 200)})


@pytest.fixture
def publisher():
    return RecordingPublisher()
