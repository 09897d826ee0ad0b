"""Event publishers."""

import json
from datetime import date
from decimal import Decimal

import redis

from fd_accounts.core.config import EventsConfig
from fd_accounts.core.events import TOPIC_ACCOUNT_MATURED, TOPIC_ALERT, AccountMaturedEvent
from fd_accounts.notify.publisher import (
    MemoryEventPublisher,
    RedisStreamsPublisher,
    create_publisher,
)


def _event() -> AccountMaturedEvent:
    return AccountMaturedEvent(
        account_number="1010000011",
        maturity_amount=Decimal("112000.00"),
        maturity_date=date(2026, 3, 1),
        customer_ids_to_notify=["CUST-001"],
    )


class RecordingRedis:
    def __init__(self, error: Exception | None = None) -> None:
        self.entries: list[tuple[str, dict, dict]] = []
        self.error = error
        self.closed = False

    def xadd(self, name, fields, **kwargs):
        if self.error is not None:
            raise self.error
        self.entries.append((name, fields, kwargs))
        return "1-0"

    def close(self):
        self.closed = True


class TestMemoryPublisher:
    def test_history_and_topic_filter(self):
        pub = MemoryEventPublisher()
        event = _event()
        pub.publish(TOPIC_ACCOUNT_MATURED, event)
        assert pub.history == [(TOPIC_ACCOUNT_MATURED, event)]
        assert pub.events(TOPIC_ALERT) == []
        pub.clear()
        assert pub.events() == []


class TestRedisStreamsPublisher:
    def test_xadd_payload(self):
        client = RecordingRedis()
        pub = RedisStreamsPublisher(client=client, stream_prefix="fd", max_stream_length=500)
        pub.publish(TOPIC_ACCOUNT_MATURED, _event())

        [(stream, fields, kwargs)] = client.entries
        assert stream == "fd.fd.account.matured"
        assert fields["_type"] == "AccountMaturedEvent"
        assert fields["_key"] == "1010000011"
        assert json.loads(fields["_data"])["maturity_amount"] == "112000.00"
        assert kwargs == {"maxlen": 500, "approximate": True}

    def test_failures_are_swallowed(self):
        client = RecordingRedis(error=redis.ConnectionError("refused"))
        pub = RedisStreamsPublisher(client=client)
        pub.publish(TOPIC_ALERT, _event())
        assert client.entries == []

    def test_close(self):
        client = RecordingRedis()
        RedisStreamsPublisher(client=client).close()
        assert client.closed


def test_factory_defaults_to_memory():
    assert isinstance(create_publisher(EventsConfig()), MemoryEventPublisher)
