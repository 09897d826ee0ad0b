"""Fire-and-forget event publishers.

``publish`` never raises: a failed publish is logged, counted and dropped.
Delivery is at-least-once at best; callers must not depend on it.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import redis

from ..core.config import EventsConfig
from ..core.events import BaseEvent
from ..observability.metrics import record_event

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    def publish(self, topic: str, event: BaseEvent) -> None:
        ...

    def close(self) -> None:
        ...


class MemoryEventPublisher:
    """Keeps every published event in order. Used in development and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._history: list[tuple[str, BaseEvent]] = []

    def publish(self, topic: str, event: BaseEvent) -> None:
        with self._lock:
            self._history.append((topic, event))
        record_event(topic, ok=True)
        logger.debug("Published %s to %s", type(event).__name__, topic)

    def close(self) -> None:
        pass

    @property
    def history(self) -> list[tuple[str, BaseEvent]]:
        with self._lock:
            return list(self._history)

    def events(self, topic: str | None = None) -> list[BaseEvent]:
        return [e for t, e in self.history if topic is None or t == topic]

    def clear(self) -> None:
        with self._lock:
            self._history.clear()


class RedisStreamsPublisher:
    """Appends events to Redis Streams named ``<prefix>.<topic>``.

    Each entry carries the event class name, the partition key and the
    JSON-serialised event.
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        *,
        stream_prefix: str = "fd",
        max_stream_length: int = 10_000,
        client: redis.Redis | None = None,
    ) -> None:
        self._client = client or redis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = stream_prefix
        self._max_len = max_stream_length

    def stream_name(self, topic: str) -> str:
        return f"{self._prefix}.{topic}" if self._prefix else topic

    def publish(self, topic: str, event: BaseEvent) -> None:
        payload = {
            "_type": type(event).__name__,
            "_key": event.key,
            "_data": event.model_dump_json(),
        }
        try:
            self._client.xadd(
                self.stream_name(topic), payload, maxlen=self._max_len, approximate=True,
            )
        except redis.RedisError:
            record_event(topic, ok=False)
            logger.exception(
                "Failed to publish %s for %s to %s", type(event).__name__, event.key, topic,
            )
            return
        record_event(topic, ok=True)

    def close(self) -> None:
        self._client.close()


def create_publisher(cfg: EventsConfig) -> MemoryEventPublisher | RedisStreamsPublisher:
    if cfg.backend == "redis":
        logger.info("Publishing events to Redis Streams at %s", cfg.redis_url)
        return RedisStreamsPublisher(
            cfg.redis_url,
            stream_prefix=cfg.stream_prefix,
            max_stream_length=cfg.max_stream_length,
        )
    return MemoryEventPublisher()
