"""Outbound notification publishing."""

from .publisher import EventPublisher, MemoryEventPublisher, RedisStreamsPublisher, create_publisher

__all__ = [
    "EventPublisher",
    "MemoryEventPublisher",
    "RedisStreamsPublisher",
    "create_publisher",
]
