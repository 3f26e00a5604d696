"""Domain layer: entities and value objects. No dependencies on outer layers."""

from cofound.domain.entities import (
    Connection,
    ConnectionEvent,
    ConnectionStatus,
    EventType,
    Profile,
    pair_key,
)

__all__ = [
    "Connection",
    "ConnectionEvent",
    "ConnectionStatus",
    "EventType",
    "Profile",
    "pair_key",
]
