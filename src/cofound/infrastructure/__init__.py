"""Infrastructure layer: concrete implementations of application ports."""

from cofound.infrastructure.memory_repository import (
    InMemoryConnectionStore,
    InMemoryProfileDirectory,
)
from cofound.infrastructure.notifications import (
    CompositeNotificationEmitter,
    LoggingNotificationEmitter,
    RecordingNotificationEmitter,
)
from cofound.infrastructure.persistence.neo4j_repository import (
    Neo4jConnectionStore,
    Neo4jProfileDirectory,
    ensure_connection_constraints,
    ensure_profile_constraints,
)

__all__ = [
    "CompositeNotificationEmitter",
    "InMemoryConnectionStore",
    "InMemoryProfileDirectory",
    "LoggingNotificationEmitter",
    "Neo4jConnectionStore",
    "Neo4jProfileDirectory",
    "RecordingNotificationEmitter",
    "ensure_connection_constraints",
    "ensure_profile_constraints",
]
