"""
Cofound core: connection lifecycle and discovery exclusion, clean-architecture layout.

- domain: entities (Profile, Connection, ConnectionEvent). No outer dependencies.
- application: use cases (ConnectionService, DiscoveryService), ports, result DTOs.
- infrastructure: adapters (in-memory and Neo4j stores, notification emitters).
"""

from cofound.application import (
    Candidates,
    ConflictError,
    ConnectionDeleted,
    ConnectionService,
    ConnectionsOverview,
    ConnectionUpdated,
    DiscoveryService,
    DuplicateConnection,
    NotFoundError,
    NotPending,
    RequestCreated,
    StoreUnavailable,
    ValidationError,
)
from cofound.domain import Connection, ConnectionEvent, ConnectionStatus, Profile
from cofound.infrastructure import (
    InMemoryConnectionStore,
    InMemoryProfileDirectory,
    Neo4jConnectionStore,
    Neo4jProfileDirectory,
)

__all__ = [
    "Candidates",
    "ConflictError",
    "Connection",
    "ConnectionDeleted",
    "ConnectionEvent",
    "ConnectionService",
    "ConnectionStatus",
    "ConnectionUpdated",
    "ConnectionsOverview",
    "DiscoveryService",
    "DuplicateConnection",
    "InMemoryConnectionStore",
    "InMemoryProfileDirectory",
    "Neo4jConnectionStore",
    "Neo4jProfileDirectory",
    "NotFoundError",
    "NotPending",
    "Profile",
    "RequestCreated",
    "StoreUnavailable",
    "ValidationError",
]
