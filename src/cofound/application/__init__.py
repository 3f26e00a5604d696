"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from cofound.application.connection_service import ConnectionService
from cofound.application.discovery_service import DiscoveryService
from cofound.application.dto import (
    Candidates,
    ConflictError,
    ConnectionDeleted,
    ConnectionStatusView,
    ConnectionsOverview,
    ConnectionSummary,
    ConnectionUpdated,
    DuplicateConnection,
    ExclusionSet,
    InvalidSelfRequest,
    NotAccepted,
    NotFoundError,
    NotParty,
    NotPending,
    NotReceiver,
    NotRequester,
    PendingCount,
    ProfileSummary,
    RequestCreated,
    StoreUnavailable,
    ValidationError,
)
from cofound.application.ports import (
    ConnectionStore,
    DuplicatePairError,
    NotificationEmitter,
    ProfileDirectory,
    StoreError,
    StoreUnavailableError,
)

__all__ = [
    "Candidates",
    "ConflictError",
    "ConnectionDeleted",
    "ConnectionService",
    "ConnectionStatusView",
    "ConnectionStore",
    "ConnectionSummary",
    "ConnectionUpdated",
    "ConnectionsOverview",
    "DiscoveryService",
    "DuplicateConnection",
    "DuplicatePairError",
    "ExclusionSet",
    "InvalidSelfRequest",
    "NotAccepted",
    "NotFoundError",
    "NotParty",
    "NotPending",
    "NotReceiver",
    "NotRequester",
    "NotificationEmitter",
    "PendingCount",
    "ProfileDirectory",
    "ProfileSummary",
    "RequestCreated",
    "StoreError",
    "StoreUnavailable",
    "StoreUnavailableError",
    "ValidationError",
]
