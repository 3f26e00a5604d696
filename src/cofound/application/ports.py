"""Application ports (interfaces). Implemented by infrastructure adapters."""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol

from cofound.domain import Connection, ConnectionEvent, ConnectionStatus, Profile


class StoreError(Exception):
    """Base class for store-level failures raised by adapters."""

    reason: str = "store_error"

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(reason or self.reason)
        if reason:
            self.reason = reason


class DuplicatePairError(StoreError):
    """A row already exists for the unordered pair."""

    reason = "duplicate_pair"


class StoreUnavailableError(StoreError):
    """Transient infrastructure failure; the call may be retried."""

    reason = "store_unavailable"


class ConnectionStore(Protocol):
    """Durable record of every requester -> receiver connection row.

    Must enforce uniqueness of the unordered pair across all statuses and
    apply status changes and deletes conditionally on the current status.
    """

    def insert(self, connection: Connection) -> None:
        """Store a new row. Raises DuplicatePairError if the pair already has one."""
        ...

    def get(self, connection_id: str) -> Connection | None:
        """Return the row with the given id, or None."""
        ...

    def find_between(self, profile_a: str, profile_b: str) -> Connection | None:
        """Return the row for the unordered pair, whichever side requested, or None."""
        ...

    def list_for_profile(self, profile_id: str) -> list[Connection]:
        """Return every row where the profile is requester or receiver, any status."""
        ...

    def transition(
        self,
        connection_id: str,
        expected: ConnectionStatus,
        new_status: ConnectionStatus,
        updated_at: datetime,
    ) -> Connection | None:
        """Set new_status only if the row still has the expected status.
        Returns the updated row, or None when nothing matched."""
        ...

    def delete_if(self, connection_id: str, expected: ConnectionStatus) -> bool:
        """Delete the row only if it still has the expected status. Returns True if deleted."""
        ...


class ProfileDirectory(Protocol):
    """Read-only source of profiles."""

    def get_profile(self, profile_id: str) -> Profile | None:
        """Return the profile with the given id, or None."""
        ...

    def get_completed_profiles(
        self, exclude_ids: Iterable[str], limit: int
    ) -> list[Profile]:
        """Return up to limit completed profiles not in exclude_ids,
        ordered by created_at then id."""
        ...


class NotificationEmitter(Protocol):
    """Receives lifecycle events after each committed mutation. Fire-and-forget."""

    def emit(self, event: ConnectionEvent) -> None:
        ...
