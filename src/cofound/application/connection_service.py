"""Connection lifecycle: request, accept, reject, withdraw, remove, and listings.

Every mutation is a single conditional write on the ConnectionStore. When a
conditional write matches nothing, the row is re-read to tell a lost race
(NotPending / NotAccepted) from a row that is gone (NotFoundError).
"""

import logging
import time
from collections.abc import Callable, Iterable
from datetime import datetime

from cofound.application.dto import (
    ConnectionDeleted,
    ConnectionStatusView,
    ConnectionsOverview,
    ConnectionSummary,
    ConnectionUpdated,
    DuplicateConnection,
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
    duplicate_for,
)
from cofound.application.ports import (
    ConnectionStore,
    DuplicatePairError,
    NotificationEmitter,
    ProfileDirectory,
    StoreUnavailableError,
)
from cofound.application.retry import (
    READ_RETRY,
    WRITE_RETRY,
    RetryConfig,
    call_with_retry,
    compute_delay,
)
from cofound.domain import (
    Connection,
    ConnectionEvent,
    ConnectionStatus,
    EventType,
)
from cofound.domain.entities import utcnow

logger = logging.getLogger(__name__)

PROFILE_NOT_FOUND = NotFoundError(
    reason="profile_not_found", message="This profile no longer exists."
)
MISSING_PROFILE_ID = ValidationError(message="A profile id is required.")


def _clean_id(value: str | None) -> str:
    return (value or "").strip()


class ConnectionService:
    """State machine for connections between two profiles.

    pending -> accepted | rejected (row kept), pending -> deleted (withdraw),
    accepted -> deleted (remove). Rejected is terminal.
    """

    def __init__(
        self,
        store: ConnectionStore,
        profiles: ProfileDirectory,
        emitter: NotificationEmitter | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
        read_retry: RetryConfig = READ_RETRY,
        write_retry: RetryConfig = WRITE_RETRY,
    ) -> None:
        self._store = store
        self._profiles = profiles
        self._emitter = emitter
        self._clock = clock
        self._sleep = sleep
        self._read_retry = read_retry
        self._write_retry = write_retry

    # --- Mutations ---

    def create_request(
        self, requester_id: str, receiver_id: str
    ) -> RequestCreated | ValidationError | DuplicateConnection | NotFoundError | StoreUnavailable:
        """Send a pending request from requester to receiver (swipe right / Connect)."""
        requester_id = _clean_id(requester_id)
        receiver_id = _clean_id(receiver_id)
        if not requester_id or not receiver_id:
            return MISSING_PROFILE_ID
        if requester_id == receiver_id:
            return InvalidSelfRequest()

        try:
            for profile_id in (requester_id, receiver_id):
                if self._read(lambda pid=profile_id: self._profiles.get_profile(pid)) is None:
                    return PROFILE_NOT_FOUND

            existing = self._read(lambda: self._store.find_between(requester_id, receiver_id))
            if existing is not None:
                return duplicate_for(existing, requester_id)

            connection = Connection(
                requester_id=requester_id,
                receiver_id=receiver_id,
                created_at=self._clock(),
            )
            self._insert(connection)
        except DuplicatePairError:
            logger.info(
                "Lost create race for pair %s -> %s; returning existing row",
                requester_id,
                receiver_id,
            )
            return duplicate_for(self._find_quietly(requester_id, receiver_id), requester_id)
        except StoreUnavailableError:
            logger.warning("create_request %s -> %s: store unavailable", requester_id, receiver_id)
            return StoreUnavailable()

        logger.info(
            "Connection %s requested: %s -> %s", connection.id, requester_id, receiver_id
        )
        self._emit(ConnectionEvent.for_connection(EventType.REQUEST_CREATED, connection, requester_id))
        return RequestCreated(connection=connection)

    def accept(
        self, connection_id: str, acting_profile_id: str
    ) -> ConnectionUpdated | NotReceiver | NotPending | NotFoundError | StoreUnavailable:
        """Receiver accepts a pending request."""
        return self._respond(
            connection_id,
            acting_profile_id,
            ConnectionStatus.ACCEPTED,
            EventType.REQUEST_ACCEPTED,
        )

    def reject(
        self, connection_id: str, acting_profile_id: str
    ) -> ConnectionUpdated | NotReceiver | NotPending | NotFoundError | StoreUnavailable:
        """Receiver rejects a pending request. The row stays as a do-not-rematch record."""
        return self._respond(
            connection_id,
            acting_profile_id,
            ConnectionStatus.REJECTED,
            EventType.REQUEST_REJECTED,
        )

    def withdraw(
        self, connection_id: str, acting_profile_id: str
    ) -> ConnectionDeleted | NotRequester | NotPending | NotFoundError | StoreUnavailable:
        """Requester deletes their own pending request. Also used for undo-last-swipe."""
        connection_id = _clean_id(connection_id)
        acting_profile_id = _clean_id(acting_profile_id)
        try:
            connection = self._read(lambda: self._store.get(connection_id))
            if connection is None:
                return NotFoundError()
            if not connection.is_requester(acting_profile_id):
                return NotRequester()
            if connection.status is not ConnectionStatus.PENDING:
                return NotPending(
                    message="This request was already answered and can't be undone.",
                    current=connection,
                )

            deleted = self._conditional_delete(
                connection_id, ConnectionStatus.PENDING, "withdraw"
            )
            if not deleted:
                current = self._read(lambda: self._store.get(connection_id))
                if current is None:
                    return NotFoundError()
                return NotPending(
                    message="This request was already answered and can't be undone.",
                    current=current,
                )
        except StoreUnavailableError:
            logger.warning("withdraw %s: store unavailable", connection_id)
            return StoreUnavailable()

        logger.info("Connection %s withdrawn by %s", connection_id, acting_profile_id)
        return ConnectionDeleted(connection_id=connection_id)

    def remove(
        self, connection_id: str, acting_profile_id: str
    ) -> ConnectionDeleted | NotParty | NotAccepted | NotFoundError | StoreUnavailable:
        """Either party severs an accepted connection."""
        connection_id = _clean_id(connection_id)
        acting_profile_id = _clean_id(acting_profile_id)
        try:
            connection = self._read(lambda: self._store.get(connection_id))
            if connection is None:
                return NotFoundError()
            if not connection.involves(acting_profile_id):
                return NotParty()
            if connection.status is not ConnectionStatus.ACCEPTED:
                return NotAccepted(current=connection)

            deleted = self._conditional_delete(
                connection_id, ConnectionStatus.ACCEPTED, "remove"
            )
            if not deleted:
                current = self._read(lambda: self._store.get(connection_id))
                if current is None:
                    return NotFoundError()
                return NotAccepted(current=current)
        except StoreUnavailableError:
            logger.warning("remove %s: store unavailable", connection_id)
            return StoreUnavailable()

        logger.info("Connection %s removed by %s", connection_id, acting_profile_id)
        self._emit(
            ConnectionEvent.for_connection(
                EventType.CONNECTION_REMOVED, connection, acting_profile_id
            )
        )
        return ConnectionDeleted(connection_id=connection_id)

    # --- Reads ---

    def get_connections_for_profile(
        self, profile_id: str
    ) -> ConnectionsOverview | ValidationError | StoreUnavailable:
        """Pending received, pending sent and accepted connections. Rejected rows are hidden."""
        profile_id = _clean_id(profile_id)
        if not profile_id:
            return MISSING_PROFILE_ID
        try:
            rows = [
                c
                for c in self._read(lambda: self._store.list_for_profile(profile_id))
                if c.status is not ConnectionStatus.REJECTED
            ]
            cards = self._profile_cards(c.counterpart(profile_id) for c in rows)
        except StoreUnavailableError:
            return StoreUnavailable()

        pending_received = []
        pending_sent = []
        accepted = []
        for conn in rows:
            other_id = conn.counterpart(profile_id)
            summary = ConnectionSummary(
                connection=conn,
                other_profile_id=other_id,
                direction="outgoing" if conn.is_requester(profile_id) else "incoming",
                other_profile=cards.get(other_id),
            )
            if conn.status is ConnectionStatus.ACCEPTED:
                accepted.append(summary)
            elif conn.status is ConnectionStatus.PENDING:
                if conn.is_receiver(profile_id):
                    pending_received.append(summary)
                else:
                    pending_sent.append(summary)

        pending_received.sort(key=lambda s: (s.connection.created_at, s.connection.id), reverse=True)
        pending_sent.sort(key=lambda s: (s.connection.created_at, s.connection.id), reverse=True)
        accepted.sort(key=lambda s: (s.connection.updated_at, s.connection.id), reverse=True)
        return ConnectionsOverview(
            pending_received=pending_received,
            pending_sent=pending_sent,
            accepted=accepted,
        )

    def get_connection_status(
        self, viewer_id: str, other_id: str
    ) -> ConnectionStatusView | ValidationError | StoreUnavailable:
        """How the viewer stands with another profile (profile page button state)."""
        viewer_id = _clean_id(viewer_id)
        other_id = _clean_id(other_id)
        if not viewer_id or not other_id:
            return MISSING_PROFILE_ID
        if viewer_id == other_id:
            return ConnectionStatusView(status="self")
        try:
            conn = self._read(lambda: self._store.find_between(viewer_id, other_id))
        except StoreUnavailableError:
            return StoreUnavailable()

        if conn is None:
            return ConnectionStatusView(status="none")
        if conn.status is ConnectionStatus.ACCEPTED:
            status = "connected"
        elif conn.status is ConnectionStatus.REJECTED:
            status = "rejected"
        elif conn.is_requester(viewer_id):
            status = "pending_sent"
        else:
            status = "pending_received"
        return ConnectionStatusView(status=status, connection_id=conn.id)

    def count_pending_received(
        self, profile_id: str
    ) -> PendingCount | ValidationError | StoreUnavailable:
        """Number of pending requests waiting on this profile (unread badge)."""
        overview = self.get_connections_for_profile(profile_id)
        if not isinstance(overview, ConnectionsOverview):
            return overview
        return PendingCount(count=len(overview.pending_received))

    # --- Internals ---

    def _respond(
        self,
        connection_id: str,
        acting_profile_id: str,
        new_status: ConnectionStatus,
        event_type: EventType,
    ) -> ConnectionUpdated | NotReceiver | NotPending | NotFoundError | StoreUnavailable:
        connection_id = _clean_id(connection_id)
        acting_profile_id = _clean_id(acting_profile_id)
        try:
            connection = self._read(lambda: self._store.get(connection_id))
            if connection is None:
                return NotFoundError()
            if not connection.is_receiver(acting_profile_id):
                return NotReceiver()
            if connection.status is not ConnectionStatus.PENDING:
                return NotPending(current=connection)

            now = self._clock()
            updated = self._write(
                lambda: self._store.transition(
                    connection_id, ConnectionStatus.PENDING, new_status, now
                ),
                new_status.value,
            )
            if updated is None:
                current = self._read(lambda: self._store.get(connection_id))
                if current is None:
                    return NotFoundError()
                if current.status is not new_status or current.updated_at != now:
                    return NotPending(current=current)
                # An earlier attempt committed before the store error.
                logger.info(
                    "Connection %s: %s write had already landed",
                    connection_id,
                    new_status.value,
                )
                updated = current
        except StoreUnavailableError:
            logger.warning("%s %s: store unavailable", new_status.value, connection_id)
            return StoreUnavailable()

        logger.info(
            "Connection %s %s by %s", connection_id, new_status.value, acting_profile_id
        )
        self._emit(ConnectionEvent.for_connection(event_type, updated, acting_profile_id))
        return ConnectionUpdated(connection=updated)

    def _insert(self, connection: Connection) -> None:
        """Insert with at most write_retry.max_retries retries.

        Before retrying, the pair is re-read: the first attempt may have landed
        even though the store reported it as unavailable.
        """
        attempts = 0
        while True:
            try:
                self._store.insert(connection)
                return
            except StoreUnavailableError:
                attempts += 1
                if attempts > self._write_retry.max_retries:
                    raise
                delay = compute_delay(self._write_retry, attempts - 1)
                logger.warning(
                    "insert %s: store unavailable, retrying in %.2fs", connection.id, delay
                )
                self._sleep(delay)
                current = self._store.find_between(
                    connection.requester_id, connection.receiver_id
                )
                if current is not None:
                    if current.id == connection.id:
                        return
                    raise DuplicatePairError()

    def _profile_cards(self, profile_ids: Iterable[str]) -> dict[str, ProfileSummary]:
        """Counterpart cards for a listing. Ids missing from the directory are left out."""
        cards = {}
        for other_id in set(profile_ids):
            profile = self._read(lambda pid=other_id: self._profiles.get_profile(pid))
            if profile is not None:
                cards[other_id] = ProfileSummary.from_profile(profile)
        return cards

    def _conditional_delete(
        self, connection_id: str, expected: ConnectionStatus, operation: str
    ) -> bool:
        """delete_if under the write retry policy.

        Also True when an attempt raised and the row is gone afterwards: that
        attempt committed and only its acknowledgement was lost.
        """
        attempts = 0

        def delete() -> bool:
            nonlocal attempts
            attempts += 1
            return self._store.delete_if(connection_id, expected)

        deleted = self._write(delete, operation)
        if deleted or attempts == 1:
            return deleted
        if self._read(lambda: self._store.get(connection_id)) is None:
            logger.info("Connection %s: %s had already landed", connection_id, operation)
            return True
        return False

    def _find_quietly(self, profile_a: str, profile_b: str) -> Connection | None:
        try:
            return self._read(lambda: self._store.find_between(profile_a, profile_b))
        except StoreUnavailableError:
            return None

    def _read(self, fn):
        return call_with_retry(fn, self._read_retry, operation="read", sleep=self._sleep)

    def _write(self, fn, operation: str):
        return call_with_retry(fn, self._write_retry, operation=operation, sleep=self._sleep)

    def _emit(self, event: ConnectionEvent) -> None:
        if self._emitter is None:
            return
        try:
            self._emitter.emit(event)
        except Exception:
            # Delivery failures never fail the lifecycle operation.
            logger.exception(
                "Failed to emit %s for connection %s", event.type.value, event.connection_id
            )
