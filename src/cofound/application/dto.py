"""Result types returned by the application services.

Services never raise for expected failures: every operation returns either a
success value or one of the four failure kinds below. Callers branch on the
type (or its reason code), never on message text.
"""

from dataclasses import dataclass, field

from cofound.domain import Connection, ConnectionStatus, Profile

GENERIC_RETRY_MESSAGE = "Something went wrong. Please try again."


# --- Failures ---


@dataclass(frozen=True)
class ValidationError:
    """The caller's own input or role does not allow the operation. Never retried."""

    reason: str = "invalid_input"
    message: str = "That request isn't valid."
    retryable = False


@dataclass(frozen=True)
class InvalidSelfRequest(ValidationError):
    reason: str = "self_request"
    message: str = "You can't send a connection request to yourself."


@dataclass(frozen=True)
class NotReceiver(ValidationError):
    reason: str = "not_receiver"
    message: str = "Only the person who received this request can respond to it."


@dataclass(frozen=True)
class NotRequester(ValidationError):
    reason: str = "not_requester"
    message: str = "Only the person who sent this request can withdraw it."


@dataclass(frozen=True)
class NotParty(ValidationError):
    reason: str = "not_party"
    message: str = "You are not part of this connection."


@dataclass(frozen=True)
class ConflictError:
    """A concurrent or duplicate state change. Re-fetch state instead of retrying."""

    reason: str = "conflict"
    message: str = "This connection has changed. Please refresh."
    retryable = False


@dataclass(frozen=True)
class DuplicateConnection(ConflictError):
    reason: str = "duplicate_connection"
    message: str = "You've already connected with this person."
    existing: Connection | None = None


@dataclass(frozen=True)
class NotPending(ConflictError):
    reason: str = "not_pending"
    message: str = "This request has already been answered."
    current: Connection | None = None


@dataclass(frozen=True)
class NotAccepted(ConflictError):
    reason: str = "not_accepted"
    message: str = "You aren't connected with this person."
    current: Connection | None = None


@dataclass(frozen=True)
class NotFoundError:
    """Referenced connection or profile does not exist (e.g. already deleted)."""

    reason: str = "connection_not_found"
    message: str = "This connection no longer exists."
    retryable = False


@dataclass(frozen=True)
class StoreUnavailable:
    """Transient infrastructure failure. Safe to retry with backoff."""

    reason: str = "store_unavailable"
    message: str = GENERIC_RETRY_MESSAGE
    retryable = True


Failure = ValidationError | ConflictError | NotFoundError | StoreUnavailable


def duplicate_for(existing: Connection | None, viewer_id: str) -> DuplicateConnection:
    """Duplicate failure with a message tailored to the existing row."""
    if existing is None:
        return DuplicateConnection()
    if existing.status is ConnectionStatus.ACCEPTED:
        message = "You're already connected with this person."
    elif existing.status is ConnectionStatus.REJECTED:
        message = "This person isn't available to connect."
    elif existing.is_requester(viewer_id):
        message = "You've already sent a request to this person."
    else:
        message = "This person has already sent you a request."
    return DuplicateConnection(message=message, existing=existing)


# --- Successes ---


@dataclass(frozen=True)
class RequestCreated:
    connection: Connection


@dataclass(frozen=True)
class ConnectionUpdated:
    connection: Connection


@dataclass(frozen=True)
class ConnectionDeleted:
    connection_id: str


@dataclass(frozen=True)
class ProfileSummary:
    """The counterpart card shown on a connection row."""

    id: str
    name: str
    photo_url: str | None = None
    startup_name: str | None = None
    looking_for: str | None = None

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileSummary":
        return cls(
            id=profile.id,
            name=profile.name,
            photo_url=profile.photo_url,
            startup_name=profile.startup_name,
            looking_for=profile.looking_for,
        )


@dataclass(frozen=True)
class ConnectionSummary:
    """One row of a profile's connection list, seen from that profile.
    other_profile is None when the counterpart is missing from the directory."""

    connection: Connection
    other_profile_id: str
    direction: str  # "outgoing" | "incoming"
    other_profile: ProfileSummary | None = None


@dataclass(frozen=True)
class ConnectionsOverview:
    pending_received: list[ConnectionSummary] = field(default_factory=list)
    pending_sent: list[ConnectionSummary] = field(default_factory=list)
    accepted: list[ConnectionSummary] = field(default_factory=list)


@dataclass(frozen=True)
class ConnectionStatusView:
    """Relationship between viewer and another profile, from the viewer's side.

    status is one of: self, none, pending_sent, pending_received, connected, rejected.
    """

    status: str
    connection_id: str | None = None


@dataclass(frozen=True)
class PendingCount:
    count: int


@dataclass(frozen=True)
class Candidates:
    profiles: list[Profile]


@dataclass(frozen=True)
class ExclusionSet:
    viewer_id: str
    profile_ids: frozenset[str]

    def __contains__(self, profile_id: object) -> bool:
        return profile_id in self.profile_ids
