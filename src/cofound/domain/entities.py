"""Domain entities: Profile, Connection, ConnectionStatus, and ConnectionEvent."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

# Max lengths for free-text profile fields.
NAME_MAX_LENGTH = 200
LOOKING_FOR_MAX_LENGTH = 500
ABOUT_MAX_LENGTH = 2000
TAG_MAX_LENGTH = 50
MIN_AGE = 16
MAX_AGE = 120


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def pair_key(profile_a: str, profile_b: str) -> str:
    """Order-independent key for the unordered pair {a, b}."""
    low, high = sorted((profile_a, profile_b))
    return f"{low}|{high}"


def _clean_optional(value: str | None, limit: int, label: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) > limit:
        raise ValueError(f"Profile {label} must be at most {limit} chars.")
    return value or None


class ConnectionStatus(str, Enum):
    """Persisted connection states."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class EventType(str, Enum):
    """Lifecycle transitions announced to the notification emitter."""

    REQUEST_CREATED = "request_created"
    REQUEST_ACCEPTED = "request_accepted"
    REQUEST_REJECTED = "request_rejected"
    CONNECTION_REMOVED = "connection_removed"


@dataclass(frozen=True)
class Profile:
    """
    A matchable identity, distinct from the auth identity.
    Only completed profiles are eligible for discovery.
    """

    id: str
    name: str
    age: int | None = None
    city: str | None = None
    country: str | None = None
    looking_for: str | None = None
    interests: frozenset[str] = field(default_factory=frozenset)
    about_me: str | None = None
    photo_url: str | None = None
    startup_name: str | None = None
    profile_completed: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if not self.id or not str(self.id).strip():
            raise ValueError("Profile id must be non-empty.")
        object.__setattr__(self, "id", str(self.id).strip())

        name = (self.name or "").strip()
        if not name:
            raise ValueError("Profile name must be non-empty.")
        if len(name) > NAME_MAX_LENGTH:
            raise ValueError(f"Profile name must be at most {NAME_MAX_LENGTH} chars.")
        object.__setattr__(self, "name", name)

        if self.age is not None and not MIN_AGE <= self.age <= MAX_AGE:
            raise ValueError(f"Profile age must be between {MIN_AGE} and {MAX_AGE}.")

        object.__setattr__(self, "city", _clean_optional(self.city, NAME_MAX_LENGTH, "city"))
        object.__setattr__(
            self, "country", _clean_optional(self.country, NAME_MAX_LENGTH, "country")
        )
        object.__setattr__(
            self,
            "looking_for",
            _clean_optional(self.looking_for, LOOKING_FOR_MAX_LENGTH, "looking_for"),
        )
        object.__setattr__(
            self, "about_me", _clean_optional(self.about_me, ABOUT_MAX_LENGTH, "about_me")
        )
        object.__setattr__(self, "photo_url", (self.photo_url or "").strip() or None)
        object.__setattr__(
            self,
            "startup_name",
            _clean_optional(self.startup_name, NAME_MAX_LENGTH, "startup_name"),
        )

        tags = set()
        for tag in self.interests or ():
            tag = str(tag).strip()
            if not tag:
                continue
            if len(tag) > TAG_MAX_LENGTH:
                raise ValueError(f"Interest tags must be at most {TAG_MAX_LENGTH} chars.")
            tags.add(tag)
        object.__setattr__(self, "interests", frozenset(tags))
        object.__setattr__(self, "profile_completed", bool(self.profile_completed))


@dataclass(frozen=True)
class Connection:
    """
    Directed request between two profiles and its resolved status.
    At most one Connection exists per unordered pair; see pair_key.
    """

    requester_id: str
    receiver_id: str
    status: ConnectionStatus = ConnectionStatus.PENDING
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def __post_init__(self):
        requester = (self.requester_id or "").strip()
        receiver = (self.receiver_id or "").strip()
        if not requester or not receiver:
            raise ValueError("Connection requester_id and receiver_id must be non-empty.")
        if requester == receiver:
            raise ValueError("Connection requester_id and receiver_id must differ.")
        object.__setattr__(self, "requester_id", requester)
        object.__setattr__(self, "receiver_id", receiver)
        object.__setattr__(self, "status", ConnectionStatus(self.status))
        if self.updated_at is None:
            object.__setattr__(self, "updated_at", self.created_at)

    @property
    def pair_key(self) -> str:
        return pair_key(self.requester_id, self.receiver_id)

    def involves(self, profile_id: str) -> bool:
        return profile_id in (self.requester_id, self.receiver_id)

    def is_requester(self, profile_id: str) -> bool:
        return profile_id == self.requester_id

    def is_receiver(self, profile_id: str) -> bool:
        return profile_id == self.receiver_id

    def counterpart(self, profile_id: str) -> str:
        """Return the other profile of the pair as seen by profile_id."""
        if profile_id == self.requester_id:
            return self.receiver_id
        if profile_id == self.receiver_id:
            return self.requester_id
        raise ValueError(f"Profile {profile_id} is not a party to connection {self.id}.")

    def with_status(self, status: ConnectionStatus, updated_at: datetime) -> "Connection":
        return Connection(
            id=self.id,
            requester_id=self.requester_id,
            receiver_id=self.receiver_id,
            status=status,
            created_at=self.created_at,
            updated_at=updated_at,
        )


@dataclass(frozen=True)
class ConnectionEvent:
    """A committed lifecycle transition, handed to the notification emitter."""

    type: EventType
    connection_id: str
    requester_id: str
    receiver_id: str
    actor_id: str
    occurred_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_connection(
        cls, event_type: EventType, connection: Connection, actor_id: str
    ) -> "ConnectionEvent":
        return cls(
            type=event_type,
            connection_id=connection.id,
            requester_id=connection.requester_id,
            receiver_id=connection.receiver_id,
            actor_id=actor_id,
        )

    @property
    def recipient_id(self) -> str:
        """The party who did not act and should be told about it."""
        if self.actor_id == self.requester_id:
            return self.receiver_id
        return self.requester_id

    def to_payload(self) -> dict:
        return {
            "type": self.type.value,
            "connectionId": self.connection_id,
            "requesterId": self.requester_id,
            "receiverId": self.receiver_id,
            "actorId": self.actor_id,
            "occurredAt": self.occurred_at.isoformat(),
        }
