"""In-memory implementations of ConnectionStore and ProfileDirectory (no DB)."""

import threading
from collections.abc import Iterable
from datetime import datetime

from cofound.application.ports import DuplicatePairError
from cofound.domain import Connection, ConnectionStatus, Profile, pair_key


class InMemoryConnectionStore:
    """Stores connection rows in memory.
    One lock guards every check-then-write, so the pair uniqueness and the
    conditional updates hold across threads the way a DB constraint would.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: dict[str, Connection] = {}
        self._by_pair: dict[str, str] = {}  # pair_key -> connection id

    def insert(self, connection: Connection) -> None:
        with self._lock:
            if connection.pair_key in self._by_pair or connection.id in self._by_id:
                raise DuplicatePairError()
            self._by_id[connection.id] = connection
            self._by_pair[connection.pair_key] = connection.id

    def get(self, connection_id: str) -> Connection | None:
        with self._lock:
            return self._by_id.get(connection_id)

    def find_between(self, profile_a: str, profile_b: str) -> Connection | None:
        with self._lock:
            connection_id = self._by_pair.get(pair_key(profile_a, profile_b))
            if connection_id is None:
                return None
            return self._by_id[connection_id]

    def list_for_profile(self, profile_id: str) -> list[Connection]:
        with self._lock:
            return [c for c in self._by_id.values() if c.involves(profile_id)]

    def transition(
        self,
        connection_id: str,
        expected: ConnectionStatus,
        new_status: ConnectionStatus,
        updated_at: datetime,
    ) -> Connection | None:
        with self._lock:
            current = self._by_id.get(connection_id)
            if current is None or current.status is not expected:
                return None
            updated = current.with_status(new_status, updated_at)
            self._by_id[connection_id] = updated
            return updated

    def delete_if(self, connection_id: str, expected: ConnectionStatus) -> bool:
        with self._lock:
            current = self._by_id.get(connection_id)
            if current is None or current.status is not expected:
                return False
            del self._by_id[connection_id]
            self._by_pair.pop(current.pair_key, None)
            return True


class InMemoryProfileDirectory:
    """Profiles in memory. add() is for seeding; the core only reads."""

    def __init__(self, profiles: Iterable[Profile] = ()) -> None:
        self._by_id: dict[str, Profile] = {}
        for profile in profiles:
            self.add(profile)

    def add(self, profile: Profile) -> None:
        self._by_id[profile.id] = profile

    def get_profile(self, profile_id: str) -> Profile | None:
        return self._by_id.get(profile_id)

    def get_completed_profiles(
        self, exclude_ids: Iterable[str], limit: int
    ) -> list[Profile]:
        excluded = set(exclude_ids)
        eligible = [
            p
            for p in self._by_id.values()
            if p.profile_completed and p.id not in excluded
        ]
        eligible.sort(key=lambda p: (p.created_at, p.id))
        return eligible[:limit]
