"""Neo4j implementations of ConnectionStore and ProfileDirectory.
Graph: (:Profile {id, name, ..., profile_completed}) and
(:Connection {id, requester_id, receiver_id, pair_key, status, created_at, updated_at}).
pair_key is unique across all statuses, so one row per unordered pair.
Conditional writes lock the node first (SET/REMOVE of a dummy property) and
only then re-check status, which makes them compare-and-swap.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from neo4j.exceptions import (
    ConstraintError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)

from cofound.application.ports import DuplicatePairError, StoreUnavailableError
from cofound.domain import Connection, ConnectionStatus, Profile, pair_key


_CONNECTION_SCHEMA = (
    """
    CREATE CONSTRAINT connection_id_unique IF NOT EXISTS
    FOR (c:Connection) REQUIRE c.id IS UNIQUE
    """,
    """
    CREATE CONSTRAINT connection_pair_unique IF NOT EXISTS
    FOR (c:Connection) REQUIRE c.pair_key IS UNIQUE
    """,
    """
    CREATE INDEX connection_requester IF NOT EXISTS
    FOR (c:Connection) ON (c.requester_id)
    """,
    """
    CREATE INDEX connection_receiver IF NOT EXISTS
    FOR (c:Connection) ON (c.receiver_id)
    """,
)

_PROFILE_SCHEMA = (
    """
    CREATE CONSTRAINT profile_id_unique IF NOT EXISTS
    FOR (p:Profile) REQUIRE p.id IS UNIQUE
    """,
    """
    CREATE INDEX profile_completed IF NOT EXISTS
    FOR (p:Profile) ON (p.profile_completed)
    """,
)

_INSERT_QUERY = """
CREATE (c:Connection {
    id: $id,
    requester_id: $requester_id,
    receiver_id: $receiver_id,
    pair_key: $pair_key,
    status: $status,
    created_at: $created_at,
    updated_at: $updated_at
})
"""

_GET_QUERY = """
MATCH (c:Connection {id: $id})
RETURN c
"""

_FIND_BETWEEN_QUERY = """
MATCH (c:Connection {pair_key: $pair_key})
RETURN c
"""

_LIST_FOR_PROFILE_QUERY = """
MATCH (c:Connection)
WHERE c.requester_id = $profile_id
RETURN c
UNION
MATCH (c:Connection)
WHERE c.receiver_id = $profile_id
RETURN c
"""

_TRANSITION_QUERY = """
MATCH (c:Connection {id: $id})
SET c._lock = true
REMOVE c._lock
WITH c
WHERE c.status = $expected
SET c.status = $new_status, c.updated_at = $updated_at
RETURN c
"""

_DELETE_IF_QUERY = """
MATCH (c:Connection {id: $id})
SET c._lock = true
REMOVE c._lock
WITH c
WHERE c.status = $expected
DELETE c
RETURN count(*) AS deleted
"""

_UPSERT_PROFILE_QUERY = """
MERGE (p:Profile {id: $id})
SET p.name = $name,
    p.age = $age,
    p.city = $city,
    p.country = $country,
    p.looking_for = $looking_for,
    p.interests = $interests,
    p.about_me = $about_me,
    p.photo_url = $photo_url,
    p.startup_name = $startup_name,
    p.profile_completed = $profile_completed,
    p.created_at = $created_at
"""

_GET_PROFILE_QUERY = """
MATCH (p:Profile {id: $id})
RETURN p
"""

_COMPLETED_PROFILES_QUERY = """
MATCH (p:Profile)
WHERE p.profile_completed = true AND NOT p.id IN $exclude_ids
RETURN p
ORDER BY p.created_at, p.id
LIMIT $limit
"""


def _datetime_to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _iso_to_datetime(s: str) -> datetime:
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate driver errors into store-level errors."""
    try:
        yield
    except ConstraintError as exc:
        raise DuplicatePairError() from exc
    except (ServiceUnavailable, SessionExpired, TransientError) as exc:
        raise StoreUnavailableError(str(exc) or None) from exc


def ensure_connection_constraints(driver) -> None:
    """Create uniqueness constraints (id, pair_key) and lookup indexes if missing."""
    with driver.session() as session:
        for statement in _CONNECTION_SCHEMA:
            session.run(statement).consume()


def ensure_profile_constraints(driver) -> None:
    """Create the Profile id constraint and the profile_completed index if missing."""
    with driver.session() as session:
        for statement in _PROFILE_SCHEMA:
            session.run(statement).consume()


class Neo4jConnectionStore:
    """Stores connection rows as :Connection nodes.
    Call ensure_connection_constraints at startup; without it the pair is not unique.
    """

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def insert(self, connection: Connection) -> None:
        with _store_errors(), self._driver.session() as session:
            session.run(
                _INSERT_QUERY,
                id=connection.id,
                requester_id=connection.requester_id,
                receiver_id=connection.receiver_id,
                pair_key=connection.pair_key,
                status=connection.status.value,
                created_at=_datetime_to_iso(connection.created_at),
                updated_at=_datetime_to_iso(connection.updated_at),
            ).consume()

    def get(self, connection_id: str) -> Connection | None:
        with _store_errors(), self._driver.session() as session:
            record = session.run(_GET_QUERY, id=connection_id).single()
        if not record:
            return None
        return _node_to_connection(record["c"])

    def find_between(self, profile_a: str, profile_b: str) -> Connection | None:
        key = pair_key(profile_a, profile_b)
        with _store_errors(), self._driver.session() as session:
            record = session.run(_FIND_BETWEEN_QUERY, pair_key=key).single()
        if not record:
            return None
        return _node_to_connection(record["c"])

    def list_for_profile(self, profile_id: str) -> list[Connection]:
        with _store_errors(), self._driver.session() as session:
            result = session.run(_LIST_FOR_PROFILE_QUERY, profile_id=profile_id)
            return [_node_to_connection(rec["c"]) for rec in result]

    def transition(
        self,
        connection_id: str,
        expected: ConnectionStatus,
        new_status: ConnectionStatus,
        updated_at: datetime,
    ) -> Connection | None:
        with _store_errors(), self._driver.session() as session:
            record = session.run(
                _TRANSITION_QUERY,
                id=connection_id,
                expected=expected.value,
                new_status=new_status.value,
                updated_at=_datetime_to_iso(updated_at),
            ).single()
        if not record:
            return None
        return _node_to_connection(record["c"])

    def delete_if(self, connection_id: str, expected: ConnectionStatus) -> bool:
        with _store_errors(), self._driver.session() as session:
            record = session.run(
                _DELETE_IF_QUERY, id=connection_id, expected=expected.value
            ).single()
        return bool(record and record["deleted"])


class Neo4jProfileDirectory:
    """Reads :Profile nodes. add() upserts, for seeding and tests."""

    def __init__(self, driver: object) -> None:
        self._driver = driver

    def add(self, profile: Profile) -> None:
        with _store_errors(), self._driver.session() as session:
            session.run(
                _UPSERT_PROFILE_QUERY,
                id=profile.id,
                name=profile.name,
                age=profile.age,
                city=profile.city,
                country=profile.country,
                looking_for=profile.looking_for,
                interests=sorted(profile.interests),
                about_me=profile.about_me,
                photo_url=profile.photo_url,
                startup_name=profile.startup_name,
                profile_completed=profile.profile_completed,
                created_at=_datetime_to_iso(profile.created_at),
            ).consume()

    def get_profile(self, profile_id: str) -> Profile | None:
        with _store_errors(), self._driver.session() as session:
            record = session.run(_GET_PROFILE_QUERY, id=profile_id).single()
        if not record:
            return None
        return _node_to_profile(record["p"])

    def get_completed_profiles(
        self, exclude_ids: Iterable[str], limit: int
    ) -> list[Profile]:
        with _store_errors(), self._driver.session() as session:
            result = session.run(
                _COMPLETED_PROFILES_QUERY,
                exclude_ids=list(exclude_ids),
                limit=int(limit),
            )
            return [_node_to_profile(rec["p"]) for rec in result]


def _node_to_connection(node) -> Connection:
    return Connection(
        id=node["id"],
        requester_id=node["requester_id"],
        receiver_id=node["receiver_id"],
        status=ConnectionStatus(node["status"]),
        created_at=_iso_to_datetime(node["created_at"]),
        updated_at=_iso_to_datetime(node["updated_at"]),
    )


def _node_to_profile(node) -> Profile:
    return Profile(
        id=node["id"],
        name=node.get("name") or "",
        age=node.get("age"),
        city=node.get("city"),
        country=node.get("country"),
        looking_for=node.get("looking_for"),
        interests=frozenset(node.get("interests") or []),
        about_me=node.get("about_me"),
        photo_url=node.get("photo_url"),
        startup_name=node.get("startup_name"),
        profile_completed=bool(node.get("profile_completed")),
        created_at=_iso_to_datetime(node["created_at"]),
    )
