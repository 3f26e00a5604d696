"""Unit tests for DiscoveryService. In-memory store and directory only."""

from datetime import datetime, timedelta, timezone

from cofound.application import (
    Candidates,
    ConnectionService,
    DiscoveryService,
    ExclusionSet,
    RequestCreated,
    StoreUnavailable,
    StoreUnavailableError,
    ValidationError,
)
from cofound.application.discovery_service import exclusion_ids
from cofound.domain import Connection, ConnectionStatus, Profile
from cofound.infrastructure import InMemoryConnectionStore, InMemoryProfileDirectory

BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _profile(pid: str, minutes: int, completed: bool = True) -> Profile:
    return Profile(
        id=pid,
        name=f"Founder {pid}",
        profile_completed=completed,
        created_at=BASE + timedelta(minutes=minutes),
    )


def _setup(count: int = 6):
    store = InMemoryConnectionStore()
    directory = InMemoryProfileDirectory(
        _profile(f"p{i}", minutes=i) for i in range(1, count + 1)
    )
    connections = ConnectionService(store, directory, sleep=lambda _: None)
    discovery = DiscoveryService(store, directory, sleep=lambda _: None)
    return store, directory, connections, discovery


def _ids(result) -> list[str]:
    assert isinstance(result, Candidates)
    return [p.id for p in result.profiles]


def test_exclusion_ids_covers_every_status() -> None:
    rows = [
        Connection(requester_id="me", receiver_id="a"),
        Connection(requester_id="b", receiver_id="me", status=ConnectionStatus.ACCEPTED),
        Connection(requester_id="me", receiver_id="c", status=ConnectionStatus.REJECTED),
        Connection(requester_id="x", receiver_id="y"),
    ]
    assert exclusion_ids("me", rows) == frozenset({"me", "a", "b", "c"})


def test_exclusion_set_always_contains_viewer() -> None:
    _, _, _, discovery = _setup()
    result = discovery.build_exclusion_set("p1")
    assert isinstance(result, ExclusionSet)
    assert "p1" in result
    assert result.profile_ids == frozenset({"p1"})


def test_candidates_never_include_viewer_or_counterparts() -> None:
    _, _, connections, discovery = _setup()
    pending = connections.create_request("p1", "p2")
    accepted = connections.create_request("p3", "p1")
    connections.accept(accepted.connection.id, "p1")
    rejected = connections.create_request("p1", "p4")
    connections.reject(rejected.connection.id, "p4")
    assert isinstance(pending, RequestCreated)

    assert _ids(discovery.get_candidates("p1")) == ["p5", "p6"]


def test_both_sides_excluded_after_a_request() -> None:
    _, _, connections, discovery = _setup()
    connections.create_request("p1", "p2")
    assert "p2" not in _ids(discovery.get_candidates("p1"))
    assert "p1" not in _ids(discovery.get_candidates("p2"))


def test_undo_swipe_restores_candidate() -> None:
    _, _, connections, discovery = _setup()
    created = connections.create_request("p1", "p2")
    assert "p2" not in _ids(discovery.get_candidates("p1"))

    connections.withdraw(created.connection.id, "p1")

    assert "p2" in _ids(discovery.get_candidates("p1"))
    assert "p1" in _ids(discovery.get_candidates("p2"))


def test_removed_connection_restores_candidate() -> None:
    _, _, connections, discovery = _setup()
    created = connections.create_request("p1", "p2")
    connections.accept(created.connection.id, "p2")
    connections.remove(created.connection.id, "p2")
    assert "p2" in _ids(discovery.get_candidates("p1"))


def test_rejected_profile_stays_excluded_for_both() -> None:
    _, _, connections, discovery = _setup()
    created = connections.create_request("p1", "p2")
    connections.reject(created.connection.id, "p2")
    assert "p2" not in _ids(discovery.get_candidates("p1"))
    assert "p1" not in _ids(discovery.get_candidates("p2"))


def test_incomplete_profiles_are_not_candidates() -> None:
    _, directory, _, discovery = _setup(count=3)
    directory.add(_profile("draft", minutes=0, completed=False))
    assert "draft" not in _ids(discovery.get_candidates("p1"))


def test_limit_defaults_and_is_clamped() -> None:
    store = InMemoryConnectionStore()
    directory = InMemoryProfileDirectory(
        _profile(f"p{i:02d}", minutes=i) for i in range(1, 41)
    )
    discovery = DiscoveryService(store, directory, sleep=lambda _: None)

    assert len(_ids(discovery.get_candidates("p01"))) == 10
    assert len(_ids(discovery.get_candidates("p01", 100))) == 30
    assert len(_ids(discovery.get_candidates("p01", 0))) == 1
    assert len(_ids(discovery.get_candidates("p01", -5))) == 1
    assert discovery.clamp_limit(None) == 10
    assert discovery.clamp_limit(12) == 12


def test_candidates_ordered_by_created_at_then_id() -> None:
    store = InMemoryConnectionStore()
    directory = InMemoryProfileDirectory(
        [
            _profile("b", minutes=1),
            _profile("a", minutes=1),
            _profile("c", minutes=0),
            _profile("viewer", minutes=5),
        ]
    )
    discovery = DiscoveryService(store, directory)
    assert _ids(discovery.get_candidates("viewer")) == ["c", "a", "b"]


def test_consecutive_fetches_are_stable() -> None:
    _, _, _, discovery = _setup()
    first = _ids(discovery.get_candidates("p1", 3))
    second = _ids(discovery.get_candidates("p1", 3))
    assert first == second == ["p2", "p3", "p4"]


def test_blank_viewer_is_validation_error() -> None:
    _, _, _, discovery = _setup()
    assert isinstance(discovery.get_candidates("  "), ValidationError)
    assert isinstance(discovery.build_exclusion_set(""), ValidationError)


class _DownStore(InMemoryConnectionStore):
    def list_for_profile(self, profile_id):
        raise StoreUnavailableError()


def test_store_outage_surfaces_store_unavailable() -> None:
    directory = InMemoryProfileDirectory([_profile("p1", 1), _profile("p2", 2)])
    discovery = DiscoveryService(_DownStore(), directory, sleep=lambda _: None)
    assert isinstance(discovery.get_candidates("p1"), StoreUnavailable)
    assert isinstance(discovery.build_exclusion_set("p1"), StoreUnavailable)
