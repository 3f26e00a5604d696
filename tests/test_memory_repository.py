"""Tests for the in-memory ConnectionStore and ProfileDirectory."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cofound.application import DuplicatePairError
from cofound.domain import Connection, ConnectionStatus, Profile
from cofound.infrastructure import InMemoryConnectionStore, InMemoryProfileDirectory

LATER = datetime(2030, 1, 1, tzinfo=timezone.utc)


def test_insert_and_lookup() -> None:
    store = InMemoryConnectionStore()
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)
    assert store.get(conn.id) == conn
    assert store.find_between("a", "b") == conn
    assert store.find_between("b", "a") == conn
    assert store.list_for_profile("a") == [conn]
    assert store.list_for_profile("b") == [conn]
    assert store.list_for_profile("c") == []


def test_pair_is_unique_in_both_directions() -> None:
    store = InMemoryConnectionStore()
    store.insert(Connection(requester_id="a", receiver_id="b"))
    with pytest.raises(DuplicatePairError):
        store.insert(Connection(requester_id="a", receiver_id="b"))
    with pytest.raises(DuplicatePairError):
        store.insert(Connection(requester_id="b", receiver_id="a"))


def test_transition_only_from_expected_status() -> None:
    store = InMemoryConnectionStore()
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)

    updated = store.transition(
        conn.id, ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED, LATER
    )
    assert updated is not None
    assert updated.status is ConnectionStatus.ACCEPTED
    assert updated.updated_at == LATER

    again = store.transition(
        conn.id, ConnectionStatus.PENDING, ConnectionStatus.REJECTED, LATER
    )
    assert again is None
    assert store.get(conn.id).status is ConnectionStatus.ACCEPTED
    assert store.transition("missing", ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED, LATER) is None


def test_delete_if_frees_the_pair() -> None:
    store = InMemoryConnectionStore()
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)

    assert store.delete_if(conn.id, ConnectionStatus.ACCEPTED) is False
    assert store.delete_if(conn.id, ConnectionStatus.PENDING) is True
    assert store.delete_if(conn.id, ConnectionStatus.PENDING) is False
    assert store.get(conn.id) is None
    store.insert(Connection(requester_id="b", receiver_id="a"))


def test_concurrent_transitions_have_one_winner() -> None:
    store = InMemoryConnectionStore()
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)
    barrier = threading.Barrier(8)
    wins = []

    def attempt(status):
        barrier.wait()
        if store.transition(conn.id, ConnectionStatus.PENDING, status, LATER) is not None:
            wins.append(status)

    threads = [
        threading.Thread(
            target=attempt,
            args=(ConnectionStatus.ACCEPTED if i % 2 else ConnectionStatus.REJECTED,),
        )
        for i in range(8)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(wins) == 1
    assert store.get(conn.id).status is wins[0]


def test_completed_profiles_filter_and_order() -> None:
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    directory = InMemoryProfileDirectory(
        [
            Profile(id="z", name="Z", profile_completed=True, created_at=base),
            Profile(id="y", name="Y", profile_completed=True, created_at=base + timedelta(seconds=1)),
            Profile(id="x", name="X", profile_completed=False, created_at=base),
            Profile(id="w", name="W", profile_completed=True, created_at=base),
        ]
    )
    assert [p.id for p in directory.get_completed_profiles(set(), 10)] == ["w", "z", "y"]
    assert [p.id for p in directory.get_completed_profiles({"w"}, 1)] == ["z"]
    assert directory.get_profile("x").name == "X"
    assert directory.get_profile("nope") is None
