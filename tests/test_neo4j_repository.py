"""Integration tests for Neo4jConnectionStore and Neo4jProfileDirectory. Require
Docker (testcontainers)."""

import threading
from datetime import datetime, timedelta, timezone

import pytest

from cofound.application import (
    Candidates,
    ConnectionDeleted,
    ConnectionService,
    ConnectionUpdated,
    DiscoveryService,
    DuplicateConnection,
    DuplicatePairError,
    NotFoundError,
    NotPending,
    RequestCreated,
)
from cofound.domain import Connection, ConnectionStatus, Profile
from cofound.infrastructure import (
    Neo4jConnectionStore,
    Neo4jProfileDirectory,
    ensure_connection_constraints,
    ensure_profile_constraints,
)

BASE = datetime(2026, 1, 1, tzinfo=timezone.utc)
LATER = datetime(2030, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def neo4j_driver():
    from testcontainers.neo4j import Neo4jContainer

    with Neo4jContainer() as neo4j:
        driver = neo4j.get_driver()
        try:
            yield driver
        finally:
            driver.close()


@pytest.fixture
def clean_neo4j(neo4j_driver):
    """Clear the graph before each test so tests are independent."""
    with neo4j_driver.session() as session:
        session.run("MATCH (n) DETACH DELETE n")
    ensure_connection_constraints(neo4j_driver)
    ensure_profile_constraints(neo4j_driver)
    yield neo4j_driver


def _seed(driver, count: int = 4) -> Neo4jProfileDirectory:
    directory = Neo4jProfileDirectory(driver)
    for i in range(1, count + 1):
        directory.add(
            Profile(
                id=f"p{i}",
                name=f"Founder {i}",
                interests={"fintech"},
                startup_name=f"Startup {i}",
                profile_completed=True,
                created_at=BASE + timedelta(minutes=i),
            )
        )
    return directory


def test_insert_get_find_between(clean_neo4j):
    store = Neo4jConnectionStore(clean_neo4j)
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)

    found = store.get(conn.id)
    assert found is not None
    assert found.id == conn.id
    assert found.status is ConnectionStatus.PENDING
    assert found.created_at == conn.created_at
    assert store.find_between("b", "a").id == conn.id
    assert [c.id for c in store.list_for_profile("b")] == [conn.id]
    assert store.get("missing") is None


def test_pair_constraint_rejects_reverse_insert(clean_neo4j):
    store = Neo4jConnectionStore(clean_neo4j)
    store.insert(Connection(requester_id="a", receiver_id="b"))
    with pytest.raises(DuplicatePairError):
        store.insert(Connection(requester_id="b", receiver_id="a"))


def test_transition_and_delete_are_conditional(clean_neo4j):
    store = Neo4jConnectionStore(clean_neo4j)
    conn = Connection(requester_id="a", receiver_id="b")
    store.insert(conn)

    updated = store.transition(
        conn.id, ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED, LATER
    )
    assert updated is not None
    assert updated.status is ConnectionStatus.ACCEPTED
    assert updated.updated_at == LATER
    assert (
        store.transition(conn.id, ConnectionStatus.PENDING, ConnectionStatus.REJECTED, LATER)
        is None
    )

    assert store.delete_if(conn.id, ConnectionStatus.PENDING) is False
    assert store.delete_if(conn.id, ConnectionStatus.ACCEPTED) is True
    assert store.get(conn.id) is None
    store.insert(Connection(requester_id="b", receiver_id="a"))


def test_profile_directory_roundtrip_and_completed_order(clean_neo4j):
    directory = _seed(clean_neo4j)
    directory.add(Profile(id="draft", name="Draft", created_at=BASE))

    p1 = directory.get_profile("p1")
    assert p1 is not None
    assert p1.name == "Founder 1"
    assert p1.interests == frozenset({"fintech"})
    assert p1.startup_name == "Startup 1"
    assert p1.created_at == BASE + timedelta(minutes=1)
    assert directory.get_profile("nope") is None

    completed = directory.get_completed_profiles(["p2"], 10)
    assert [p.id for p in completed] == ["p1", "p3", "p4"]


def test_lifecycle_through_services(clean_neo4j):
    directory = _seed(clean_neo4j)
    store = Neo4jConnectionStore(clean_neo4j)
    service = ConnectionService(store, directory)
    discovery = DiscoveryService(store, directory)

    created = service.create_request("p1", "p2")
    assert isinstance(created, RequestCreated)
    assert isinstance(service.create_request("p2", "p1"), DuplicateConnection)

    candidates = discovery.get_candidates("p1")
    assert isinstance(candidates, Candidates)
    assert [p.id for p in candidates.profiles] == ["p3", "p4"]

    assert isinstance(service.withdraw(created.connection.id, "p1"), ConnectionDeleted)
    assert isinstance(service.withdraw(created.connection.id, "p1"), NotFoundError)
    assert "p2" in [p.id for p in discovery.get_candidates("p1").profiles]


def test_concurrent_accept_and_withdraw(clean_neo4j):
    directory = _seed(clean_neo4j, count=2)
    store = Neo4jConnectionStore(clean_neo4j)
    service = ConnectionService(store, directory)
    cid = service.create_request("p1", "p2").connection.id
    barrier = threading.Barrier(2)
    results = {}

    def run(name, fn):
        barrier.wait()
        results[name] = fn()

    threads = [
        threading.Thread(target=run, args=("accept", lambda: service.accept(cid, "p2"))),
        threading.Thread(target=run, args=("withdraw", lambda: service.withdraw(cid, "p1"))),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    accepted = isinstance(results["accept"], ConnectionUpdated)
    withdrawn = isinstance(results["withdraw"], ConnectionDeleted)
    assert accepted != withdrawn
    if accepted:
        assert isinstance(results["withdraw"], NotPending)
    else:
        assert isinstance(results["accept"], (NotPending, NotFoundError))
