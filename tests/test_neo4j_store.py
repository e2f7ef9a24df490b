"""Integration tests for Neo4jContactStore. Require Docker
(testcontainers)."""

import threading

import pytest

from contactlink.application import (
    ContactFilter,
    ContactUpdate,
    IdentityService,
    NewContact,
)
from contactlink.domain import PRIMARY, SECONDARY
from contactlink.infrastructure import Neo4jContactStore, ensure_contact_schema


@pytest.fixture(scope="session")
def neo4j_driver():
    from testcontainers.neo4j import Neo4jContainer

    with Neo4jContainer() as neo4j:
        driver = neo4j.get_driver()
        try:
            ensure_contact_schema(driver)
            yield driver
        finally:
            driver.close()


@pytest.fixture
def store(neo4j_driver):
    """Clear the graph before each test so tests are independent."""
    with neo4j_driver.session() as session:
        session.run("MATCH (n) DETACH DELETE n")
    return Neo4jContactStore(neo4j_driver, timeout=10)


def test_create_and_find_contacts(store):
    with store.transaction() as tx:
        a = tx.create_contact(NewContact(email="a@x.com", phone_number="111"))
        b = tx.create_contact(NewContact(phone_number="222"))
    assert (a.id, b.id) == (1, 2)
    assert a.link_precedence == PRIMARY
    assert b.email is None

    with store.transaction() as tx:
        found = tx.find_contacts(ContactFilter(emails=("a@x.com",), phone_numbers=("222",)))
    assert [c.id for c in found] == [a.id, b.id]
    assert found[0].created_at <= found[1].created_at


def test_update_where_relinks_and_counts(store):
    with store.transaction() as tx:
        root = tx.create_contact(NewContact(email="r@x.com"))
        old = tx.create_contact(NewContact(email="o@x.com"))
        child = tx.create_contact(NewContact(phone_number="1", linked_id=old.id, link_precedence=SECONDARY))
        tx.lock_contacts([root.id, old.id])
        tx.update_contact(old.id, ContactUpdate(linked_id=root.id, link_precedence=SECONDARY))
        relinked = tx.update_contacts_where(
            ContactFilter(linked_ids=(old.id,)), ContactUpdate(linked_id=root.id)
        )
    assert relinked == 1
    assert store.get_by_id(old.id).linked_id == root.id
    assert store.get_by_id(child.id).linked_id == root.id
    assert store.get_by_id(child.id).updated_at >= child.updated_at


def test_rollback_discards_writes(store):
    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            tx.create_contact(NewContact(email="a@x.com"))
            raise RuntimeError("abort")
    assert store.get_by_id(1) is None


def test_tombstoned_contact_is_invisible(store, neo4j_driver):
    with store.transaction() as tx:
        a = tx.create_contact(NewContact(email="a@x.com"))
    with neo4j_driver.session() as session:
        session.run(
            "MATCH (c:Contact {id: $id}) SET c.deletedAt = '2024-01-01T00:00:00.000000+00:00'",
            id=a.id,
        )
    assert store.get_by_id(a.id) is None


def test_identify_merges_clusters(store):
    service = IdentityService(store)
    p1 = service.identify(email="a@x.com", phone_number="111").primary_contact_id
    p2 = service.identify(email="b@x.com", phone_number="222").primary_contact_id

    result = service.identify(email="a@x.com", phone_number="222")

    assert result.primary_contact_id == p1
    assert result.secondary_contact_ids == [p2]
    assert result.emails == ["a@x.com", "b@x.com"]
    assert result.phone_numbers == ["111", "222"]
    demoted = store.get_by_id(p2)
    assert demoted.link_precedence == SECONDARY
    assert demoted.linked_id == p1


def _run_concurrently(calls) -> list:
    barrier = threading.Barrier(len(calls))
    results: list = [None] * len(calls)
    errors: list[BaseException] = []

    def worker(index: int, call) -> None:
        barrier.wait()
        try:
            results[index] = call()
        except BaseException as exc:  # re-raised in the test thread below
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results


def test_concurrent_identical_requests_create_one_secondary(store):
    service = IdentityService(store)
    primary_id = service.identify(email="a@x.com", phone_number="111").primary_contact_id

    results = _run_concurrently(
        [lambda: service.identify(email="b@x.com", phone_number="111") for _ in range(2)]
    )

    assert results[0] == results[1]
    assert results[0].primary_contact_id == primary_id
    assert len(results[0].secondary_contact_ids) == 1
    with store.transaction() as tx:
        cluster = tx.find_contacts(ContactFilter(ids=(primary_id,), linked_ids=(primary_id,)))
    assert len(cluster) == 2


def test_crossing_merges_both_succeed(store):
    service = IdentityService(store)
    p1 = service.identify(email="a@x.com", phone_number="111").primary_contact_id
    p2 = service.identify(email="b@x.com", phone_number="222").primary_contact_id
    service.identify(email="b2@x.com", phone_number="222")

    results = _run_concurrently(
        [
            lambda: service.identify(email="b2@x.com", phone_number="111"),
            lambda: service.identify(email="a@x.com", phone_number="222"),
        ]
    )

    assert [r.primary_contact_id for r in results] == [p1, p1]
    demoted = store.get_by_id(p2)
    assert demoted.link_precedence == SECONDARY
    assert demoted.linked_id == p1
