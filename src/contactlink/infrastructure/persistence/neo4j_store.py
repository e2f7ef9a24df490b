"""Neo4j implementation of ContactStore.
Each contact is a (:Contact) node carrying the record's properties; cluster links live in
the linkedId property, not in relationships. Ids come from a (:ContactSequence) counter node
bumped inside the creating transaction. Timestamps are stored as ISO-8601 strings with
microseconds so ORDER BY createdAt sorts chronologically.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from neo4j.exceptions import DriverError, Neo4jError, TransientError

from contactlink.application.dto import ContactFilter, ContactUpdate, NewContact
from contactlink.application.errors import StoreConflict, StoreTimeout, StoreUnavailable
from contactlink.domain import Contact

logger = logging.getLogger(__name__)

_SCHEMA_QUERIES = (
    "CREATE CONSTRAINT contact_id_unique IF NOT EXISTS FOR (c:Contact) REQUIRE c.id IS UNIQUE",
    "CREATE CONSTRAINT contact_sequence_unique IF NOT EXISTS FOR (s:ContactSequence) REQUIRE s.name IS UNIQUE",
    "CREATE INDEX contact_email IF NOT EXISTS FOR (c:Contact) ON (c.email)",
    "CREATE INDEX contact_phone_number IF NOT EXISTS FOR (c:Contact) ON (c.phoneNumber)",
    "CREATE INDEX contact_linked_id IF NOT EXISTS FOR (c:Contact) ON (c.linkedId)",
)

_FILTER = """
c.deletedAt IS NULL AND (
    c.email IN $emails
    OR c.phoneNumber IN $phone_numbers
    OR c.id IN $ids
    OR c.linkedId IN $linked_ids
)
"""

_FIND_QUERY = f"""
MATCH (c:Contact)
WHERE {_FILTER}
RETURN c
ORDER BY c.createdAt, c.id
"""

_CREATE_QUERY = """
MERGE (seq:ContactSequence {name: 'contact'})
ON CREATE SET seq.value = 0
SET seq.value = seq.value + 1
WITH seq.value AS next_id
CREATE (c:Contact {
    id: next_id,
    email: $email,
    phoneNumber: $phone_number,
    linkedId: $linked_id,
    linkPrecedence: $link_precedence,
    createdAt: $now,
    updatedAt: $now
})
RETURN c
"""

_UPDATE_ONE_QUERY = """
MATCH (c:Contact {id: $id})
WHERE c.deletedAt IS NULL
SET c.linkedId = coalesce($linked_id, c.linkedId),
    c.linkPrecedence = coalesce($link_precedence, c.linkPrecedence),
    c.updatedAt = $now
"""

_UPDATE_WHERE_QUERY = f"""
MATCH (c:Contact)
WHERE {_FILTER}
SET c.linkedId = coalesce($linked_id, c.linkedId),
    c.linkPrecedence = coalesce($link_precedence, c.linkPrecedence),
    c.updatedAt = $now
RETURN count(c) AS updated
"""

# Writing a property takes the node's write lock until the transaction ends.
_LOCK_QUERY = """
MATCH (c:Contact)
WHERE c.id IN $ids
WITH c
ORDER BY c.id
SET c._lock = true
REMOVE c._lock
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _iso_to_datetime(s: str | None) -> datetime | None:
    if s is None:
        return None
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _filter_params(where: ContactFilter) -> dict:
    return {
        "emails": list(where.emails),
        "phone_numbers": list(where.phone_numbers),
        "ids": list(where.ids),
        "linked_ids": list(where.linked_ids),
    }


def _record_to_contact(record) -> Contact:
    c = record["c"]
    return Contact(
        id=c["id"],
        email=c.get("email"),
        phone_number=c.get("phoneNumber"),
        linked_id=c.get("linkedId"),
        link_precedence=c["linkPrecedence"],
        created_at=_iso_to_datetime(c["createdAt"]),
        updated_at=_iso_to_datetime(c.get("updatedAt")),
        deleted_at=_iso_to_datetime(c.get("deletedAt")),
    )


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate driver failures into store errors the service understands."""
    try:
        yield
    except Neo4jError as exc:
        if "TransactionTimedOut" in (exc.code or ""):
            raise StoreTimeout(str(exc)) from exc
        if isinstance(exc, TransientError):
            # DeadlockDetected and other transient errors; the whole request can be re-run.
            raise StoreConflict(str(exc)) from exc
        raise StoreUnavailable(str(exc)) from exc
    except DriverError as exc:
        raise StoreUnavailable(str(exc)) from exc


def ensure_contact_schema(driver) -> None:
    """Create the id uniqueness constraint and the lookup indexes if missing."""
    with _store_errors(), driver.session() as session:
        for query in _SCHEMA_QUERIES:
            session.run(query).consume()
    logger.info("Contact schema ensured (%d statements)", len(_SCHEMA_QUERIES))


class Neo4jContactTransaction:
    """Runs the store contract's reads and writes on one explicit Neo4j transaction."""

    def __init__(self, tx) -> None:
        self._tx = tx

    def find_contacts(self, where: ContactFilter) -> list[Contact]:
        if where.is_empty():
            return []
        result = self._tx.run(_FIND_QUERY, **_filter_params(where))
        return [_record_to_contact(rec) for rec in result]

    def create_contact(self, fields: NewContact) -> Contact:
        result = self._tx.run(
            _CREATE_QUERY,
            email=fields.email,
            phone_number=fields.phone_number,
            linked_id=fields.linked_id,
            link_precedence=fields.link_precedence,
            now=_now_iso(),
        )
        return _record_to_contact(result.single())

    def update_contact(self, contact_id: int, changes: ContactUpdate) -> None:
        self._tx.run(
            _UPDATE_ONE_QUERY,
            id=contact_id,
            linked_id=changes.linked_id,
            link_precedence=changes.link_precedence,
            now=_now_iso(),
        ).consume()

    def update_contacts_where(self, where: ContactFilter, changes: ContactUpdate) -> int:
        if where.is_empty():
            return 0
        result = self._tx.run(
            _UPDATE_WHERE_QUERY,
            **_filter_params(where),
            linked_id=changes.linked_id,
            link_precedence=changes.link_precedence,
            now=_now_iso(),
        )
        record = result.single()
        return record["updated"] if record else 0

    def lock_contacts(self, contact_ids: list[int]) -> None:
        if contact_ids:
            self._tx.run(_LOCK_QUERY, ids=list(contact_ids)).consume()


class Neo4jContactStore:
    """Stores contacts in Neo4j. Each transaction() block is one Neo4j transaction
    (read committed; node write locks held until commit)."""

    def __init__(self, driver: object, *, database: str | None = None, timeout: float | None = None) -> None:
        self._driver = driver
        self._database = database
        self._timeout = timeout

    @contextmanager
    def transaction(self) -> Iterator[Neo4jContactTransaction]:
        with _store_errors(), self._driver.session(database=self._database) as session:
            # Leaving the block without commit() rolls the transaction back.
            with session.begin_transaction(timeout=self._timeout) as tx:
                yield Neo4jContactTransaction(tx)
                tx.commit()

    def get_by_id(self, contact_id: int) -> Contact | None:
        with self.transaction() as tx:
            found = tx.find_contacts(ContactFilter(ids=(contact_id,)))
        return found[0] if found else None
