"""In-memory implementation of ContactStore (no DB)."""

import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone

from contactlink.application.dto import ContactFilter, ContactUpdate, NewContact
from contactlink.domain import Contact


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _apply(contact: Contact, changes: ContactUpdate, now: datetime) -> Contact:
    return replace(
        contact,
        linked_id=changes.linked_id if changes.linked_id is not None else contact.linked_id,
        link_precedence=changes.link_precedence or contact.link_precedence,
        updated_at=now,
    )


class _InMemoryTransaction:
    """Works on a private copy of the contacts; the store swaps it in on commit."""

    def __init__(self, contacts: dict[int, Contact], next_id: int, clock: Callable[[], datetime]) -> None:
        self.contacts = contacts
        self.next_id = next_id
        self._clock = clock

    def _live(self) -> list[Contact]:
        return [c for c in self.contacts.values() if c.deleted_at is None]

    def find_contacts(self, where: ContactFilter) -> list[Contact]:
        found = [c for c in self._live() if where.matches(c)]
        return sorted(found, key=lambda c: (c.created_at, c.id))

    def create_contact(self, fields: NewContact) -> Contact:
        now = self._clock()
        contact = Contact(
            id=self.next_id,
            email=fields.email,
            phone_number=fields.phone_number,
            linked_id=fields.linked_id,
            link_precedence=fields.link_precedence,
            created_at=now,
            updated_at=now,
        )
        self.contacts[contact.id] = contact
        self.next_id += 1
        return contact

    def update_contact(self, contact_id: int, changes: ContactUpdate) -> None:
        contact = self.contacts.get(contact_id)
        if contact is None or contact.deleted_at is not None:
            return
        self.contacts[contact_id] = _apply(contact, changes, self._clock())

    def update_contacts_where(self, where: ContactFilter, changes: ContactUpdate) -> int:
        now = self._clock()
        targets = [c for c in self._live() if where.matches(c)]
        for contact in targets:
            self.contacts[contact.id] = _apply(contact, changes, now)
        return len(targets)

    def lock_contacts(self, contact_ids: list[int]) -> None:
        # The store lock already serialises whole transactions.
        return None


class InMemoryContactStore:
    """Stores contacts in memory. One transaction at a time; commit replaces the whole table."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._by_id: dict[int, Contact] = {}
        self._next_id = 1
        self._clock = clock or _utcnow
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self) -> Iterator[_InMemoryTransaction]:
        with self._lock:
            tx = _InMemoryTransaction(dict(self._by_id), self._next_id, self._clock)
            yield tx
            self._by_id = tx.contacts
            self._next_id = tx.next_id

    def get_by_id(self, contact_id: int) -> Contact | None:
        return self._by_id.get(contact_id)

    def list_all(self) -> list[Contact]:
        """Every stored contact, tombstoned ones included, in id order."""
        with self._lock:
            return [self._by_id[cid] for cid in sorted(self._by_id)]

    def tombstone(self, contact_id: int) -> bool:
        """Soft-delete a contact the way the external retention process does. False if unknown."""
        with self._lock:
            contact = self._by_id.get(contact_id)
            if contact is None:
                return False
            self._by_id[contact_id] = replace(contact, deleted_at=self._clock())
            return True
