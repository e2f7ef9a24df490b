"""Application ports (interfaces). Implemented by infrastructure adapters."""

from contextlib import AbstractContextManager
from typing import Protocol

from contactlink.application.dto import ContactFilter, ContactUpdate, NewContact
from contactlink.domain import Contact


class ContactTransaction(Protocol):
    """Reads and writes contacts inside one atomic unit. Tombstoned contacts are never visible."""

    def find_contacts(self, where: ContactFilter) -> list[Contact]:
        """Return non-deleted contacts matching the filter, ordered by created_at then id."""
        ...

    def create_contact(self, fields: NewContact) -> Contact:
        """Create a contact. The store assigns id, created_at and updated_at."""
        ...

    def update_contact(self, contact_id: int, changes: ContactUpdate) -> None:
        """Apply changes to one non-deleted contact and bump its updated_at."""
        ...

    def update_contacts_where(self, where: ContactFilter, changes: ContactUpdate) -> int:
        """Apply changes to every non-deleted contact matching the filter. Returns the count."""
        ...

    def lock_contacts(self, contact_ids: list[int]) -> None:
        """Take an exclusive lock on the given contacts, held until the transaction ends."""
        ...


class ContactStore(Protocol):
    """Hands out transactions. Commits when the block exits cleanly, rolls back otherwise."""

    def transaction(self) -> AbstractContextManager[ContactTransaction]:
        ...
