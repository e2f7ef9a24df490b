"""Data transfer objects shared by the use case and the store adapters."""

from dataclasses import dataclass, field
from typing import Any

from contactlink.domain import PRIMARY, Contact


@dataclass(frozen=True)
class ContactFilter:
    """Selects non-deleted contacts matching ANY of the given values.

    An empty filter matches nothing.
    """

    emails: tuple[str, ...] = ()
    phone_numbers: tuple[str, ...] = ()
    ids: tuple[int, ...] = ()
    linked_ids: tuple[int, ...] = ()

    def is_empty(self) -> bool:
        return not (self.emails or self.phone_numbers or self.ids or self.linked_ids)

    def matches(self, contact: Contact) -> bool:
        return (
            (contact.email is not None and contact.email in self.emails)
            or (contact.phone_number is not None and contact.phone_number in self.phone_numbers)
            or contact.id in self.ids
            or (contact.linked_id is not None and contact.linked_id in self.linked_ids)
        )


@dataclass(frozen=True)
class NewContact:
    """Fields of a contact about to be created. Id and timestamps come from the store."""

    email: str | None = None
    phone_number: str | None = None
    linked_id: int | None = None
    link_precedence: str = PRIMARY


@dataclass(frozen=True)
class ContactUpdate:
    """Link changes applied to existing contacts. None leaves the field unchanged."""

    linked_id: int | None = None
    link_precedence: str | None = None


@dataclass(frozen=True)
class ResolvedCluster:
    primary: Contact
    members: list[Contact] = field(default_factory=list)


@dataclass(frozen=True)
class IdentifyResult:
    """Canonical view of a cluster returned to the caller."""

    primary_contact_id: int
    emails: list[str] = field(default_factory=list)
    phone_numbers: list[str] = field(default_factory=list)
    secondary_contact_ids: list[int] = field(default_factory=list)

    def as_payload(self) -> dict[str, Any]:
        return {
            "contact": {
                "primaryContactId": self.primary_contact_id,
                "emails": list(self.emails),
                "phoneNumbers": list(self.phone_numbers),
                "secondaryContactIds": list(self.secondary_contact_ids),
            }
        }
