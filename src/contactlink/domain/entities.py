"""Domain entities: Contact and its link precedence values."""

from dataclasses import dataclass
from datetime import datetime

PRIMARY = "primary"
SECONDARY = "secondary"
LINK_PRECEDENCES = (PRIMARY, SECONDARY)


@dataclass(frozen=True)
class Contact:
    """
    One contact point record (email and/or phone) of a real customer.
    A primary is the root of its cluster; a secondary points at that root via linked_id.
    """

    id: int
    email: str | None = None
    phone_number: str | None = None
    linked_id: int | None = None
    link_precedence: str = PRIMARY
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None

    def __post_init__(self):
        if self.link_precedence not in LINK_PRECEDENCES:
            raise ValueError(f"Unknown link precedence: {self.link_precedence!r}.")
        if self.link_precedence == PRIMARY and self.linked_id is not None:
            raise ValueError("A primary contact cannot be linked to another contact.")

    @property
    def is_primary(self) -> bool:
        return self.link_precedence == PRIMARY

    @property
    def root_id(self) -> int | None:
        """Id of the cluster root: own id for a primary, linked_id for a secondary."""
        if self.is_primary:
            return self.id
        return self.linked_id
