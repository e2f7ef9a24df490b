"""Assemble the canonical, de-duplicated view of a cluster."""

from contactlink.application.dto import IdentifyResult
from contactlink.domain import Contact


def _distinct(values: list[str | None]) -> list[str]:
    out: list[str] = []
    for value in values:
        if value is not None and value not in out:
            out.append(value)
    return out


def build_response(primary: Contact, members: list[Contact]) -> IdentifyResult:
    """Primary's email/phone first, then the other members' values in member order."""
    others = [c for c in members if c.id != primary.id]
    return IdentifyResult(
        primary_contact_id=primary.id,
        emails=_distinct([primary.email] + [c.email for c in others]),
        phone_numbers=_distinct([primary.phone_number] + [c.phone_number for c in others]),
        secondary_contact_ids=[c.id for c in members if not c.is_primary],
    )
