"""Decide whether a request carries new information and create the contact that records it."""

import logging

from contactlink.application.dto import NewContact
from contactlink.application.ports import ContactTransaction
from contactlink.domain import PRIMARY, SECONDARY, Contact

logger = logging.getLogger(__name__)


def create_primary(
    tx: ContactTransaction, email: str | None, phone_number: str | None
) -> Contact:
    contact = tx.create_contact(
        NewContact(email=email, phone_number=phone_number, link_precedence=PRIMARY)
    )
    logger.info("Created primary contact %s", contact.id)
    return contact


def maybe_create_secondary(
    tx: ContactTransaction,
    primary: Contact,
    members: list[Contact],
    email: str | None,
    phone_number: str | None,
) -> list[Contact]:
    """Return the members, plus a new secondary when the request binds a new identifier pair.

    A single supplied identifier already matched the cluster, so only a request that
    carries both an email and a phone number can add a fact worth recording.
    """
    known_emails = {c.email for c in members if c.email is not None}
    known_phones = {c.phone_number for c in members if c.phone_number is not None}
    is_new_email = email is not None and email not in known_emails
    is_new_phone = phone_number is not None and phone_number not in known_phones

    if not (is_new_email or is_new_phone) or email is None or phone_number is None:
        return members

    secondary = tx.create_contact(
        NewContact(
            email=email,
            phone_number=phone_number,
            linked_id=primary.id,
            link_precedence=SECONDARY,
        )
    )
    logger.info("Created secondary contact %s under primary %s", secondary.id, primary.id)
    return [*members, secondary]
