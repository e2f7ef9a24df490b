"""Find existing contacts that share an email or phone number with the request."""

from contactlink.application.dto import ContactFilter
from contactlink.application.errors import InvalidRequest
from contactlink.application.ports import ContactTransaction
from contactlink.domain import Contact


def match_filter(email: str | None, phone_number: str | None) -> ContactFilter:
    """Filter on exact email OR exact phone number; a predicate exists only for a supplied value."""
    if email is None and phone_number is None:
        raise InvalidRequest("At least one of 'email' or 'phoneNumber' must be provided")
    return ContactFilter(
        emails=(email,) if email is not None else (),
        phone_numbers=(phone_number,) if phone_number is not None else (),
    )


def find_matches(
    tx: ContactTransaction, email: str | None, phone_number: str | None
) -> list[Contact]:
    return tx.find_contacts(match_filter(email, phone_number))
