"""Identify use case: match -> resolve (merge) -> conditional create -> response, in one transaction."""

import logging
from typing import Any

from contactlink.application.dto import IdentifyResult
from contactlink.application.errors import InvalidRequest, NoExistingCluster, StoreConflict
from contactlink.application.linking import create_primary, maybe_create_secondary
from contactlink.application.matcher import find_matches
from contactlink.application.ports import ContactStore
from contactlink.application.resolver import lock_touched_clusters, resolve_cluster
from contactlink.application.response import build_response

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3


def _clean_identifier(name: str, value: Any) -> str | None:
    """None and "" mean absent; anything else must be a string."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRequest(f"'{name}' must be a string")
    return value or None


class IdentityService:
    """Resolves a contact reference to its identity cluster, merging clusters when needed."""

    def __init__(self, store: ContactStore, *, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        self._store = store
        self._max_attempts = max(1, max_attempts)

    def identify(self, email: Any = None, phone_number: Any = None) -> IdentifyResult:
        """Return the cluster the identifiers belong to, creating or linking records as required.

        Every store call runs inside a single transaction: an exception at any step
        rolls back all demotions, re-links and creations of this request. A transaction
        aborted on a lock conflict is re-run from scratch, up to max_attempts times.
        """
        email = _clean_identifier("email", email)
        phone_number = _clean_identifier("phoneNumber", phone_number)
        if email is None and phone_number is None:
            raise InvalidRequest("At least one of 'email' or 'phoneNumber' must be provided")

        attempt = 1
        while True:
            try:
                return self._reconcile(email, phone_number)
            except StoreConflict as exc:
                if attempt >= self._max_attempts:
                    raise
                logger.warning("Identify attempt %d hit a lock conflict, retrying: %s", attempt, exc)
                attempt += 1

    def _reconcile(self, email: str | None, phone_number: str | None) -> IdentifyResult:
        with self._store.transaction() as tx:
            matches = find_matches(tx, email, phone_number)
            matches = lock_touched_clusters(tx, email, phone_number, matches)
            try:
                cluster = resolve_cluster(tx, matches)
            except NoExistingCluster:
                contact = create_primary(tx, email, phone_number)
                return build_response(contact, [contact])
            members = maybe_create_secondary(
                tx, cluster.primary, cluster.members, email, phone_number
            )
            return build_response(cluster.primary, members)
