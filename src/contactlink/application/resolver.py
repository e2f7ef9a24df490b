"""Cluster resolution: find the true primary of every touched cluster and merge them.

Clusters are one-level trees held together by linked_id. The oldest primary
(created_at, then smallest id) survives; every other primary is demoted and its
secondaries are re-linked straight to the survivor, so depth never exceeds one.
"""

import logging

from contactlink.application.dto import ContactFilter, ContactUpdate, ResolvedCluster
from contactlink.application.errors import InconsistentState, NoExistingCluster
from contactlink.application.matcher import find_matches
from contactlink.application.ports import ContactTransaction
from contactlink.domain import SECONDARY, Contact

logger = logging.getLogger(__name__)


def cluster_roots(matches: list[Contact]) -> list[int]:
    """Distinct root ids of the matched contacts, in first-seen order."""
    roots: list[int] = []
    for contact in matches:
        root = contact.root_id
        if root is None:
            logger.error("Secondary contact %s has no linked_id", contact.id)
            raise InconsistentState(f"Secondary contact {contact.id} is not linked to a primary.")
        if root not in roots:
            roots.append(root)
    return roots


def lock_touched_clusters(
    tx: ContactTransaction,
    email: str | None,
    phone_number: str | None,
    matches: list[Contact],
) -> list[Contact]:
    """Lock every root the request touches, then return matches read under those locks.

    Each round locks its roots in ascending id order. A concurrent merge may re-link a
    match to a root we have not locked yet; matching repeats until every root it reports
    is locked.
    """
    locked: set[int] = set()
    while True:
        pending = sorted(root for root in cluster_roots(matches) if root not in locked)
        if not pending:
            return matches
        tx.lock_contacts(pending)
        locked.update(pending)
        matches = find_matches(tx, email, phone_number)


def select_true_primary(candidates: list[Contact]) -> Contact:
    """Oldest primary among the candidates; equal created_at resolves to the smallest id."""
    primaries = [c for c in candidates if c.is_primary]
    if not primaries:
        ids = [c.id for c in candidates]
        logger.error("No primary among cluster candidates %s", ids)
        raise InconsistentState(f"Cluster candidates {ids} contain no primary contact.")
    return min(primaries, key=lambda c: (c.created_at, c.id))


def cluster_members(tx: ContactTransaction, root_ids: list[int]) -> list[Contact]:
    """The roots themselves plus everything linked to them."""
    ids = tuple(root_ids)
    return tx.find_contacts(ContactFilter(ids=ids, linked_ids=ids))


def merge_into(tx: ContactTransaction, primary: Contact, stale: Contact) -> int:
    """Demote a stale primary under the true primary and re-link its secondaries."""
    tx.update_contact(stale.id, ContactUpdate(linked_id=primary.id, link_precedence=SECONDARY))
    return tx.update_contacts_where(
        ContactFilter(linked_ids=(stale.id,)), ContactUpdate(linked_id=primary.id)
    )


def resolve_cluster(tx: ContactTransaction, matches: list[Contact]) -> ResolvedCluster:
    if not matches:
        raise NoExistingCluster("No contact matches the request.")

    candidates = cluster_members(tx, cluster_roots(matches))
    primary = select_true_primary(candidates)

    for stale in candidates:
        if stale.is_primary and stale.id != primary.id:
            relinked = merge_into(tx, primary, stale)
            logger.info(
                "Merged cluster %s into %s (%d secondaries re-linked)",
                stale.id,
                primary.id,
                relinked,
            )

    return ResolvedCluster(primary=primary, members=cluster_members(tx, [primary.id]))
