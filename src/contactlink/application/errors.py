"""Errors raised by the reconciliation flow and the store adapters."""


class ReconciliationError(Exception):
    """Base class for every error raised while identifying a contact."""


class InvalidRequest(ReconciliationError, ValueError):
    """Neither identifier was supplied, or a supplied identifier is not a string."""


class NoExistingCluster(ReconciliationError):
    """No contact matched the request; the caller creates a fresh primary."""


class InconsistentState(ReconciliationError):
    """Stored links violate the cluster invariants (e.g. a cluster without a primary)."""


class StoreUnavailable(ReconciliationError):
    """The contact store failed or could not be reached."""


class StoreTimeout(StoreUnavailable):
    """A store call or transaction exceeded its timeout."""


class StoreConflict(StoreUnavailable):
    """The store aborted the transaction on a lock conflict (e.g. a deadlock); retrying is safe."""
