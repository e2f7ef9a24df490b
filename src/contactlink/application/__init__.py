"""Application layer: use cases, ports, and DTOs. Depends only on domain."""

from contactlink.application.dto import (
    ContactFilter,
    ContactUpdate,
    IdentifyResult,
    NewContact,
    ResolvedCluster,
)
from contactlink.application.errors import (
    InconsistentState,
    InvalidRequest,
    NoExistingCluster,
    ReconciliationError,
    StoreConflict,
    StoreTimeout,
    StoreUnavailable,
)
from contactlink.application.identity_service import IdentityService
from contactlink.application.ports import ContactStore, ContactTransaction

__all__ = [
    "ContactFilter",
    "ContactStore",
    "ContactTransaction",
    "ContactUpdate",
    "IdentifyResult",
    "IdentityService",
    "InconsistentState",
    "InvalidRequest",
    "NewContact",
    "NoExistingCluster",
    "ReconciliationError",
    "ResolvedCluster",
    "StoreConflict",
    "StoreTimeout",
    "StoreUnavailable",
]
