"""
Contactlink core: clean-architecture layout.

- domain: entities (Contact). No outer dependencies.
- application: use case (IdentityService), ports (ContactStore), DTOs, errors.
- infrastructure: adapters (InMemoryContactStore, Neo4jContactStore).
"""

from contactlink.application import (
    ContactStore,
    IdentifyResult,
    IdentityService,
    InconsistentState,
    InvalidRequest,
    ReconciliationError,
    StoreTimeout,
    StoreUnavailable,
)
from contactlink.domain import PRIMARY, SECONDARY, Contact
from contactlink.infrastructure import InMemoryContactStore, Neo4jContactStore

__all__ = [
    "Contact",
    "ContactStore",
    "IdentifyResult",
    "IdentityService",
    "InMemoryContactStore",
    "InconsistentState",
    "InvalidRequest",
    "Neo4jContactStore",
    "PRIMARY",
    "ReconciliationError",
    "SECONDARY",
    "StoreTimeout",
    "StoreUnavailable",
]
