"""Infrastructure layer: concrete implementations of application ports."""

from contactlink.infrastructure.memory_store import InMemoryContactStore
from contactlink.infrastructure.persistence.neo4j_store import (
    Neo4jContactStore,
    ensure_contact_schema,
)

__all__ = [
    "InMemoryContactStore",
    "Neo4jContactStore",
    "ensure_contact_schema",
]
