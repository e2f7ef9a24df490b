"""Domain layer: entities and value objects. No dependencies on outer layers."""

from contactlink.domain.entities import LINK_PRECEDENCES, PRIMARY, SECONDARY, Contact

__all__ = ["Contact", "LINK_PRECEDENCES", "PRIMARY", "SECONDARY"]
