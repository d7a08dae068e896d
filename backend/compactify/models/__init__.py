from compactify.models.link import Anonymous, Link, OwnedBy, Ownership
from compactify.models.principal import Principal, Provider

__all__ = [
    "Anonymous",
    "Link",
    "OwnedBy",
    "Ownership",
    "Principal",
    "Provider",
]
