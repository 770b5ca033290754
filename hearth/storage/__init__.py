"""
Storage abstractions.

- MetadataStorage: document store interface
- BoundedStorage: timeout wrapper used for all request-path access
- InMemoryMetadataStorage: development / test backend
"""

from hearth.storage.base import (
    BoundedStorage,
    Collections,
    MetadataStorage,
)
from hearth.storage.local import InMemoryMetadataStorage

__all__ = [
    "BoundedStorage",
    "Collections",
    "MetadataStorage",
    "InMemoryMetadataStorage",
]
