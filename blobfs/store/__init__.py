"""Object store clients.

The file layer only talks to ObjectStoreClient. Two stores ship with blobfs:

    - MemoryObjectStore: process-local, for tests and scratch work
    - LocalObjectStore: a directory on disk holding one flat namespace per container

Cloud SDK bindings implement the same abstract base class.
"""

from blobfs.store.base import (
    ListEntry,
    ObjectAttrs,
    ObjectKey,
    ObjectStoreClient,
    ObjectWriter,
    RangeReader,
)
from blobfs.store.memory import MemoryObjectStore
from blobfs.store.local import LocalObjectStore

BACKENDS = ("local", "memory")


def open_store(config) -> ObjectStoreClient:
    """Build the store described by a StoreConfig.

    Args:
        config: blobfs.config.StoreConfig

    Returns:
        ObjectStoreClient instance

    Raises:
        ValueError: Unknown backend name
    """
    if config.backend == "memory":
        return MemoryObjectStore()
    if config.backend == "local":
        return LocalObjectStore(config.root)
    raise ValueError(f"Unknown store backend '{config.backend}'. Choose one of: {', '.join(BACKENDS)}")


__all__ = [
    "ObjectKey",
    "ObjectAttrs",
    "ListEntry",
    "ObjectStoreClient",
    "ObjectWriter",
    "RangeReader",
    "MemoryObjectStore",
    "LocalObjectStore",
    "open_store",
    "BACKENDS",
]
