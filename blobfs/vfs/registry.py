"""Cache of one FileResource per ObjectKey."""

import logging
import threading
from typing import Callable, Dict, List, Optional

from blobfs.store.base import ObjectKey
from blobfs.vfs.resource import FileResource

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Hands out the shared FileResource of a key.

    Resources are reference counted by the handles using them but are kept
    after the last handle closes, so a later open reuses the same state.
    They are dropped only by evict(), when their object is removed or
    renamed. A handle releases the resource it acquired; once that resource
    has been evicted the release is ignored, so it never decrements the
    count of a newer resource cached under the same key. Evicting a
    resource that open handles still use is logged as a warning.
    """

    def __init__(self, factory: Callable[[ObjectKey], FileResource]):
        self._factory = factory
        self._resources: Dict[ObjectKey, FileResource] = {}
        self._refcounts: Dict[ObjectKey, int] = {}
        self._lock = threading.Lock()

    def acquire(self, key: ObjectKey) -> FileResource:
        with self._lock:
            resource = self._resources.get(key)
            if resource is None:
                resource = self._factory(key)
                self._resources[key] = resource
            self._refcounts[key] = self._refcounts.get(key, 0) + 1
            return resource

    def release(self, resource: FileResource) -> None:
        key = resource.key
        with self._lock:
            if self._resources.get(key) is not resource:
                return
            count = self._refcounts.get(key, 0)
            if count > 1:
                self._refcounts[key] = count - 1
            else:
                self._refcounts.pop(key, None)

    def get(self, key: ObjectKey) -> Optional[FileResource]:
        with self._lock:
            return self._resources.get(key)

    def refcount(self, key: ObjectKey) -> int:
        with self._lock:
            return self._refcounts.get(key, 0)

    def tree(self, key: ObjectKey, separator: str = "/") -> List[FileResource]:
        """Cached resources for ``key`` and every key below it."""
        prefix = key.path.rstrip(separator) + separator if key.path else ""
        with self._lock:
            return [
                resource
                for k, resource in self._resources.items()
                if k.container == key.container and (k == key or k.path.startswith(prefix))
            ]

    def evict(self, key: ObjectKey) -> None:
        """Forget a key's resource, discarding anything it has not committed."""
        with self._lock:
            resource = self._resources.pop(key, None)
            open_handles = self._refcounts.pop(key, 0)
        if resource is not None:
            if open_handles:
                logger.warning(f"Evicted {key} while {open_handles} open handle(s) still use it")
            else:
                logger.debug(f"Evicted resource for {key}")
            resource.discard()

    def evict_tree(self, key: ObjectKey, separator: str = "/") -> None:
        for resource in self.tree(key, separator):
            self.evict(resource.key)

    def flush_tree(self, key: ObjectKey, separator: str = "/") -> None:
        for resource in self.tree(key, separator):
            resource.flush()

    def flush_all(self) -> None:
        with self._lock:
            resources = list(self._resources.values())
        for resource in resources:
            resource.flush()

    def clear(self) -> None:
        with self._lock:
            resources = list(self._resources.values())
            self._resources.clear()
            self._refcounts.clear()
        for resource in resources:
            resource.discard()

    def __len__(self) -> int:
        with self._lock:
            return len(self._resources)

    def __contains__(self, key: ObjectKey) -> bool:
        with self._lock:
            return key in self._resources
