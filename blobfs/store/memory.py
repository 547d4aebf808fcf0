"""In-memory object store.

Used as the test double for the file layer and as an ephemeral backend.
Objects live in a dict per container; listing follows insertion order,
which (like real stores) is not name order.
"""

import io
import logging
import threading
from datetime import datetime, timezone
from typing import BinaryIO, Dict, Iterator, Tuple

from blobfs.errors import NotFoundError
from blobfs.store.base import (
    ObjectAttrs,
    ObjectKey,
    ObjectStoreClient,
    ObjectWriter,
    check_key,
)

logger = logging.getLogger(__name__)


class _MemoryWriter(ObjectWriter):
    def __init__(self, store: "MemoryObjectStore", key: ObjectKey):
        super().__init__(key)
        self._store = store
        self._buffer = io.BytesIO()

    def write(self, data: bytes) -> int:
        return self._buffer.write(data)

    def _commit(self) -> None:
        self._store._put(self.key, self._buffer.getvalue())

    def _discard(self) -> None:
        self._buffer = io.BytesIO()


class MemoryObjectStore(ObjectStoreClient):
    """Object store held entirely in process memory.

    Containers are created implicitly on first write.
    """

    def __init__(self):
        self._containers: Dict[str, Dict[str, Tuple[bytes, datetime]]] = {}
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "memory"

    def _put(self, key: ObjectKey, data: bytes) -> None:
        with self._lock:
            objects = self._containers.setdefault(key.container, {})
            # re-insert so a rewritten object moves to the end of the listing order
            objects.pop(key.path, None)
            objects[key.path] = (data, datetime.now(timezone.utc))
        logger.debug(f"Committed {len(data)} bytes to {key}")

    def _get(self, key: ObjectKey) -> Tuple[bytes, datetime]:
        check_key(key)
        with self._lock:
            try:
                return self._containers[key.container][key.path]
            except KeyError:
                raise NotFoundError(str(key)) from None

    def head(self, key: ObjectKey) -> ObjectAttrs:
        data, updated = self._get(key)
        return ObjectAttrs(name=key.path, size=len(data), updated=updated)

    def get_range(self, key: ObjectKey, offset: int = 0, length: int = -1) -> BinaryIO:
        data, _ = self._get(key)
        end = len(data) if length < 0 else offset + length
        return io.BytesIO(data[offset:end])

    def new_writer(self, key: ObjectKey) -> ObjectWriter:
        check_key(key)
        return _MemoryWriter(self, key)

    def delete(self, key: ObjectKey) -> None:
        check_key(key)
        with self._lock:
            objects = self._containers.get(key.container, {})
            if key.path not in objects:
                raise NotFoundError(str(key))
            del objects[key.path]
        logger.debug(f"Deleted {key}")

    def iter_objects(self, container: str) -> Iterator[ObjectAttrs]:
        with self._lock:
            snapshot = list(self._containers.get(container, {}).items())
        for name, (data, updated) in snapshot:
            yield ObjectAttrs(name=name, size=len(data), updated=updated)

    def copy(self, src: ObjectKey, dst: ObjectKey) -> None:
        data, _ = self._get(src)
        check_key(dst)
        self._put(dst, data)
