"""
Base classes for object store clients.

An object store is a flat, key-addressed blob store: whole-object writes,
whole or ranged reads, deletes, copies and prefix listings. Nothing can be
modified in place. Everything in blobfs.vfs is built on top of the small
contract defined here, so a new backend only has to implement
ObjectStoreClient.

Consistency requirement: a store must offer strong read-after-write
consistency. The file layer reconstructs untouched byte ranges from the
object generation committed by the previous mutation.
"""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import BinaryIO, Iterator, Optional

from blobfs.errors import EmptyObjectNameError, NoContainerError


@dataclass(frozen=True)
class ObjectKey:
    """Address of a remote object or virtual-folder prefix.

    ``path`` never starts with the separator. An empty ``path`` is the
    container root.
    """
    container: str
    path: str = ""

    @property
    def is_root(self) -> bool:
        return self.path == ""

    def as_directory(self, separator: str = "/") -> "ObjectKey":
        """Key of the directory marker for this path (trailing separator)."""
        if self.path and not self.path.endswith(separator):
            return ObjectKey(self.container, self.path + separator)
        return self

    def child(self, name: str, separator: str = "/") -> "ObjectKey":
        if not self.path:
            return ObjectKey(self.container, name)
        return ObjectKey(self.container, self.path.rstrip(separator) + separator + name)

    def __str__(self) -> str:
        return f"{self.container}/{self.path}" if self.path else self.container


@dataclass(frozen=True)
class ObjectAttrs:
    """Metadata reported by a head request."""
    name: str
    size: int
    updated: datetime


@dataclass(frozen=True)
class ListEntry:
    """One item of a prefix listing.

    Exactly one of ``name`` (a real object) or ``prefix`` (a common prefix,
    i.e. a virtual subfolder, ending in the delimiter) is set.
    """
    name: str = ""
    prefix: str = ""
    size: int = 0
    updated: Optional[datetime] = None

    @property
    def is_prefix(self) -> bool:
        return not self.name and bool(self.prefix)


class ObjectWriter(ABC):
    """Write sink for a new object generation.

    Bytes are buffered client-side and only become the object on close().
    abort() discards them; the previous generation stays untouched.
    """

    def __init__(self, key: ObjectKey):
        self.key = key
        self.closed = False

    @abstractmethod
    def write(self, data: bytes) -> int:
        pass

    @abstractmethod
    def _commit(self) -> None:
        pass

    @abstractmethod
    def _discard(self) -> None:
        pass

    def close(self) -> None:
        """Commit the buffered bytes as the object's new content."""
        if self.closed:
            return
        self.closed = True
        self._commit()

    def abort(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._discard()

    def __enter__(self) -> "ObjectWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()


class RangeReader(io.RawIOBase):
    """Limits an underlying binary stream to ``length`` bytes (-1: to EOF)."""

    def __init__(self, raw: BinaryIO, length: int = -1):
        super().__init__()
        self._raw = raw
        self._remaining = length

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if self._remaining == 0:
            return 0
        want = len(buffer)
        if self._remaining > 0:
            want = min(want, self._remaining)
        data = self._raw.read(want)
        n = len(data)
        buffer[:n] = data
        if self._remaining > 0:
            self._remaining -= n
        return n

    def close(self) -> None:
        if not self.closed:
            self._raw.close()
        super().close()


def check_key(key: ObjectKey) -> None:
    """Reject keys a store cannot address."""
    if not key.container:
        raise NoContainerError(str(key))
    if not key.path:
        raise EmptyObjectNameError(key.container)


class ObjectStoreClient(ABC):
    """Abstract object store client.

    Implementations raise blobfs.errors.NotFoundError for a missing object
    and EmptyObjectNameError for a key with an empty path. Any other error
    is the backend's own and propagates unchanged.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name, e.g. "memory"."""
        pass

    @abstractmethod
    def head(self, key: ObjectKey) -> ObjectAttrs:
        """Return the metadata of an object."""
        pass

    @abstractmethod
    def get_range(self, key: ObjectKey, offset: int = 0, length: int = -1) -> BinaryIO:
        """Open a read of ``length`` bytes starting at ``offset``.

        ``length == -1`` reads to the end of the object. Ranges past the
        end yield an empty stream.
        """
        pass

    @abstractmethod
    def new_writer(self, key: ObjectKey) -> ObjectWriter:
        """Open a writer that replaces the object when closed."""
        pass

    @abstractmethod
    def delete(self, key: ObjectKey) -> None:
        pass

    @abstractmethod
    def iter_objects(self, container: str) -> Iterator[ObjectAttrs]:
        """Yield every object of a container, in backend order."""
        pass

    def list_prefix(
        self,
        container: str,
        prefix: str = "",
        delimiter: Optional[str] = None,
    ) -> Iterator[ListEntry]:
        """List objects whose name starts with ``prefix``.

        With a delimiter, names that contain it after the prefix are rolled
        up into a single common-prefix entry (one per distinct prefix), the
        way object stores present one "directory level".
        """
        if not container:
            raise NoContainerError(prefix)

        seen_prefixes = set()
        for attrs in self.iter_objects(container):
            if not attrs.name.startswith(prefix):
                continue

            if delimiter:
                rest = attrs.name[len(prefix):]
                idx = rest.find(delimiter)
                if idx >= 0:
                    # a marker named exactly like the prefix has rest == "" and stays an object
                    common = prefix + rest[:idx + len(delimiter)]
                    if common not in seen_prefixes:
                        seen_prefixes.add(common)
                        yield ListEntry(prefix=common)
                    continue

            yield ListEntry(name=attrs.name, size=attrs.size, updated=attrs.updated)

    def copy(self, src: ObjectKey, dst: ObjectKey) -> None:
        """Server-side copy; the default streams through the client."""
        check_key(src)
        check_key(dst)
        with self.get_range(src) as reader:
            with self.new_writer(dst) as writer:
                while True:
                    chunk = reader.read(64 * 1024)
                    if not chunk:
                        break
                    writer.write(chunk)
