"""Open modes and the per-open file handle."""

import logging
import os
from enum import Enum, Flag, auto
from typing import List, Union

from blobfs.errors import FileClosedError, OutOfRangeError, PermissionDeniedError
from blobfs.store.base import ObjectKey
from blobfs.vfs.base import FileInfo
from blobfs.vfs.resource import FileResource

logger = logging.getLogger(__name__)


class OpenFlag(Flag):
    """POSIX-style open flags, combined with ``|``."""
    READ = auto()
    WRITE = auto()
    CREATE = auto()
    TRUNCATE = auto()
    APPEND = auto()
    EXCLUSIVE = auto()


class OpenMode(Enum):
    """How a handle was opened; decided once, at open time."""
    READ_ONLY = "read_only"
    READ_WRITE = "read_write"
    CREATE = "create"
    TRUNCATE = "truncate"
    APPEND = "append"
    EXCLUSIVE = "exclusive"

    @property
    def can_write(self) -> bool:
        return self is not OpenMode.READ_ONLY

    @classmethod
    def from_flags(cls, flags: OpenFlag) -> "OpenMode":
        """Map a flag combination to a mode.

        EXCLUSIVE wins over TRUNCATE, which wins over APPEND, which wins over
        CREATE. Plain WRITE (with or without READ) is READ_WRITE.
        """
        if flags & OpenFlag.EXCLUSIVE:
            return cls.EXCLUSIVE
        if flags & OpenFlag.TRUNCATE:
            return cls.TRUNCATE
        if flags & OpenFlag.APPEND:
            return cls.APPEND
        if flags & OpenFlag.CREATE:
            return cls.CREATE
        if flags & OpenFlag.WRITE:
            return cls.READ_WRITE
        return cls.READ_ONLY

    @classmethod
    def from_string(cls, mode: str) -> "OpenMode":
        """Map a Python open() mode string ("r", "w+", "ab", ...) to a mode."""
        key = mode.replace("b", "").replace("t", "")
        try:
            return _MODE_STRINGS[key]
        except KeyError:
            raise ValueError(f"invalid mode: '{mode}'") from None


_MODE_STRINGS = {
    "r": OpenMode.READ_ONLY,
    "r+": OpenMode.READ_WRITE,
    "w": OpenMode.TRUNCATE,
    "w+": OpenMode.TRUNCATE,
    "a": OpenMode.APPEND,
    "a+": OpenMode.APPEND,
    "x": OpenMode.EXCLUSIVE,
    "x+": OpenMode.EXCLUSIVE,
}


class FileHandle:
    """A file opened through ObjectFS.

    Holds the open mode and its own offset; byte work is delegated to the
    FileResource shared by every handle on the same key. read_at() and
    write_at() leave the handle offset alone, read() and write() advance it.

    Example:
        >>> with fs.open("bucket/notes.txt", "w") as f:
        ...     f.write(b"hello")
    """

    def __init__(self, fs, resource: FileResource, key: ObjectKey, mode: OpenMode, name: str):
        self._fs = fs
        self._resource = resource
        self.key = key
        self.mode = mode
        self._name = name
        self._offset = 0
        self.closed = False

    @property
    def name(self) -> str:
        return self._name

    def _check_open(self) -> None:
        if self.closed:
            raise FileClosedError(self._name)

    def _check_writable(self) -> None:
        self._check_open()
        if not self.mode.can_write:
            raise PermissionDeniedError("file is opened read-only", self._name)

    def read(self, size: int = -1) -> bytes:
        self._check_open()
        data = self._resource.read_at(size, self._offset)
        self._offset += len(data)
        return data

    def read_at(self, size: int, offset: int) -> bytes:
        self._check_open()
        return self._resource.read_at(size, offset)

    def write(self, data: bytes) -> int:
        self._check_writable()
        written = self._resource.write_at(data, self._offset)
        self._offset += written
        return written

    def write_at(self, data: bytes, offset: int) -> int:
        self._check_writable()
        return self._resource.write_at(data, offset)

    def write_string(self, text: str) -> int:
        return self.write(text.encode("utf-8"))

    def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        """Move the handle offset and return the new position.

        Raises:
            OutOfRangeError: The resulting position is negative
            ValueError: Unknown ``whence``
        """
        self._check_open()

        if whence not in (os.SEEK_SET, os.SEEK_CUR, os.SEEK_END):
            raise ValueError(f"invalid whence ({whence})")
        if (whence == os.SEEK_SET and offset == self._offset) or (
            whence == os.SEEK_CUR and offset == 0
        ):
            return self._offset

        logger.warning(f"Seek on {self._name} commits pending writes and is expensive")
        if whence == os.SEEK_END:
            position = self._resource.size() + offset
        else:
            self._resource.flush()
            position = offset if whence == os.SEEK_SET else self._offset + offset

        if position < 0:
            raise OutOfRangeError(f"negative seek position {position}", self._name)
        self._offset = position
        return position

    def tell(self) -> int:
        self._check_open()
        return self._offset

    def truncate(self, size: int) -> None:
        self._check_writable()
        self._resource.truncate(size)

    def readdir(self, count: int = 0) -> List[FileInfo]:
        """FileInfo of the directory's children, sorted by name."""
        self._check_open()
        return self._fs._readdir(self.key, count, self._name)

    def readdirnames(self, count: int = 0) -> List[str]:
        return [info.name for info in self.readdir(count)]

    def stat(self) -> FileInfo:
        self._check_open()
        self._resource.flush()
        return self._fs.index.stat(self.key)

    def sync(self) -> None:
        self._check_open()
        self._resource.flush()

    def close(self) -> None:
        """Commit pending writes and release the shared resource.

        Raises:
            FileClosedError: The handle was already closed
        """
        self._check_open()
        self.closed = True
        try:
            self._resource.flush()
        finally:
            self._fs.registry.release(self._resource)

    def __enter__(self) -> "FileHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self.closed:
            self.close()

    def __repr__(self) -> str:
        return f"FileHandle(name={self._name!r}, mode={self.mode.name}, offset={self._offset})"


ModeLike = Union[str, OpenMode]
