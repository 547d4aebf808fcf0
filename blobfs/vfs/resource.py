"""Byte-level emulation of a mutable file on top of an immutable object.

A FileResource owns the single read/write cursor of one remote object. At
any time at most one of a ranged reader or a pending writer is open. Every
mutation ends as "replace the whole object":

    write_at(data, k)   new object = old[:k] + data (+ old tail on flush)
    truncate(n)         new object = old[:n] (+ space padding up to n)

The previous generation is read back to stitch unchanged byte ranges, so
the store must be strongly read-after-write consistent.
"""

import logging
import threading
from typing import BinaryIO, Optional

from blobfs.errors import IsADirectoryError, NotFoundError, OutOfRangeError
from blobfs.store.base import ObjectKey, ObjectStoreClient, ObjectWriter

logger = logging.getLogger(__name__)

# Largest single write used when padding a file out to a truncate size
MAX_WRITE_SIZE = 10000

_COPY_CHUNK = 64 * 1024
_PADDING_BYTE = b" "


def copy_stream(reader: BinaryIO, writer: ObjectWriter, length: int = -1) -> int:
    """Copy up to ``length`` bytes (-1: everything) and return the count."""
    copied = 0
    while length < 0 or copied < length:
        want = _COPY_CHUNK if length < 0 else min(_COPY_CHUNK, length - copied)
        chunk = reader.read(want)
        if not chunk:
            break
        writer.write(chunk)
        copied += len(chunk)
    return copied


class FileResource:
    """Shared cursor state for one ObjectKey.

    Every FileHandle opened on the same key talks to the same FileResource
    (see ResourceRegistry). All cursor and stream transitions happen under
    ``lock``.
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        index,
        key: ObjectKey,
        padding_chunk_size: int = MAX_WRITE_SIZE,
    ):
        """Initialize the resource.

        Args:
            store: Object store client
            index: DirectoryIndex used to tell files from directories
            key: Key of the object this resource emulates
            padding_chunk_size: Largest single write when padding with spaces
        """
        if padding_chunk_size <= 0:
            raise ValueError("padding_chunk_size must be positive")
        self.store = store
        self.index = index
        self.key = key
        self.padding_chunk_size = padding_chunk_size

        self.offset = 0
        self.remote_size = 0
        self._reader: Optional[BinaryIO] = None
        self._writer: Optional[ObjectWriter] = None
        self.lock = threading.RLock()

    @property
    def name(self) -> str:
        return self.index.resolver.display(self.key)

    @property
    def has_pending_write(self) -> bool:
        return self._writer is not None

    def read_at(self, size: int, offset: int) -> bytes:
        """Read ``size`` bytes at ``offset`` (size < 0: to end of object).

        Reuses the open reader when it already sits at ``offset``; any other
        offset tears down the open stream and starts a ranged read there.
        Returns fewer bytes than asked for at end of object.
        """
        if offset < 0:
            raise OutOfRangeError("negative offset", self.name)
        if size == 0:
            return b""

        with self.lock:
            if self._reader is None or self.offset != offset:
                if self._reader is None and self._writer is None:
                    if self.index.stat(self.key).is_dir:
                        raise IsADirectoryError(self.name)
                self._close_streams()
                logger.debug(f"Opening reader on {self.key} at offset {offset}")
                self._reader = self.store.get_range(self.key, offset)
                self.offset = offset

            data = self._read(size)
            self.offset += len(data)
            return data

    def _read(self, size: int) -> bytes:
        if size < 0:
            return self._reader.read()
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._reader.read(remaining)
            if not chunk:
                break
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def write_at(self, data: bytes, offset: int) -> int:
        """Write ``data`` at ``offset`` and return the number of bytes written.

        A write that continues exactly where the pending writer stopped goes
        straight to it. Anything else commits the pending state and starts a
        new generation, copying the first ``offset`` bytes of the current
        object into it. The old tail is appended by flush().

        Raises:
            OutOfRangeError: ``offset`` is negative or past the end of the object
        """
        if offset < 0:
            raise OutOfRangeError("negative offset", self.name)

        with self.lock:
            if self._writer is None or self.offset != offset:
                self._close_streams()

                try:
                    size = self.store.head(self.key).size
                except NotFoundError:
                    if offset > 0:
                        raise OutOfRangeError(
                            f"cannot write at offset {offset} of a missing object", self.name
                        ) from None
                    size = 0

                if offset > size:
                    raise OutOfRangeError(
                        f"offset {offset} is past the end of the object ({size} bytes); "
                        "sparse files are not supported",
                        self.name,
                    )

                logger.debug(f"Opening writer on {self.key} at offset {offset}")
                writer = self.store.new_writer(self.key)
                if offset > 0:
                    try:
                        with self.store.get_range(self.key, 0, offset) as reader:
                            copy_stream(reader, writer, offset)
                    except Exception:
                        writer.abort()
                        raise

                self._writer = writer
                self.remote_size = size
                self.offset = offset

            self._writer.write(data)
            self.offset += len(data)
            return len(data)

    def flush(self) -> None:
        """Commit any pending write and close any open reader."""
        with self.lock:
            self._close_streams()

    def _close_streams(self) -> None:
        if self._writer is not None:
            writer, self._writer = self._writer, None
            try:
                if self.offset < self.remote_size:
                    # a write that stopped short of the old end keeps the old tail
                    with self.store.get_range(self.key, self.offset) as reader:
                        copy_stream(reader, writer)
            except Exception:
                writer.abort()
                raise
            writer.close()
            self.remote_size = max(self.offset, self.remote_size)

        if self._reader is not None:
            reader, self._reader = self._reader, None
            reader.close()

    def truncate(self, size: int) -> None:
        """Cut the object to ``size`` bytes, or pad it with spaces up to ``size``."""
        if size < 0:
            raise OutOfRangeError("negative truncate size", self.name)

        with self.lock:
            self._close_streams()

            writer = self.store.new_writer(self.key)
            try:
                with self.store.get_range(self.key, 0, size) as reader:
                    copied = copy_stream(reader, writer, size)

                remaining = size - copied
                while remaining > 0:
                    chunk = min(remaining, self.padding_chunk_size)
                    writer.write(_PADDING_BYTE * chunk)
                    remaining -= chunk
            except Exception:
                writer.abort()
                raise
            writer.close()

            logger.debug(f"Truncated {self.key} to {size} bytes")
            self.remote_size = size
            self.offset = 0

    def size(self) -> int:
        """Committed size of the object; pending writes are flushed first."""
        with self.lock:
            self._close_streams()
            return self.store.head(self.key).size

    def create_empty(self) -> None:
        """Drop pending state and replace the object with an empty one."""
        with self.lock:
            self.discard()
            with self.store.new_writer(self.key):
                pass
            self.remote_size = 0
            self.offset = 0

    def discard(self) -> None:
        """Abort any pending write and close any reader without committing."""
        with self.lock:
            if self._writer is not None:
                writer, self._writer = self._writer, None
                writer.abort()
            if self._reader is not None:
                reader, self._reader = self._reader, None
                reader.close()

    def __repr__(self) -> str:
        return f"FileResource(key={self.key!r}, offset={self.offset})"
