"""
Local directory object store.

Keys map onto files under ``root``:

    <root>/<container>/<percent-encoded object name>

Each container is one flat directory and every object is one file named by
its encoded key, so the store keeps the flat namespace of a real object
store: ``a`` and ``a/`` (a directory marker) are two unrelated objects that
can coexist, which a plain directory tree could not express.

Encoded names longer than a file name may be are stored under
``<container>/.blobfs-long/<sha256 of the name>``, with the object name
kept beside the data in a ``.key`` file so listings can recover it.

Writers stage bytes in a temporary file next to the target and commit with
os.replace(), so a reader never sees a half-written generation.
"""

import hashlib
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator
from urllib.parse import quote, unquote

from blobfs.errors import NotFoundError
from blobfs.store.base import (
    ObjectAttrs,
    ObjectKey,
    ObjectStoreClient,
    ObjectWriter,
    RangeReader,
    check_key,
)

logger = logging.getLogger(__name__)

_STAGING_PREFIX = ".blobfs-staging-"
_LONG_NAME_DIR = ".blobfs-long"
_KEY_SUFFIX = ".key"

# Longest encoded name stored as a plain file; NAME_MAX is 255 on common file systems
MAX_FILE_NAME = 255


def _encode(name: str) -> str:
    encoded = quote(name, safe="")
    # "." and ".." are not valid file names, and dot files would clash with staging files
    if encoded.startswith("."):
        encoded = "%2E" + encoded[1:]
    return encoded


def _decode(filename: str) -> str:
    return unquote(filename)


def _key_file(path: Path) -> Path:
    return path.with_name(path.name + _KEY_SUFFIX)


class _LocalWriter(ObjectWriter):
    def __init__(self, target: Path, key: ObjectKey, long_name: bool = False):
        super().__init__(key)
        self._target = target
        self._long_name = long_name
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=_STAGING_PREFIX, dir=target.parent)
        self._tmp_path = Path(tmp)
        self._file = os.fdopen(fd, "wb")

    def write(self, data: bytes) -> int:
        return self._file.write(data)

    def _commit(self) -> None:
        self._file.close()
        if self._long_name:
            # key file first; listings skip data that has none
            _key_file(self._target).write_text(self.key.path, encoding="utf-8")
        os.replace(self._tmp_path, self._target)
        logger.debug(f"Committed {self._target.stat().st_size} bytes to {self.key}")

    def _discard(self) -> None:
        self._file.close()
        self._tmp_path.unlink(missing_ok=True)


class LocalObjectStore(ObjectStoreClient):
    """Object store backed by a directory on the local disk."""

    def __init__(self, root: str):
        self.root = Path(root).expanduser().resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def name(self) -> str:
        return "local"

    def _container_dir(self, container: str) -> Path:
        path = (self.root / container).resolve()
        if path.parent != self.root:
            raise ValueError(f"Suspicious container name outside root: {container}")
        return path

    def _object_path(self, key: ObjectKey) -> Path:
        check_key(key)
        directory = self._container_dir(key.container)
        encoded = _encode(key.path)
        if len(encoded) <= MAX_FILE_NAME:
            return directory / encoded
        digest = hashlib.sha256(key.path.encode("utf-8")).hexdigest()
        return directory / _LONG_NAME_DIR / digest

    def _is_long_name(self, path: Path) -> bool:
        return path.parent.name == _LONG_NAME_DIR

    def head(self, key: ObjectKey) -> ObjectAttrs:
        path = self._object_path(key)
        try:
            st = path.stat()
        except FileNotFoundError:
            raise NotFoundError(str(key)) from None
        return ObjectAttrs(
            name=key.path,
            size=st.st_size,
            updated=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def get_range(self, key: ObjectKey, offset: int = 0, length: int = -1) -> BinaryIO:
        path = self._object_path(key)
        try:
            f = open(path, "rb")
        except FileNotFoundError:
            raise NotFoundError(str(key)) from None
        f.seek(offset)
        return RangeReader(f, length)

    def new_writer(self, key: ObjectKey) -> ObjectWriter:
        path = self._object_path(key)
        return _LocalWriter(path, key, long_name=self._is_long_name(path))

    def delete(self, key: ObjectKey) -> None:
        path = self._object_path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            raise NotFoundError(str(key)) from None
        if self._is_long_name(path):
            _key_file(path).unlink(missing_ok=True)
        logger.debug(f"Deleted {key}")

    def iter_objects(self, container: str) -> Iterator[ObjectAttrs]:
        directory = self._container_dir(container)
        if not directory.is_dir():
            return
        with os.scandir(directory) as it:
            for entry in it:
                if not entry.is_file() or entry.name.startswith(_STAGING_PREFIX):
                    continue
                yield self._attrs(_decode(entry.name), entry)

        long_names = directory / _LONG_NAME_DIR
        if not long_names.is_dir():
            return
        with os.scandir(long_names) as it:
            for entry in it:
                if entry.name.startswith(_STAGING_PREFIX) or entry.name.endswith(_KEY_SUFFIX):
                    continue
                try:
                    name = _key_file(Path(entry.path)).read_text(encoding="utf-8")
                except FileNotFoundError:
                    logger.warning(f"Skipping {entry.path}: no key file")
                    continue
                yield self._attrs(name, entry)

    @staticmethod
    def _attrs(name: str, entry: os.DirEntry) -> ObjectAttrs:
        st = entry.stat()
        return ObjectAttrs(
            name=name,
            size=st.st_size,
            updated=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    def copy(self, src: ObjectKey, dst: ObjectKey) -> None:
        src_path = self._object_path(src)
        if not src_path.is_file():
            raise NotFoundError(str(src))
        with self.new_writer(dst) as writer, open(src_path, "rb") as f:
            shutil.copyfileobj(f, writer)
