"""ObjectFS: the file system facade over an object store.

Architecture:
    ObjectFS
      ├── PathResolver      path -> ObjectKey
      ├── DirectoryIndex    stat / listings over the flat key space
      ├── ResourceRegistry  one shared FileResource per key
      └── FileHandle        one per open(), with its own offset
"""

import logging
from typing import List, Optional

from blobfs.errors import (
    DirectoryNotEmptyError,
    InvalidNameError,
    IsADirectoryError,
    NotADirectoryError,
    NotFoundError,
    PermissionDeniedError,
    UnimplementedError,
)
from blobfs.store.base import ObjectKey, ObjectStoreClient
from blobfs.vfs.base import DEFAULT_FILE_MODE, FileInfo
from blobfs.vfs.handle import FileHandle, ModeLike, OpenFlag, OpenMode
from blobfs.vfs.index import ROOT_NAME, DirectoryIndex
from blobfs.vfs.registry import ResourceRegistry
from blobfs.vfs.resolver import PathResolver
from blobfs.vfs.resource import MAX_WRITE_SIZE, FileResource

logger = logging.getLogger(__name__)


class ObjectFS:
    """POSIX-like file system over an ObjectStoreClient.

    Paths are "container/a/b", or plain "a/b" when the file system is bound
    to a fixed ``container``. Directories are zero-length marker objects
    ending in the separator, or virtual folders implied by object names.

    Example:
        >>> fs = ObjectFS(MemoryObjectStore())
        >>> fs.makedirs("bucket/docs")
        >>> fs.write_bytes("bucket/docs/a.txt", b"hello")
        >>> fs.listdir("bucket/docs")
        ['a.txt']
    """

    def __init__(
        self,
        store: ObjectStoreClient,
        separator: str = "/",
        container: Optional[str] = None,
        padding_chunk_size: int = MAX_WRITE_SIZE,
        file_mode: int = DEFAULT_FILE_MODE,
    ):
        """Initialize the file system.

        Args:
            store: Object store client
            separator: Folder separator used in object keys
            container: Fixed container, or None to take it from each path
            padding_chunk_size: Largest single write when truncate pads
            file_mode: Permission bits reported by stat()
        """
        self.store = store
        self.resolver = PathResolver(separator, container)
        self.index = DirectoryIndex(store, self.resolver, file_mode)
        self.padding_chunk_size = padding_chunk_size
        self.registry = ResourceRegistry(self._new_resource)

    @classmethod
    def from_config(cls, config=None, store: Optional[ObjectStoreClient] = None) -> "ObjectFS":
        """Build a file system from a BlobFSConfig (default: the user config)."""
        from blobfs.config import load_config
        from blobfs.store import open_store

        if config is None:
            config = load_config()
        if store is None:
            store = open_store(config.store)
        return cls(
            store,
            separator=config.fs.separator,
            container=config.store.container,
            padding_chunk_size=config.fs.padding_chunk_size,
        )

    @property
    def separator(self) -> str:
        return self.resolver.separator

    def _new_resource(self, key: ObjectKey) -> FileResource:
        return FileResource(self.store, self.index, key, self.padding_chunk_size)

    def _resolve(self, path: str, allow_root: bool = False) -> ObjectKey:
        return self.resolver.resolve(path, allow_root=allow_root)

    def _display(self, key: ObjectKey) -> str:
        return self.resolver.display(key) or ROOT_NAME

    def _flush_cached(self, key: ObjectKey) -> None:
        resource = self.registry.get(key)
        if resource is not None:
            resource.flush()

    # Opening files

    def create(self, path: str) -> FileHandle:
        """Create (or empty) a file and open it read-write."""
        key = self._resolve(path)
        self._reject_directory(key)
        resource = self.registry.acquire(key)
        try:
            resource.create_empty()
        except Exception:
            self.registry.release(resource)
            raise
        logger.debug(f"Created {key}")
        return FileHandle(self, resource, key, OpenMode.READ_WRITE, self._display(key))

    def open(self, path: str, mode: ModeLike = "r") -> FileHandle:
        """Open a file.

        Args:
            path: Logical path
            mode: open() mode string ("r", "r+", "w", "a", "x", ...) or OpenMode

        Raises:
            NotFoundError: READ_ONLY or READ_WRITE on a missing path
            IsADirectoryError: A writable mode on a directory
            PermissionDeniedError: EXCLUSIVE on an existing path
        """
        if not isinstance(mode, OpenMode):
            mode = OpenMode.from_string(mode)
        return self._open(path, mode)

    def open_file(self, path: str, flags: OpenFlag) -> FileHandle:
        """Open a file with POSIX-style flags."""
        return self._open(path, OpenMode.from_flags(flags))

    def _open(self, path: str, mode: OpenMode) -> FileHandle:
        key = self._resolve(path, allow_root=True)
        name = self._display(key)
        self._flush_cached(key)

        if mode in (OpenMode.READ_ONLY, OpenMode.READ_WRITE):
            info = self.index.stat(key)
            if info.is_dir and mode.can_write:
                raise IsADirectoryError(name)
            exists = True
        elif mode is OpenMode.EXCLUSIVE:
            try:
                self.index.stat(key)
            except NotFoundError:
                exists = False
            else:
                raise PermissionDeniedError("file already exists", name)
        else:
            exists = self._reject_directory(key)

        resource = self.registry.acquire(key)
        handle = FileHandle(self, resource, key, mode, name)
        try:
            if mode is OpenMode.TRUNCATE:
                if exists:
                    try:
                        self.store.delete(key)
                    except NotFoundError:
                        pass
                resource.create_empty()
            elif not exists:
                resource.create_empty()

            if mode is OpenMode.APPEND:
                handle._offset = resource.size()
        except Exception:
            self.registry.release(resource)
            raise

        logger.debug(f"Opened {name} ({mode.name})")
        return handle

    def _reject_directory(self, key: ObjectKey) -> bool:
        """Whether a file exists at key; IsADirectoryError for a directory."""
        try:
            info = self.index.stat(key)
        except NotFoundError:
            return False
        if info.is_dir:
            raise IsADirectoryError(self._display(key))
        return True

    # Directories

    def mkdir(self, path: str) -> None:
        """Create a directory marker. Creating an existing directory is a no-op."""
        key = self._resolve(path)
        marker = key.as_directory(self.separator)
        with self.store.new_writer(marker):
            pass
        logger.debug(f"Created directory marker {marker}")

    def makedirs(self, path: str) -> None:
        """Create a directory and every missing ancestor, root-downward."""
        key = self._resolve(path)
        current = ObjectKey(key.container)
        for segment in key.path.split(self.separator):
            if not segment:
                continue
            current = current.child(segment, self.separator)
            marker = current.as_directory(self.separator)
            with self.store.new_writer(marker):
                pass
        logger.debug(f"Created directories down to {key}")

    def listdir(self, path: str = "") -> List[str]:
        """Names of a directory's children, sorted."""
        key = self._resolve(path, allow_root=True)
        return [info.name for info in self._readdir(key, 0, path)]

    def readdir(self, path: str = "", count: int = 0) -> List[FileInfo]:
        """FileInfo of a directory's children, sorted; at most ``count`` when positive."""
        key = self._resolve(path, allow_root=True)
        return self._readdir(key, count, path)

    def _readdir(self, key: ObjectKey, count: int, name: str) -> List[FileInfo]:
        if not self.index.stat(key).is_dir:
            raise NotADirectoryError(name)
        return [entry.to_info(self.index.file_mode) for entry in self.index.list(key, count)]

    # Removal and renaming

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory.

        Raises:
            NotFoundError: Nothing exists at path
            DirectoryNotEmptyError: The directory still has entries
        """
        key = self._resolve(path)
        info = self.index.stat(key)

        if info.is_dir:
            if self.index.list(key, 1):
                raise DirectoryNotEmptyError(self._display(key))
            try:
                self.store.delete(key.as_directory(self.separator))
            except NotFoundError:
                pass
        else:
            self.store.delete(key)

        self.registry.evict(key)
        logger.debug(f"Removed {key}")

    def remove_all(self, path: str) -> None:
        """Remove a path and everything below it.

        Files go first, then directory markers deepest-first, then the target.
        """
        key = self._resolve(path)
        info = self.index.stat(key)

        if not info.is_dir:
            self.store.delete(key)
            self.registry.evict(key)
            return

        files, directories = self.index.walk(key)
        self.registry.evict_tree(key, self.separator)
        for child in files + directories:
            self.store.delete(child)
        try:
            self.store.delete(key.as_directory(self.separator))
        except NotFoundError:
            pass
        logger.debug(f"Removed {key} with {len(files)} files and {len(directories)} directories")

    def rename(self, old: str, new: str) -> None:
        """Move a file or a directory tree.

        Every object is copied to its new key before any source is deleted.
        The move is not atomic: a failure part-way leaves both copies.
        """
        src = self._resolve(old)
        dst = self._resolve(new)
        if src == dst:
            return

        self.registry.flush_tree(src, self.separator)
        info = self.index.stat(src)

        if not info.is_dir:
            self._reject_directory(dst)
            self.store.copy(src, dst)
            self.store.delete(src)
            self.registry.evict(src)
            self.registry.evict(dst)
            logger.debug(f"Renamed {src} to {dst}")
            return

        src_prefix = self.resolver.ensure_trailing_separator(src.path)
        dst_prefix = self.resolver.ensure_trailing_separator(dst.path)
        if dst.container == src.container and dst_prefix.startswith(src_prefix):
            raise InvalidNameError("cannot move a directory into itself", new)

        files, directories = self.index.walk(src)
        marker = src.as_directory(self.separator)
        sources = files + directories
        if self._exists(marker):
            sources.append(marker)

        for key in sources:
            target = ObjectKey(dst.container, dst_prefix + key.path[len(src_prefix):])
            self.store.copy(key, target)
        for key in sources:
            self.store.delete(key)

        self.registry.evict_tree(src, self.separator)
        self.registry.evict_tree(dst, self.separator)
        logger.debug(f"Renamed directory {src} to {dst} ({len(sources)} objects)")

    def _exists(self, key: ObjectKey) -> bool:
        try:
            self.store.head(key)
        except NotFoundError:
            return False
        return True

    # Metadata

    def stat(self, path: str) -> FileInfo:
        key = self._resolve(path, allow_root=True)
        self._flush_cached(key)
        return self.index.stat(key)

    def exists(self, path: str) -> bool:
        try:
            self.stat(path)
        except NotFoundError:
            return False
        return True

    def is_dir(self, path: str) -> bool:
        return self.exists(path) and self.stat(path).is_dir

    def is_file(self, path: str) -> bool:
        return self.exists(path) and not self.stat(path).is_dir

    def chmod(self, path: str, mode: int) -> None:
        raise UnimplementedError("chmod is not supported by object stores", path)

    def chtimes(self, path: str, atime, mtime) -> None:
        raise UnimplementedError("chtimes is not supported by object stores", path)

    def chown(self, path: str, uid: int, gid: int) -> None:
        raise UnimplementedError("chown is not supported by object stores", path)

    # Convenience

    def read_bytes(self, path: str) -> bytes:
        with self.open(path, OpenMode.READ_ONLY) as f:
            return f.read()

    def write_bytes(self, path: str, data: bytes) -> int:
        with self.open(path, OpenMode.TRUNCATE) as f:
            return f.write(data)

    def close(self) -> None:
        """Commit pending writes of every cached resource."""
        self.registry.flush_all()

    def __enter__(self) -> "ObjectFS":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ObjectFS(store={self.store.name!r}, container={self.resolver.container!r})"
