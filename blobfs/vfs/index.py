"""Directory semantics over a flat key space.

Object stores have no directories. A path is a directory when either
    - a directory marker exists (zero-length object named "path/"), or
    - some object name starts with "path/" (a virtual folder), or
    - the path is the container root.
Listings use one delimited prefix query per level.
"""

import logging
from typing import List, Tuple

from blobfs.errors import EmptyObjectNameError, NotFoundError
from blobfs.store.base import ObjectKey, ObjectStoreClient
from blobfs.vfs.base import DEFAULT_FILE_MODE, DirectoryEntry, EntryType, FileInfo
from blobfs.vfs.resolver import PathResolver

logger = logging.getLogger(__name__)

ROOT_NAME = "."


class DirectoryIndex:
    """Answers "file, directory, or nothing?" and enumerates children."""

    def __init__(
        self,
        store: ObjectStoreClient,
        resolver: PathResolver,
        file_mode: int = DEFAULT_FILE_MODE,
    ):
        """Initialize the index.

        Args:
            store: Object store client
            resolver: Resolver providing the separator and key helpers
            file_mode: Permission bits reported in FileInfo
        """
        self.store = store
        self.resolver = resolver
        self.file_mode = file_mode

    @property
    def separator(self) -> str:
        return self.resolver.separator

    def stat(self, key: ObjectKey) -> FileInfo:
        """Get FileInfo for a key.

        A direct head lookup decides "file". If the store reports the key as
        not found, a delimited listing under "path/" decides "virtual
        directory". An empty object name is the container root.

        Raises:
            NotFoundError: Neither an object nor any object under the prefix
        """
        try:
            attrs = self.store.head(key)
        except EmptyObjectNameError:
            return FileInfo.directory(ROOT_NAME, self.file_mode)
        except NotFoundError:
            prefix = self.resolver.ensure_trailing_separator(key.path)
            for _ in self.store.list_prefix(key.container, prefix, self.separator):
                return FileInfo.directory(self.resolver.base_name(key.path), self.file_mode)
            raise NotFoundError(self.resolver.display(key)) from None

        return FileInfo(
            name=self.resolver.base_name(key.path),
            size=attrs.size,
            mtime=attrs.updated,
            is_dir=False,
            file_mode=self.file_mode,
        )

    def is_directory(self, key: ObjectKey) -> bool:
        """Whether the key is a directory; NotFoundError if it does not exist."""
        return self.stat(key).is_dir

    def exists(self, key: ObjectKey) -> bool:
        try:
            self.stat(key)
        except NotFoundError:
            return False
        return True

    def list(self, key: ObjectKey, limit: int = 0) -> List[DirectoryEntry]:
        """List the direct children of a directory key.

        Entries are sorted by name before ``limit`` is applied, since the
        store does not return names in order.

        Args:
            key: Directory key (root allowed)
            limit: Maximum number of entries; 0 or less means all

        Returns:
            Sorted list of entries
        """
        prefix = self.resolver.ensure_trailing_separator(key.path)
        entries: List[DirectoryEntry] = []

        for item in self.store.list_prefix(key.container, prefix, self.separator):
            # names are relative to the listed prefix; an empty one is the
            # directory's own marker or an empty segment such as "a//x"
            if item.is_prefix:
                entry = DirectoryEntry(
                    name=item.prefix[len(prefix):].rstrip(self.separator),
                    entry_type=EntryType.VIRTUAL,
                )
            else:
                entry = DirectoryEntry(
                    name=item.name[len(prefix):],
                    entry_type=EntryType.FILE,
                    size=item.size,
                    mtime=item.updated,
                )

            if not entry.name:
                continue
            entries.append(entry)

        entries.sort(key=lambda e: e.name)
        if limit > 0:
            entries = entries[:limit]
        return entries

    def walk(self, key: ObjectKey) -> Tuple[List[ObjectKey], List[ObjectKey]]:
        """Collect every object below a directory key.

        Returns:
            (files, directories): file keys sorted by name; directory marker
            keys sorted deepest-first. The directory's own marker is not
            included.
        """
        prefix = self.resolver.ensure_trailing_separator(key.path)
        files: List[ObjectKey] = []
        directories: List[ObjectKey] = []

        for item in self.store.list_prefix(key.container, prefix):
            if item.is_prefix or item.name == prefix:
                continue
            child = ObjectKey(key.container, item.name)
            if item.name.endswith(self.separator):
                directories.append(child)
            else:
                files.append(child)

        files.sort(key=lambda k: k.path)
        directories.sort(key=lambda k: (-k.path.count(self.separator), k.path))
        logger.debug(f"Walked {key}: {len(files)} files, {len(directories)} directory markers")
        return files, directories
