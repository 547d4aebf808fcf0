"""File system layer over a flat object store.

The VFS presents open/read/write/seek/truncate/readdir/rename/remove
semantics over a store that can only replace whole objects and has no
directories.

Architecture:

    ```
    ObjectFS                      # Facade (object_fs.py)
    ├── PathResolver              # "bucket/a/b" -> ObjectKey("bucket", "a/b")
    ├── DirectoryIndex            # file / directory / nothing, listings
    ├── ResourceRegistry          # one FileResource per key, shared by handles
    │   └── FileResource          # the single reader/writer cursor of an object
    └── FileHandle                # one per open(), own offset and OpenMode
    ```

Directories:

    - Marker: a zero-length object named "a/b/" (created by mkdir)
    - Virtual: "a/b" has no marker but "a/b/c" exists
    - Root: the container itself

    Folders report FOLDER_SIZE (42) bytes and an epoch modification time.

Writes:

    Every mutation replaces the whole object. write_at(data, k) copies the
    first k bytes of the current object into a new generation, appends data,
    and on flush copies the old tail behind it. truncate(n) keeps the first n
    bytes and pads a shortfall with spaces.

Usage Example:

    ```python
    from blobfs.store import MemoryObjectStore
    from blobfs.vfs import ObjectFS

    fs = ObjectFS(MemoryObjectStore())
    fs.makedirs("bucket/docs")

    with fs.open("bucket/docs/hello.txt", "w") as f:
        f.write(b"hello world")

    with fs.open("bucket/docs/hello.txt", "r+") as f:
        f.write_at(b"WORLD", 6)

    print(fs.read_bytes("bucket/docs/hello.txt"))  # b"hello WORLD"
    print(fs.listdir("bucket"))                    # ["docs"]
    ```
"""

from blobfs.vfs.base import (
    DEFAULT_FILE_MODE,
    FOLDER_SIZE,
    ZERO_TIME,
    DirectoryEntry,
    EntryType,
    FileInfo,
)
from blobfs.vfs.resolver import PathResolver
from blobfs.vfs.index import DirectoryIndex
from blobfs.vfs.resource import MAX_WRITE_SIZE, FileResource
from blobfs.vfs.registry import ResourceRegistry
from blobfs.vfs.handle import FileHandle, OpenFlag, OpenMode
from blobfs.vfs.object_fs import ObjectFS

__all__ = [
    # Main entry point
    "ObjectFS",
    # Handles and modes
    "FileHandle",
    "OpenFlag",
    "OpenMode",
    # Core classes
    "FileResource",
    "ResourceRegistry",
    "DirectoryIndex",
    "PathResolver",
    # Value types
    "FileInfo",
    "DirectoryEntry",
    "EntryType",
    "FOLDER_SIZE",
    "ZERO_TIME",
    "DEFAULT_FILE_MODE",
    "MAX_WRITE_SIZE",
]
