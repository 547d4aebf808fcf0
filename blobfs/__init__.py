"""
blobfs - A POSIX-like file system over immutable object stores.

Main API:
    from blobfs import ObjectFS, LocalObjectStore

    # Open a store and wrap it in a file system
    fs = ObjectFS(LocalObjectStore("~/.local/share/blobfs"))

    # Directories are marker objects or virtual folders
    fs.makedirs("bucket/reports/2024")

    # Random-access writes on top of whole-object replacement
    with fs.open("bucket/reports/2024/q1.txt", "w") as f:
        f.write(b"draft")
    with fs.open("bucket/reports/2024/q1.txt", "r+") as f:
        f.write_at(b"final", 0)

    # Listings are sorted by name
    fs.listdir("bucket/reports")

    # Commit anything still pending when done
    fs.close()
"""

from .errors import (
    DirectoryNotEmptyError,
    EmptyObjectNameError,
    ErrorKind,
    FileClosedError,
    FSError,
    InvalidNameError,
    IsADirectoryError,
    NoContainerError,
    NotADirectoryError,
    NotFoundError,
    OutOfRangeError,
    PermissionDeniedError,
    UnimplementedError,
)
from .store import LocalObjectStore, MemoryObjectStore, ObjectKey, ObjectStoreClient, open_store
from .vfs import FileHandle, FileInfo, ObjectFS, OpenFlag, OpenMode

__version__ = "0.1.0"
__all__ = [
    "ObjectFS",
    "FileHandle",
    "FileInfo",
    "OpenFlag",
    "OpenMode",
    "ObjectKey",
    "ObjectStoreClient",
    "MemoryObjectStore",
    "LocalObjectStore",
    "open_store",
    "ErrorKind",
    "FSError",
    "InvalidNameError",
    "NoContainerError",
    "EmptyObjectNameError",
    "NotFoundError",
    "NotADirectoryError",
    "IsADirectoryError",
    "DirectoryNotEmptyError",
    "OutOfRangeError",
    "FileClosedError",
    "PermissionDeniedError",
    "UnimplementedError",
]
