"""Error taxonomy for blobfs.

Every failure blobfs raises on its own behalf is one of a small, closed set
of exception types. Callers compare by type (``except NotFoundError``) or by
``error.kind``; never by message text.

Store transport errors (network, auth, ...) are not wrapped: they propagate
unchanged to the caller.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kind tag carried by every blobfs error."""
    INVALID_NAME = "invalid_name"
    NOT_FOUND = "not_found"
    NOT_A_DIRECTORY = "not_a_directory"
    IS_A_DIRECTORY = "is_a_directory"
    DIRECTORY_NOT_EMPTY = "directory_not_empty"
    OUT_OF_RANGE = "out_of_range"
    ALREADY_CLOSED = "already_closed"
    PERMISSION_DENIED = "permission_denied"
    UNIMPLEMENTED = "unimplemented"


class FSError(Exception):
    """Base class for all blobfs errors.

    Attributes:
        message: Human-readable description
        path: Logical path the error relates to (if any)
        kind: ErrorKind tag of the concrete subclass
    """

    kind: ErrorKind

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.message}: {self.path}"
        return self.message


class InvalidNameError(FSError):
    """The path cannot be mapped onto a store key."""
    kind = ErrorKind.INVALID_NAME


class NoContainerError(InvalidNameError):
    """The path does not name a container (bucket)."""

    def __init__(self, path: Optional[str] = None):
        super().__init__("no container in name", path)


class EmptyObjectNameError(InvalidNameError):
    """The path names a container root, not an object.

    Kept apart from NotFoundError: directory detection treats it as
    "this is the root", not as "nothing here".
    """

    def __init__(self, path: Optional[str] = None):
        super().__init__("empty object name", path)


class NotFoundError(FSError):
    """No object and no virtual-folder evidence for the path."""
    kind = ErrorKind.NOT_FOUND

    def __init__(self, path: Optional[str] = None, message: str = "no such file or directory"):
        super().__init__(message, path)


class NotADirectoryError(FSError):
    """A directory operation was attempted on a file."""
    kind = ErrorKind.NOT_A_DIRECTORY

    def __init__(self, path: Optional[str] = None):
        super().__init__("not a directory", path)


class IsADirectoryError(FSError):
    """A file operation was attempted on a directory."""
    kind = ErrorKind.IS_A_DIRECTORY

    def __init__(self, path: Optional[str] = None, message: str = "is a directory"):
        super().__init__(message, path)


class DirectoryNotEmptyError(FSError):
    """Remove was called on a directory that still has entries."""
    kind = ErrorKind.DIRECTORY_NOT_EMPTY

    def __init__(self, path: Optional[str] = None):
        super().__init__("directory not empty", path)


class OutOfRangeError(FSError):
    """Negative size/offset, or a write offset past the end of the object."""
    kind = ErrorKind.OUT_OF_RANGE


class FileClosedError(FSError):
    """Operation on a handle that was already closed."""
    kind = ErrorKind.ALREADY_CLOSED

    def __init__(self, path: Optional[str] = None):
        super().__init__("file is closed", path)


class PermissionDeniedError(FSError):
    """The open mode forbids the operation, or exclusive create lost a race."""
    kind = ErrorKind.PERMISSION_DENIED


class UnimplementedError(FSError):
    """The remote store has no such concept (chmod, chtimes, chown)."""
    kind = ErrorKind.UNIMPLEMENTED
