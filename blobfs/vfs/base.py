"""Value types of the object file system.

Architecture:
    - FileInfo: stat() result for a file, a directory or the container root
    - DirectoryEntry: one child produced by a directory listing, either a
      real object or a virtual prefix (a folder inferred from key names)
    - EntryType: what a DirectoryEntry stands for
"""

import stat as stat_module
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

# Object stores have no notion of folder size; folders report this sentinel
FOLDER_SIZE = 42

DEFAULT_FILE_MODE = 0o755

# Modification time of folders, which have no backing generation
ZERO_TIME = datetime.fromtimestamp(0, tz=timezone.utc)


class EntryType(Enum):
    """Type of a directory entry."""
    FILE = "file"
    VIRTUAL = "virtual"


@dataclass(frozen=True)
class FileInfo:
    """Metadata about a file or directory.

    Attributes:
        name: Base name (last path component)
        size: Size in bytes; FOLDER_SIZE for directories
        mtime: Last modification time; ZERO_TIME for directories
        is_dir: Whether this is a directory (marker-backed, virtual or root)
        file_mode: Permission bits reported to callers
    """
    name: str
    size: int
    mtime: datetime
    is_dir: bool = False
    file_mode: int = DEFAULT_FILE_MODE

    @property
    def mode(self) -> int:
        if self.is_dir:
            return stat_module.S_IFDIR | self.file_mode
        return stat_module.S_IFREG | self.file_mode

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "mtime": self.mtime.isoformat(),
            "type": "directory" if self.is_dir else "file",
            "mode": stat_module.filemode(self.mode),
        }

    @classmethod
    def directory(cls, name: str, file_mode: int = DEFAULT_FILE_MODE) -> "FileInfo":
        return cls(name=name, size=FOLDER_SIZE, mtime=ZERO_TIME, is_dir=True, file_mode=file_mode)


@dataclass(frozen=True)
class DirectoryEntry:
    """A child found while listing a directory.

    Real objects carry size and mtime; virtual prefixes only a name.
    """
    name: str
    entry_type: EntryType
    size: Optional[int] = None
    mtime: Optional[datetime] = None

    @property
    def is_dir(self) -> bool:
        return self.entry_type != EntryType.FILE

    def to_info(self, file_mode: int = DEFAULT_FILE_MODE) -> FileInfo:
        if self.is_dir:
            return FileInfo.directory(self.name, file_mode)
        return FileInfo(
            name=self.name,
            size=self.size or 0,
            mtime=self.mtime or ZERO_TIME,
            is_dir=False,
            file_mode=file_mode,
        )
