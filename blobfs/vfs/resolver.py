"""Path resolution for the object file system.

Maps caller-facing paths onto ObjectKeys (container + object path).
"""

import logging
import re
from typing import Optional, Tuple

from blobfs.errors import EmptyObjectNameError, NoContainerError
from blobfs.store.base import ObjectKey

logger = logging.getLogger(__name__)

# Store address prefix, e.g. "gs://", "s3://", "mem://"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*://")


class PathResolver:
    """Resolves logical paths to ObjectKeys.

    This class handles:
    - Both "/" and "\\" as input separators, normalized to ``separator``
    - An optional store-address prefix ("gs://bucket/a/b")
    - Leading/trailing separators (object stores reject leading ones)
    - "." as the root of the namespace

    When ``container`` is given every path is an object path inside that
    container. Otherwise the first path segment names the container.
    """

    def __init__(self, separator: str = "/", container: Optional[str] = None):
        """Initialize path resolver.

        Args:
            separator: Folder separator used in object keys
            container: Fixed container, or None to take it from each path
        """
        if not separator:
            raise ValueError("separator must not be empty")
        self.separator = separator
        self.container = container or None

    def resolve(self, raw: str, allow_root: bool = False) -> ObjectKey:
        """Resolve a path to an ObjectKey.

        Args:
            raw: Path as given by the caller
            allow_root: Return the container root key for an empty object path
                instead of raising EmptyObjectNameError

        Returns:
            Resolved key

        Raises:
            NoContainerError: The path does not name a container
            EmptyObjectNameError: The object path is empty and allow_root is False
        """
        name = self.normalize(raw)

        if self.container:
            container, path = self.container, name
        else:
            container, path = self.split(name)

        if not container:
            raise NoContainerError(raw)
        if not path and not allow_root:
            raise EmptyObjectNameError(raw)

        return ObjectKey(container, path)

    def normalize(self, raw: str) -> str:
        """Normalize a raw path to a separator-clean, prefix-free string."""
        if raw is None:
            raw = ""
        name = _SCHEME_RE.sub("", str(raw), count=1)
        name = name.replace("\\", self.separator).replace("/", self.separator)

        if name.startswith(self.separator):
            logger.warning(
                f'Path "{raw}" starts with the separator "{self.separator}", '
                "which object stores do not support; it is trimmed"
            )
            name = name.lstrip(self.separator)

        name = name.rstrip(self.separator)
        return self._correct_the_dot(name)

    def split(self, name: str) -> Tuple[str, str]:
        """Split "container/a/b" into ("container", "a/b")."""
        container, _, path = name.partition(self.separator)
        return container, self._correct_the_dot(path)

    def ensure_trailing_separator(self, path: str) -> str:
        if path and not path.endswith(self.separator):
            return path + self.separator
        return path

    def base_name(self, path: str) -> str:
        """Last component of an object path ("" for the root)."""
        return path.rstrip(self.separator).rsplit(self.separator, 1)[-1]

    def display(self, key: ObjectKey) -> str:
        """Caller-facing name of a key (what FileHandle.name reports)."""
        if self.container:
            return key.path
        if key.path:
            return key.container + self.separator + key.path
        return key.container

    def _correct_the_dot(self, path: str) -> str:
        # "." names the root; object stores list nothing for a literal dot
        if path == ".":
            return ""
        return path
