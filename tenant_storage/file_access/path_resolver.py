# tenant_storage/file_access/path_resolver.py
"""
Resolution of caller-supplied paths against a storage root.

Traversal is rejected twice: syntactically on the normalized input, and by
prefix containment once the path has been joined with the root.
"""
import os
import re
from typing import Optional

from tenant_storage.file_access.errors import (
    AbsolutePathNotAllowedError,
    InvalidPathError,
    PathSecurityError,
)

_DUPLICATE_SEPARATORS = re.compile(r"/{2,}")
_DRIVE_ROOTED = re.compile(r"^[A-Za-z]:/")


def normalize_separators(path: str) -> str:
    """Use ``/`` everywhere and collapse repeated separators."""
    return _DUPLICATE_SEPARATORS.sub("/", path.replace("\\", "/"))


def has_traversal(normalized: str) -> bool:
    return (
        normalized == ".."
        or normalized.startswith("../")
        or normalized.endswith("/..")
        or "/../" in normalized
    )


def is_rooted(normalized: str) -> bool:
    return normalized.startswith("/") or bool(_DRIVE_ROOTED.match(normalized))


class PathResolver:
    """
    Resolves relative paths to absolute paths confined to a root.

    With no root configured any path is accepted and simply made absolute
    (traversal segments are still refused).

    Args:
        root: Directory all paths are confined to, or None/"" for no root
        case_sensitive: Whether the containment check compares case
    """

    def __init__(self, root: Optional[str] = None, case_sensitive: bool = True):
        self.root = os.path.abspath(root) if root else None
        self.case_sensitive = case_sensitive

    def resolve(self, path: str, allow_root: bool = True) -> str:
        """
        Resolve ``path`` against the root.

        Args:
            path: Caller-supplied relative path
            allow_root: Whether a path naming the root itself (``"."``) is
                accepted. Mutating operations pass False.

        Returns:
            Normalized absolute path

        Raises:
            InvalidPathError: If path is None, empty, whitespace or contains NUL
            PathSecurityError: If path traverses upwards, escapes the root, or
                names the root while allow_root is False
            AbsolutePathNotAllowedError: If path is absolute while a root is set
        """
        if path is None or not str(path).strip():
            raise InvalidPathError("Path cannot be empty or whitespace")

        if "\x00" in str(path):
            raise InvalidPathError(f"Path contains a NUL character: {path!r}")

        normalized = normalize_separators(str(path))

        if has_traversal(normalized):
            raise PathSecurityError(f"Path contains directory traversal: {path!r}")

        if self.root is None:
            return os.path.abspath(normalized)

        if is_rooted(normalized):
            raise AbsolutePathNotAllowedError(
                f"Absolute paths are not allowed when a root is configured: {path!r}"
            )

        candidate = os.path.normpath(os.path.join(self.root, normalized))
        if not self.is_within_root(candidate):
            raise PathSecurityError(f"Path resolves outside the root: {path!r}")

        if not allow_root and self._same_path(candidate, self.root):
            raise PathSecurityError(f"Path refers to the root itself: {path!r}")

        return candidate

    def is_within_root(self, absolute_path: str) -> bool:
        """True when ``absolute_path`` is the root itself or below it."""
        if self.root is None:
            return True

        root = self.root
        candidate = absolute_path
        if not self.case_sensitive:
            root = root.casefold()
            candidate = candidate.casefold()

        # Compare on a separator boundary so /data2 is not inside /data
        prefix = root if root.endswith(os.sep) else root + os.sep
        return candidate == root or candidate.startswith(prefix)

    def _same_path(self, left: str, right: str) -> bool:
        if not self.case_sensitive:
            return left.casefold() == right.casefold()
        return left == right

    def __repr__(self) -> str:
        return f"<PathResolver root={self.root!r} case_sensitive={self.case_sensitive}>"
