# tenant_storage/file_access/errors.py
"""
Error taxonomy for the file access layer.

Each error also derives from the closest builtin exception so callers that
only know about ``FileNotFoundError`` / ``PermissionError`` keep working.
None of these are retried internally.
"""


class FileStorageError(Exception):
    """Base class for all file access errors."""


class InvalidPathError(FileStorageError, ValueError):
    """Path is None, empty or whitespace-only."""


class PathSecurityError(FileStorageError, PermissionError):
    """Path attempts directory traversal or resolves outside the root."""


class AbsolutePathNotAllowedError(PathSecurityError):
    """Absolute path supplied while a root is configured."""


class MissingFileError(FileStorageError, FileNotFoundError):
    """File does not exist."""


class MissingDirectoryError(FileStorageError, FileNotFoundError):
    """Directory does not exist."""


class NotAFileError(FileStorageError, IsADirectoryError):
    """A file operation targeted an existing directory."""


class DirectoryNotEmptyError(FileStorageError, OSError):
    """Non-recursive delete of a directory that still has entries."""


class UnsupportedWriteModeError(FileStorageError, ValueError):
    """Write mode is not one of the FileWriteMode members."""
