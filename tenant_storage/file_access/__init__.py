"""
File Access Layer

Tenant-confined file storage with change notification:
- PathResolver: confines caller paths to a root
- LocalFileStore: streaming file/directory operations on local disk
- WatcherRegistry: delivers change events to registered watchers
"""

from tenant_storage.file_access.base import (
    FileStorage,
    FileSystemChangeEvent,
    FileSystemChangeType,
    FileWriteMode,
    HealthCheckResult,
)
from tenant_storage.file_access.errors import (
    AbsolutePathNotAllowedError,
    DirectoryNotEmptyError,
    FileStorageError,
    InvalidPathError,
    MissingDirectoryError,
    MissingFileError,
    NotAFileError,
    PathSecurityError,
    UnsupportedWriteModeError,
)
from tenant_storage.file_access.localfs_provider import LocalFileStore
from tenant_storage.file_access.path_resolver import PathResolver
from tenant_storage.file_access.streams import FileStream
from tenant_storage.file_access.watchers.registry import (
    FileSystemWatcher,
    WatcherHandle,
    WatcherRegistry,
)

__all__ = [
    "FileStorage",
    "FileSystemChangeEvent",
    "FileSystemChangeType",
    "FileWriteMode",
    "HealthCheckResult",
    "AbsolutePathNotAllowedError",
    "DirectoryNotEmptyError",
    "FileStorageError",
    "InvalidPathError",
    "MissingDirectoryError",
    "MissingFileError",
    "NotAFileError",
    "PathSecurityError",
    "UnsupportedWriteModeError",
    "LocalFileStore",
    "PathResolver",
    "FileStream",
    "FileSystemWatcher",
    "WatcherHandle",
    "WatcherRegistry",
]
