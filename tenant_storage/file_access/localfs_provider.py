# tenant_storage/file_access/localfs_provider.py
"""
Local filesystem storage.

Works with local directories and anything mounted at a local path.
Every path is resolved through PathResolver before the disk is touched,
and mutating operations notify the registered watchers.
"""
import os
import shutil
import traceback
from datetime import datetime
from typing import Any, Dict, Iterator, Optional, Tuple

import aiofiles
import aiofiles.os

from tenant_storage.config import settings
from tenant_storage.file_access.base import (
    FileStorage,
    FileSystemChangeEvent,
    FileSystemChangeType,
    FileWriteMode,
    HealthCheckResult,
)
from tenant_storage.file_access.errors import (
    DirectoryNotEmptyError,
    MissingDirectoryError,
    MissingFileError,
    NotAFileError,
    UnsupportedWriteModeError,
)
from tenant_storage.file_access.path_resolver import PathResolver
from tenant_storage.file_access.streams import FileStream
from tenant_storage.file_access.watchers.registry import Watcher, WatcherHandle, WatcherRegistry
from tenant_storage.monitoring.logger import log

_fsync = aiofiles.os.wrap(os.fsync)
_copyfile = aiofiles.os.wrap(shutil.copyfile)
_rmtree = aiofiles.os.wrap(shutil.rmtree)

# write mode -> (open mode, seekable)
_OPEN_MODES = {
    FileWriteMode.OVERWRITE: ("wb", True),
    FileWriteMode.APPEND: ("ab", False),
    FileWriteMode.RANDOM_ACCESS: ("r+b", True),
}


class LocalFileStore(FileStorage):
    """
    Local filesystem storage confined to a base path.

    Config schema:
    {
        "base_path": "/path/to/storage",  # Required; "" disables confinement
        "case_sensitive": true,  # Optional, containment comparison mode
        "chunk_size": 8192  # Optional, default chunk size for stream_read
    }

    Notification timing: streams opened with OVERWRITE or RANDOM_ACCESS emit
    FileAdded when they are closed, not when they are opened. Every other
    mutator notifies before it returns.
    """

    def __init__(self, config: Dict[str, Any], watchers: Optional[WatcherRegistry] = None):
        # Validate required config
        if "base_path" not in config:
            raise ValueError("LocalFileStore requires 'base_path' in config")

        self.config = config
        self.base_path = config["base_path"] or ""
        self.case_sensitive = config.get("case_sensitive", True)
        self.chunk_size = config.get("chunk_size", settings.STREAM_CHUNK_SIZE)
        self.resolver = PathResolver(self.base_path, case_sensitive=self.case_sensitive)
        self.watchers = watchers if watchers is not None else WatcherRegistry()

        log("INFO", f"LocalFileStore initialized with base_path={self.resolver.root}",
            module="localfs_provider")

    @classmethod
    def from_settings(cls, base_path: Optional[str] = None) -> "LocalFileStore":
        """Build a store from application settings."""
        return cls({
            "base_path": settings.BASE_STORAGE_PATH if base_path is None else base_path,
            "case_sensitive": settings.PATH_CASE_SENSITIVE,
            "chunk_size": settings.STREAM_CHUNK_SIZE,
        })

    def _resolve_path(self, path: str, allow_root: bool = True) -> str:
        """Resolve relative path to absolute path within base_path."""
        return self.resolver.resolve(path, allow_root=allow_root)

    def _resolve_for_write(self, path: str) -> str:
        """Resolve a path a mutating operation will act on. The root itself is refused."""
        return self._resolve_path(path, allow_root=False)

    async def _reject_directory(self, resolved_path: str, path: str) -> None:
        if await aiofiles.os.path.isdir(resolved_path):
            raise NotAFileError(f"Path is a directory: {path}")

    async def _notify(self, change_type: FileSystemChangeType, path: str) -> None:
        await self.watchers.notify(FileSystemChangeEvent(change_type, path))

    async def _ensure_parent(self, resolved_path: str) -> None:
        directory = os.path.dirname(resolved_path)
        if directory:
            await aiofiles.os.makedirs(directory, exist_ok=True)

    # Watchers

    def add_watcher(self, watcher: Watcher) -> WatcherHandle:
        return self.watchers.add_watcher(watcher)

    def remove_watcher(self, watcher: Watcher) -> None:
        self.watchers.remove_watcher(watcher)

    # Writing

    async def open_for_writing(
        self,
        path: str,
        mode: FileWriteMode = FileWriteMode.OVERWRITE,
    ) -> FileStream:
        """
        Open a file for writing, creating parent directories.

        OVERWRITE truncates or creates. APPEND writes at the end and refuses
        seeks. RANDOM_ACCESS keeps existing content and allows seeking anywhere,
        which is what out-of-order chunk uploads need.

        Args:
            path: File path (relative to base_path)
            mode: Write mode

        Returns:
            FileStream the caller must close

        Raises:
            UnsupportedWriteModeError: If mode is not a FileWriteMode
            NotAFileError: If path is an existing directory
        """
        resolved_path = self._resolve_for_write(path)
        mode, open_mode, seekable = self._open_mode(mode)

        await self._reject_directory(resolved_path, path)
        await self._ensure_parent(resolved_path)

        if mode is FileWriteMode.RANDOM_ACCESS and not await aiofiles.os.path.exists(resolved_path):
            # r+b needs the file to exist; create it empty without truncating anything
            async with aiofiles.open(resolved_path, "ab"):
                pass

        handle = await aiofiles.open(resolved_path, open_mode)

        on_close = None
        if mode is not FileWriteMode.APPEND:
            async def on_close() -> None:
                await self._notify(FileSystemChangeType.FILE_ADDED, path)

        return FileStream(handle, path, readable=False, writable=True,
                          seekable=seekable, on_close=on_close)

    @staticmethod
    def _open_mode(mode: Any) -> Tuple[FileWriteMode, str, bool]:
        try:
            mode = FileWriteMode(mode)
        except ValueError:
            raise UnsupportedWriteModeError(f"Unsupported write mode: {mode!r}") from None
        open_mode, seekable = _OPEN_MODES[mode]
        return mode, open_mode, seekable

    async def pre_allocate(self, path: str, size: int) -> None:
        """
        Create or truncate a file to exactly ``size`` bytes and flush it to disk.

        Reserves the extent ahead of out-of-order RANDOM_ACCESS writes.
        """
        if size < 0:
            raise ValueError(f"size must be >= 0, got {size}")

        resolved_path = self._resolve_for_write(path)
        await self._reject_directory(resolved_path, path)
        await self._ensure_parent(resolved_path)

        async with aiofiles.open(resolved_path, "wb") as f:
            await f.truncate(size)
            await f.flush()
            await _fsync(f.fileno())

        await self._notify(FileSystemChangeType.FILE_ADDED, path)

    async def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """Write text, replacing any existing content. Always emits FileAdded."""
        resolved_path = self._resolve_for_write(path)
        await self._reject_directory(resolved_path, path)
        await self._ensure_parent(resolved_path)

        async with aiofiles.open(resolved_path, "w", encoding=encoding, newline="") as f:
            await f.write(content)

        await self._notify(FileSystemChangeType.FILE_ADDED, path)

    # Reading

    async def open_for_reading(self, path: str) -> FileStream:
        """Open a file read-only."""
        resolved_path = self._resolve_path(path)

        if not await aiofiles.os.path.isfile(resolved_path):
            raise MissingFileError(f"File not found: {path}")

        handle = await aiofiles.open(resolved_path, "rb")
        return FileStream(handle, path, readable=True, writable=False)

    async def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """Read file contents as text."""
        resolved_path = self._resolve_path(path)

        if not await aiofiles.os.path.isfile(resolved_path):
            raise MissingFileError(f"File not found: {path}")

        async with aiofiles.open(resolved_path, "r", encoding=encoding, newline="") as f:
            return await f.read()

    async def stream_read(self, path: str, chunk_size: Optional[int] = None):
        async for chunk in super().stream_read(path, chunk_size or self.chunk_size):
            yield chunk

    # Files

    async def delete_file(self, path: str) -> None:
        """Delete file. Emits FileDeleted only when something was removed."""
        resolved_path = self._resolve_for_write(path)

        if not await aiofiles.os.path.isfile(resolved_path):
            return

        try:
            await aiofiles.os.remove(resolved_path)
        except FileNotFoundError:
            # Removed concurrently by someone else
            return

        await self._notify(FileSystemChangeType.FILE_DELETED, path)

    async def file_exists(self, path: str) -> bool:
        """Check if file exists."""
        resolved_path = self._resolve_path(path)
        return await aiofiles.os.path.isfile(resolved_path)

    async def get_file_size(self, path: str) -> int:
        stat = await self._stat_file(path)
        return stat.st_size

    async def get_last_modified(self, path: str) -> datetime:
        stat = await self._stat_file(path)
        return datetime.fromtimestamp(stat.st_mtime)

    async def _stat_file(self, path: str) -> os.stat_result:
        resolved_path = self._resolve_path(path)

        if not await aiofiles.os.path.isfile(resolved_path):
            raise MissingFileError(f"File not found: {path}")

        return await aiofiles.os.stat(resolved_path)

    async def copy_file(self, source: str, destination: str) -> None:
        """Copy a file, creating destination parents and overwriting the destination."""
        source_path = self._resolve_path(source)
        destination_path = self._resolve_for_write(destination)

        if not await aiofiles.os.path.isfile(source_path):
            raise MissingFileError(f"Source file not found: {source}")

        await self._reject_directory(destination_path, destination)
        await self._ensure_parent(destination_path)
        await _copyfile(source_path, destination_path)

        await self._notify(FileSystemChangeType.FILE_ADDED, destination)

    # Directories

    async def directory_exists(self, path: str) -> bool:
        resolved_path = self._resolve_path(path)
        return await aiofiles.os.path.isdir(resolved_path)

    async def create_directory(self, path: str) -> None:
        """
        Create directory (and parents if needed).

        Emits DirectoryAdded on every call, including when the directory
        already existed.
        """
        resolved_path = self._resolve_for_write(path)
        await aiofiles.os.makedirs(resolved_path, exist_ok=True)
        await self._notify(FileSystemChangeType.DIRECTORY_ADDED, path)

    async def delete_directory(self, path: str, recursive: bool = False) -> None:
        """Remove a directory. Emits DirectoryDeleted only on actual deletion."""
        resolved_path = self._resolve_for_write(path)

        if not await aiofiles.os.path.isdir(resolved_path):
            return

        if recursive:
            await _rmtree(resolved_path)
        else:
            if await aiofiles.os.listdir(resolved_path):
                raise DirectoryNotEmptyError(f"Directory not empty: {path}")
            await aiofiles.os.rmdir(resolved_path)

        await self._notify(FileSystemChangeType.DIRECTORY_DELETED, path)

    async def enumerate_files(self, path: str) -> Iterator[str]:
        """
        List files directly inside a directory.

        Returns:
            One-shot iterator of absolute file paths (subdirectories excluded)
        """
        resolved_dir = self._resolve_path(path)

        if not await aiofiles.os.path.isdir(resolved_dir):
            raise MissingDirectoryError(f"Directory not found: {path}")

        entries = await aiofiles.os.scandir(resolved_dir)
        with entries:
            files = [entry.path for entry in entries if entry.is_file()]
        return iter(files)

    async def health_check(self) -> HealthCheckResult:
        """
        Check storage health.

        Verifies:
        - Base path exists
        - Base path is readable
        - Base path is writable
        """
        checks = {
            "base_path_exists": False,
            "base_path_readable": False,
            "base_path_writable": False,
            "disk_space_available": None
        }
        base_path = self.resolver.root or os.getcwd()

        try:
            if os.path.isdir(base_path):
                checks["base_path_exists"] = True
                checks["base_path_readable"] = os.access(base_path, os.R_OK)
                checks["base_path_writable"] = os.access(base_path, os.W_OK)

                try:
                    usage = shutil.disk_usage(base_path)
                    checks["disk_space_available"] = f"{usage.free / (1024**3):.2f} GB"
                except OSError:
                    log("WARNING", f"Could not read disk usage for {base_path}",
                        module="localfs_provider")

            healthy = all((
                checks["base_path_exists"],
                checks["base_path_readable"],
                checks["base_path_writable"],
            ))

            if healthy:
                message = "LocalFileStore healthy"
            else:
                issues = []
                if not checks["base_path_exists"]:
                    issues.append("base path doesn't exist")
                if not checks["base_path_readable"]:
                    issues.append("no read access")
                if not checks["base_path_writable"]:
                    issues.append("no write access")
                message = "LocalFileStore unhealthy: " + ", ".join(issues)

            return HealthCheckResult(
                healthy=healthy,
                message=message,
                provider="localfs",
                details={
                    "base_path": base_path,
                    "checks": checks,
                    "watchers": len(self.watchers),
                },
            )

        except Exception as exc:
            log("ERROR", f"Health check failed: {exc}", module="localfs_provider")
            return HealthCheckResult(
                healthy=False,
                message=f"Health check failed: {exc}",
                provider="localfs",
                details={
                    "error": str(exc),
                    "traceback": traceback.format_exc(),
                    "checks": checks,
                },
            )

    def __repr__(self) -> str:
        return f"<LocalFileStore base_path={self.resolver.root!r}>"
