# tenant_storage/file_access/base.py
"""
Base filesystem interface for tenant storage.

This interface defines the contract that storage backends implement.
Paths passed to every method are relative to the backend's root.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, AsyncIterator, Dict, Iterator, Optional


class FileWriteMode(str, Enum):
    """How an opened write stream treats existing content."""
    OVERWRITE = "overwrite"          # truncate or create
    APPEND = "append"                # writes go to the end, no seeking
    RANDOM_ACCESS = "random_access"  # open or create, keep content, seek anywhere


class FileSystemChangeType(str, Enum):
    FILE_ADDED = "FileAdded"
    FILE_DELETED = "FileDeleted"
    DIRECTORY_ADDED = "DirectoryAdded"
    DIRECTORY_DELETED = "DirectoryDeleted"


@dataclass(frozen=True)
class FileSystemChangeEvent:
    """A change made through the storage layer.

    ``affected_path`` is the path exactly as the caller passed it,
    before resolution against the root.
    """
    change_type: FileSystemChangeType
    affected_path: str


@dataclass
class HealthCheckResult:
    """Result of a health check."""
    healthy: bool
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)
    provider: Optional[str] = None


class FileStorage(ABC):
    """
    Abstract base class for tenant file storage.

    All methods are async. Mutating methods notify registered watchers.
    """

    @abstractmethod
    async def open_for_writing(self, path: str, mode: FileWriteMode = FileWriteMode.OVERWRITE):
        """
        Open a file for writing.

        Args:
            path: File path (relative to root)
            mode: Write mode

        Returns:
            Writable FileStream owned by the caller

        Raises:
            UnsupportedWriteModeError: If mode is not a FileWriteMode
        """
        pass

    @abstractmethod
    async def pre_allocate(self, path: str, size: int) -> None:
        """Create or truncate a file to exactly ``size`` bytes."""
        pass

    @abstractmethod
    async def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """Write text, replacing any existing content."""
        pass

    @abstractmethod
    async def open_for_reading(self, path: str):
        """
        Open a file for reading.

        Raises:
            MissingFileError: If file doesn't exist
        """
        pass

    @abstractmethod
    async def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Read a whole file as text.

        Raises:
            MissingFileError: If file doesn't exist
        """
        pass

    @abstractmethod
    async def delete_file(self, path: str) -> None:
        """Delete a file. Missing files are ignored."""
        pass

    @abstractmethod
    async def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def directory_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def create_directory(self, path: str) -> None:
        """Create a directory (and parents). Existing directories are fine."""
        pass

    @abstractmethod
    async def delete_directory(self, path: str, recursive: bool = False) -> None:
        """
        Remove a directory. Missing directories are ignored.

        Raises:
            DirectoryNotEmptyError: If not empty and recursive is False
        """
        pass

    @abstractmethod
    async def enumerate_files(self, path: str) -> Iterator[str]:
        """
        List the files directly inside a directory.

        Raises:
            MissingDirectoryError: If directory doesn't exist
        """
        pass

    @abstractmethod
    async def get_file_size(self, path: str) -> int:
        pass

    @abstractmethod
    async def get_last_modified(self, path: str) -> datetime:
        pass

    @abstractmethod
    async def copy_file(self, source: str, destination: str) -> None:
        """
        Copy a file, overwriting the destination.

        Raises:
            MissingFileError: If source doesn't exist
        """
        pass

    @abstractmethod
    async def health_check(self) -> HealthCheckResult:
        pass

    async def stream_read(self, path: str, chunk_size: int = 8192) -> AsyncIterator[bytes]:
        """
        Stream read a file in chunks.

        Useful for large files to avoid loading entire file into memory.

        Args:
            path: File path
            chunk_size: Size of chunks to read

        Yields:
            Bytes chunks
        """
        async with await self.open_for_reading(path) as stream:
            while True:
                chunk = await stream.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
