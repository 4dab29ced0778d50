# tenant_storage/file_access/streams.py
"""
Caller-owned async file streams.

Wraps an aiofiles handle so the storage layer can refuse seeking in append
mode and run a hook (change notification) once the stream is released.
"""
import io
import os
from typing import Any, Awaitable, Callable, Optional

from tenant_storage.monitoring.logger import log


class FileStream:
    """
    Async stream over a single open file.

    Use as ``async with await store.open_for_writing(path) as stream:`` so the
    handle is released on every exit path. ``close()`` is idempotent and the
    on-close hook runs exactly once, after the handle is closed.
    """

    def __init__(
        self,
        handle: Any,
        path: str,
        *,
        readable: bool,
        writable: bool,
        seekable: bool = True,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self._handle = handle
        self.path = path
        self._readable = readable
        self._writable = writable
        self._seekable = seekable
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return self._readable

    def writable(self) -> bool:
        return self._writable

    def seekable(self) -> bool:
        return self._seekable

    async def read(self, size: int = -1) -> bytes:
        self._check_open()
        if not self._readable:
            raise io.UnsupportedOperation("Stream is not readable")
        return await self._handle.read(size)

    async def write(self, data: bytes) -> int:
        self._check_open()
        if not self._writable:
            raise io.UnsupportedOperation("Stream is not writable")
        return await self._handle.write(data)

    async def seek(self, offset: int, whence: int = os.SEEK_SET) -> int:
        self._check_open()
        if not self._seekable:
            raise io.UnsupportedOperation("Seeking is not supported in append mode")
        return await self._handle.seek(offset, whence)

    async def tell(self) -> int:
        self._check_open()
        return await self._handle.tell()

    async def flush(self) -> None:
        self._check_open()
        if self._writable:
            await self._handle.flush()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._handle.close()
        finally:
            if self._on_close is not None:
                hook, self._on_close = self._on_close, None
                try:
                    await hook()
                except Exception as exc:
                    log("ERROR", f"Stream close hook failed for {self.path}: {exc}",
                        module="streams")

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("I/O operation on closed stream")

    async def __aenter__(self) -> "FileStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def __repr__(self) -> str:
        mode = "r" if self._readable else ""
        mode += "w" if self._writable else ""
        return f"<FileStream path={self.path!r} mode={mode} closed={self._closed}>"
