"""
tenant_storage/file_access/watchers/registry.py

Registry of change watchers for a storage backend.

Membership is guarded by a lock; dispatch copies the membership under that lock
and releases it before calling anyone, so a slow or failing watcher never blocks
registration, removal or delivery to the others.
"""
from __future__ import annotations

import asyncio
import inspect
import threading
from typing import Any, Callable, List, Protocol, Tuple, Union, runtime_checkable

from tenant_storage.file_access.base import FileSystemChangeEvent
from tenant_storage.monitoring.logger import log


@runtime_checkable
class FileSystemWatcher(Protocol):
    """Observer of storage changes. May be implemented sync or async."""

    def on_file_system_changed(self, change: FileSystemChangeEvent) -> Any:
        ...


Watcher = Union[FileSystemWatcher, Callable[[FileSystemChangeEvent], Any]]


class WatcherHandle:
    """Removal capability returned by ``WatcherRegistry.add_watcher``.

    Usage:
        handle = registry.add_watcher(watcher)
        ...
        handle.release()

    or as a context manager. Releasing more than once does nothing.
    """

    def __init__(self, registry: "WatcherRegistry", watcher: Watcher) -> None:
        self._registry = registry
        self._watcher = watcher
        self._released = False
        self._lock = threading.Lock()

    @property
    def watcher(self) -> Watcher:
        return self._watcher

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Unregister the watcher now; it is absent from every later dispatch."""
        with self._lock:
            if self._released:
                return
            self._released = True
        self._registry.remove_watcher(self._watcher)

    close = release

    def __enter__(self) -> "WatcherHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


class WatcherRegistry:
    """Thread-safe set of watchers with isolated, sequential delivery."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._watchers: List[Watcher] = []

    def add_watcher(self, watcher: Watcher) -> WatcherHandle:
        """Register a watcher and return the handle that removes it."""
        if watcher is None:
            raise ValueError("watcher cannot be None")

        with self._lock:
            self._watchers.append(watcher)

        log("DEBUG", f"Watcher registered: {_describe(watcher)}", module="watcher_registry")
        return WatcherHandle(self, watcher)

    def remove_watcher(self, watcher: Watcher) -> None:
        """
        Unregister a watcher and run its ``close()`` hook if it has one.

        Errors raised by the hook are logged and discarded.
        """
        if watcher is None:
            raise ValueError("watcher cannot be None")

        with self._lock:
            removed = False
            for idx, existing in enumerate(self._watchers):
                if existing is watcher:
                    del self._watchers[idx]
                    removed = True
                    break

        if not removed:
            return

        log("DEBUG", f"Watcher removed: {_describe(watcher)}", module="watcher_registry")

        cleanup = getattr(watcher, "close", None)
        if callable(cleanup):
            try:
                result = cleanup()
                if inspect.isawaitable(result):
                    # Only sync cleanup is supported here; don't leave the coroutine dangling
                    close_coro = getattr(result, "close", None)
                    if callable(close_coro):
                        close_coro()
                    log("WARNING", f"Async close() ignored for watcher {_describe(watcher)}",
                        module="watcher_registry")
            except Exception as exc:
                log("WARNING", f"Watcher cleanup error: {exc}", module="watcher_registry")

    @property
    def watchers(self) -> Tuple[Watcher, ...]:
        """Point-in-time snapshot of the registered watchers."""
        with self._lock:
            return tuple(self._watchers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._watchers)

    async def notify(self, event: FileSystemChangeEvent) -> None:
        """Deliver ``event`` to every watcher registered at dispatch time.

        Watchers are called one after another. Async watchers are awaited;
        sync ones run in the default executor so they don't block the loop.
        Watcher errors never propagate to the caller.
        """
        snapshot = self.watchers
        if not snapshot:
            return

        for watcher in snapshot:
            try:
                await _invoke(watcher, event)
            except Exception as exc:
                log("ERROR", f"Watcher callback error: {exc}", module="watcher_registry",
                    details={"watcher": _describe(watcher),
                             "change_type": event.change_type.value,
                             "path": event.affected_path})


async def _invoke(watcher: Watcher, event: FileSystemChangeEvent) -> None:
    callback = getattr(watcher, "on_file_system_changed", None)
    if callback is None:
        if not callable(watcher):
            raise TypeError(f"Not a watcher: {watcher!r}")
        callback = watcher

    if inspect.iscoroutinefunction(callback):
        await callback(event)
        return

    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(None, callback, event)
    # sync callables that hand back a coroutine (e.g. functools.partial of an async def)
    if inspect.isawaitable(result):
        await result


def _describe(watcher: Watcher) -> str:
    return getattr(watcher, "__qualname__", None) or type(watcher).__name__
