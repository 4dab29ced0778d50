import threading
from typing import List

import pytest

from tenant_storage.file_access.base import FileSystemChangeEvent
from tenant_storage.file_access.localfs_provider import LocalFileStore


class RecordingWatcher:
    """Collects every event it receives. Safe to call from executor threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self.events: List[FileSystemChangeEvent] = []
        self.closed = 0

    def on_file_system_changed(self, change: FileSystemChangeEvent) -> None:
        with self._lock:
            self.events.append(change)

    def close(self) -> None:
        self.closed += 1

    def pairs(self):
        with self._lock:
            return [(e.change_type.value, e.affected_path) for e in self.events]


@pytest.fixture
def temp_dir(tmp_path):
    return tmp_path


@pytest.fixture
def store(temp_dir):
    return LocalFileStore({"base_path": str(temp_dir)})


@pytest.fixture
def watcher(store):
    recorder = RecordingWatcher()
    store.add_watcher(recorder)
    return recorder


@pytest.fixture
def watcher_factory():
    return RecordingWatcher
