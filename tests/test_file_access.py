# tests/test_file_access.py
"""
Tests for the file access layer (LocalFileStore).
"""
import io
import os
from datetime import datetime, timedelta

import aiofiles
import pytest

from tenant_storage.file_access.base import FileSystemChangeType, FileWriteMode
from tenant_storage.file_access.errors import (
    DirectoryNotEmptyError,
    InvalidPathError,
    MissingDirectoryError,
    MissingFileError,
    NotAFileError,
    PathSecurityError,
    UnsupportedWriteModeError,
)
from tenant_storage.file_access.localfs_provider import LocalFileStore
from tenant_storage.file_access.streams import FileStream

ADDED = FileSystemChangeType.FILE_ADDED.value
DELETED = FileSystemChangeType.FILE_DELETED.value
DIR_ADDED = FileSystemChangeType.DIRECTORY_ADDED.value
DIR_DELETED = FileSystemChangeType.DIRECTORY_DELETED.value


class TestLocalFileStoreConfig:

    def test_requires_base_path(self):
        with pytest.raises(ValueError, match="base_path"):
            LocalFileStore({})

    def test_empty_base_path_disables_confinement(self, temp_dir):
        store = LocalFileStore({"base_path": ""})
        assert store.resolver.root is None
        assert store._resolve_path(str(temp_dir / "x.txt")) == str(temp_dir / "x.txt")

    def test_from_settings(self, temp_dir):
        store = LocalFileStore.from_settings(str(temp_dir))
        assert store.resolver.root == os.path.abspath(str(temp_dir))

    @pytest.mark.asyncio
    async def test_health_check(self, store):
        result = await store.health_check()
        assert result.healthy is True
        assert result.provider == "localfs"
        assert result.details["checks"]["base_path_exists"] is True
        assert result.details["checks"]["base_path_writable"] is True

    @pytest.mark.asyncio
    async def test_health_check_missing_base_path(self, temp_dir):
        store = LocalFileStore({"base_path": str(temp_dir / "missing")})
        result = await store.health_check()
        assert result.healthy is False
        assert "base path doesn't exist" in result.message


class TestTextFiles:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [
        "",
        "Hello, storage!",
        "héllo wörld ✓ 日本語 🚀",
        "line one\r\nline two\nline three\r",
    ])
    async def test_write_and_read_round_trip(self, store, content):
        await store.write_text("docs/note.txt", content)
        assert await store.read_text("docs/note.txt") == content

    @pytest.mark.asyncio
    async def test_write_text_creates_parents(self, store, temp_dir):
        await store.write_text("a/b/c/file.txt", "x")
        assert (temp_dir / "a" / "b" / "c" / "file.txt").read_text() == "x"

    @pytest.mark.asyncio
    async def test_write_text_emits_file_added_every_time(self, store, watcher):
        await store.write_text("x.txt", "one")
        await store.write_text("x.txt", "two")
        assert watcher.pairs() == [(ADDED, "x.txt"), (ADDED, "x.txt")]

    @pytest.mark.asyncio
    async def test_read_text_with_encoding(self, store, temp_dir):
        (temp_dir / "latin.txt").write_bytes("café".encode("latin-1"))
        assert await store.read_text("latin.txt", encoding="latin-1") == "café"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, store):
        with pytest.raises(MissingFileError):
            await store.read_text("nope.txt")
        with pytest.raises(FileNotFoundError):
            await store.read_text("nope.txt")

    @pytest.mark.asyncio
    async def test_path_security(self, store):
        """Paths outside base_path are rejected before touching the disk."""
        with pytest.raises(PathSecurityError):
            await store.read_text("../../etc/passwd")
        with pytest.raises(PermissionError):
            await store.write_text("../escape.txt", "x")

    @pytest.mark.asyncio
    async def test_blank_path_rejected(self, store):
        with pytest.raises(InvalidPathError):
            await store.file_exists("  ")


class TestStreams:

    @pytest.mark.asyncio
    async def test_overwrite_truncates(self, store):
        await store.write_text("f.bin", "a much longer original body")

        async with await store.open_for_writing("f.bin", FileWriteMode.OVERWRITE) as stream:
            await stream.write(b"short")

        assert await store.read_text("f.bin") == "short"

    @pytest.mark.asyncio
    async def test_overwrite_notifies_on_close(self, store, watcher):
        stream = await store.open_for_writing("upload.bin")
        await stream.write(b"data")
        assert watcher.pairs() == []

        await stream.close()
        assert watcher.pairs() == [(ADDED, "upload.bin")]

        # releasing again does not notify again
        await stream.close()
        assert watcher.pairs() == [(ADDED, "upload.bin")]

    @pytest.mark.asyncio
    async def test_stream_released_and_notified_on_error(self, store, watcher):
        with pytest.raises(RuntimeError):
            async with await store.open_for_writing("partial.bin") as stream:
                await stream.write(b"part")
                raise RuntimeError("upload aborted")

        assert stream.closed is True
        assert watcher.pairs() == [(ADDED, "partial.bin")]

    @pytest.mark.asyncio
    async def test_failing_close_hook_does_not_raise(self, temp_dir):
        calls = []

        async def hook():
            calls.append("hook")
            raise RuntimeError("notification failed")

        handle = await aiofiles.open(str(temp_dir / "hooked.bin"), "wb")
        stream = FileStream(handle, "hooked.bin", readable=False, writable=True, on_close=hook)
        await stream.write(b"data")

        await stream.close()
        await stream.close()

        assert stream.closed is True
        assert calls == ["hook"]
        assert (temp_dir / "hooked.bin").read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_append_mode(self, store, watcher):
        await store.write_text("log.txt", "first\n")
        watcher.events.clear()

        async with await store.open_for_writing("log.txt", FileWriteMode.APPEND) as stream:
            await stream.write(b"second\n")
            assert stream.seekable() is False
            with pytest.raises(io.UnsupportedOperation):
                await stream.seek(0)

        assert await store.read_text("log.txt") == "first\nsecond\n"
        assert watcher.pairs() == []

    @pytest.mark.asyncio
    async def test_random_access_creates_missing_file(self, store, watcher):
        async with await store.open_for_writing("new/ra.bin", FileWriteMode.RANDOM_ACCESS) as stream:
            await stream.seek(3)
            await stream.write(b"xy")

        async with await store.open_for_reading("new/ra.bin") as stream:
            assert await stream.read() == b"\x00\x00\x00xy"
        assert watcher.pairs() == [(ADDED, "new/ra.bin")]

    @pytest.mark.asyncio
    async def test_random_access_preserves_content(self, store):
        await store.write_text("keep.txt", "abcdef")

        async with await store.open_for_writing("keep.txt", FileWriteMode.RANDOM_ACCESS) as stream:
            await stream.seek(2)
            await stream.write(b"ZZ")

        assert await store.read_text("keep.txt") == "abZZef"

    @pytest.mark.asyncio
    async def test_string_modes_accepted(self, store):
        async with await store.open_for_writing("s.txt", "append") as stream:
            await stream.write(b"ok")
        assert await store.read_text("s.txt") == "ok"

    @pytest.mark.asyncio
    async def test_unsupported_write_mode(self, store):
        with pytest.raises(UnsupportedWriteModeError):
            await store.open_for_writing("bad.bin", "truncate-sideways")
        with pytest.raises(ValueError):
            await store.open_for_writing("bad.bin", 42)

    @pytest.mark.asyncio
    async def test_chunked_out_of_order_upload(self, store, watcher):
        await store.pre_allocate("chunked.bin", 1000)
        assert await store.get_file_size("chunked.bin") == 1000

        chunks = [(0, b"Hello"), (500, b"World"), (200, b"Test")]
        for offset, data in chunks:
            async with await store.open_for_writing("chunked.bin", FileWriteMode.RANDOM_ACCESS) as stream:
                await stream.seek(offset)
                await stream.write(data)

        assert await store.get_file_size("chunked.bin") == 1000

        async with await store.open_for_reading("chunked.bin") as stream:
            content = await stream.read()

        assert len(content) == 1000
        for offset, data in chunks:
            assert content[offset:offset + len(data)] == data
        assert content[5:200] == b"\x00" * 195

        # pre_allocate + three random-access closes
        assert watcher.pairs() == [(ADDED, "chunked.bin")] * 4

    @pytest.mark.asyncio
    async def test_pre_allocate_truncates_existing(self, store):
        await store.write_text("big.bin", "x" * 50)
        await store.pre_allocate("big.bin", 10)
        assert await store.get_file_size("big.bin") == 10

    @pytest.mark.asyncio
    async def test_pre_allocate_rejects_negative_size(self, store):
        with pytest.raises(ValueError):
            await store.pre_allocate("neg.bin", -1)

    @pytest.mark.asyncio
    async def test_read_stream_is_read_only(self, store):
        await store.write_text("ro.txt", "data")
        async with await store.open_for_reading("ro.txt") as stream:
            assert stream.readable() is True
            assert stream.writable() is False
            with pytest.raises(io.UnsupportedOperation):
                await stream.write(b"nope")

    @pytest.mark.asyncio
    async def test_closed_stream_rejects_io(self, store):
        stream = await store.open_for_writing("c.bin")
        await stream.close()
        with pytest.raises(ValueError):
            await stream.write(b"late")

    @pytest.mark.asyncio
    async def test_open_missing_file_for_reading(self, store):
        with pytest.raises(MissingFileError):
            await store.open_for_reading("ghost.bin")

    @pytest.mark.asyncio
    async def test_stream_read_chunks(self, store):
        await store.write_text("chunks.txt", "abcdefghij")
        chunks = [chunk async for chunk in store.stream_read("chunks.txt", chunk_size=4)]
        assert chunks == [b"abcd", b"efgh", b"ij"]


class TestFileOperations:

    @pytest.mark.asyncio
    async def test_file_exists(self, store):
        assert await store.file_exists("test.txt") is False
        await store.write_text("test.txt", "test")
        assert await store.file_exists("test.txt") is True

    @pytest.mark.asyncio
    async def test_file_exists_false_for_directory(self, store):
        await store.create_directory("only_dir")
        assert await store.file_exists("only_dir") is False
        assert await store.directory_exists("only_dir") is True

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store, watcher):
        await store.write_text("delete_me.txt", "bye")
        await store.delete_file("delete_me.txt")
        await store.delete_file("delete_me.txt")

        assert await store.file_exists("delete_me.txt") is False
        assert watcher.pairs() == [(ADDED, "delete_me.txt"), (DELETED, "delete_me.txt")]

    @pytest.mark.asyncio
    async def test_delete_missing_file_is_silent(self, store, watcher):
        await store.delete_file("never/existed.txt")
        assert watcher.pairs() == []

    @pytest.mark.asyncio
    async def test_size_and_last_modified(self, store):
        before = datetime.now() - timedelta(seconds=5)
        await store.write_text("meta.txt", "12345")

        assert await store.get_file_size("meta.txt") == 5
        modified = await store.get_last_modified("meta.txt")
        assert before <= modified <= datetime.now() + timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_size_and_last_modified_missing(self, store):
        with pytest.raises(MissingFileError):
            await store.get_file_size("missing.txt")
        with pytest.raises(MissingFileError):
            await store.get_last_modified("missing.txt")

    @pytest.mark.asyncio
    async def test_copy_file(self, store, watcher):
        await store.write_text("src.txt", "payload")
        await store.write_text("out/dst.txt", "old")
        watcher.events.clear()

        await store.copy_file("src.txt", "out/dst.txt")

        assert await store.read_text("out/dst.txt") == "payload"
        assert watcher.pairs() == [(ADDED, "out/dst.txt")]

    @pytest.mark.asyncio
    async def test_copy_file_creates_destination_parents(self, store):
        await store.write_text("src.txt", "payload")
        await store.copy_file("src.txt", "deep/er/copy.txt")
        assert await store.read_text("deep/er/copy.txt") == "payload"

    @pytest.mark.asyncio
    async def test_copy_missing_source(self, store, watcher):
        with pytest.raises(MissingFileError):
            await store.copy_file("ghost.txt", "copy.txt")
        assert watcher.pairs() == []

    @pytest.mark.asyncio
    async def test_copy_rejects_escaping_destination(self, store):
        await store.write_text("src.txt", "payload")
        with pytest.raises(PathSecurityError):
            await store.copy_file("src.txt", "../stolen.txt")


class TestDirectoryOperations:

    @pytest.mark.asyncio
    async def test_create_directory_twice_emits_twice(self, store, watcher):
        await store.create_directory("subdir/nested")
        await store.create_directory("subdir/nested")

        assert await store.directory_exists("subdir/nested") is True
        assert watcher.pairs() == [(DIR_ADDED, "subdir/nested"), (DIR_ADDED, "subdir/nested")]

    @pytest.mark.asyncio
    async def test_delete_empty_directory(self, store, watcher):
        await store.create_directory("empty")
        watcher.events.clear()

        await store.delete_directory("empty")

        assert await store.directory_exists("empty") is False
        assert watcher.pairs() == [(DIR_DELETED, "empty")]

    @pytest.mark.asyncio
    async def test_delete_non_empty_directory_requires_recursive(self, store, watcher):
        await store.write_text("full/file.txt", "x")
        watcher.events.clear()

        with pytest.raises(DirectoryNotEmptyError):
            await store.delete_directory("full")
        assert await store.directory_exists("full") is True
        assert watcher.pairs() == []

        await store.delete_directory("full", recursive=True)
        assert await store.directory_exists("full") is False
        assert watcher.pairs() == [(DIR_DELETED, "full")]

    @pytest.mark.asyncio
    async def test_delete_missing_directory_is_silent(self, store, watcher):
        await store.delete_directory("nothing", recursive=True)
        assert watcher.pairs() == []

    @pytest.mark.asyncio
    async def test_enumerate_files(self, store, temp_dir):
        await store.write_text("list/file1.txt", "data1")
        await store.write_text("list/file2.txt", "data2")
        await store.write_text("list/sub/inner.txt", "hidden")

        files = await store.enumerate_files("list")
        names = sorted(os.path.basename(p) for p in files)

        assert names == ["file1.txt", "file2.txt"]

    @pytest.mark.asyncio
    async def test_enumerate_files_is_one_shot(self, store):
        await store.write_text("once/a.txt", "a")
        files = await store.enumerate_files("once")
        assert len(list(files)) == 1
        assert list(files) == []

    @pytest.mark.asyncio
    async def test_enumerate_files_returns_absolute_paths(self, store, temp_dir):
        await store.write_text("abs/a.txt", "a")
        files = list(await store.enumerate_files("abs"))
        assert files == [os.path.join(os.path.abspath(str(temp_dir)), "abs", "a.txt")]

    @pytest.mark.asyncio
    async def test_enumerate_missing_directory(self, store):
        with pytest.raises(MissingDirectoryError):
            await store.enumerate_files("no_such_dir")


class TestWatcherIsolation:

    @pytest.mark.asyncio
    async def test_failing_watcher_does_not_break_operation(self, store, watcher):
        def broken(event):
            raise RuntimeError("watcher exploded")

        store.add_watcher(broken)

        await store.write_text("safe.txt", "still written")

        assert await store.read_text("safe.txt") == "still written"
        assert watcher.pairs() == [(ADDED, "safe.txt")]

    @pytest.mark.asyncio
    async def test_two_watchers_then_one(self, store, watcher_factory):
        first, second = watcher_factory(), watcher_factory()
        store.add_watcher(first)
        second_handle = store.add_watcher(second)

        await store.write_text("x.txt", "v")
        assert first.pairs() == [(ADDED, "x.txt")]
        assert second.pairs() == [(ADDED, "x.txt")]

        second_handle.release()
        await store.write_text("x.txt", "v2")

        assert first.pairs() == [(ADDED, "x.txt"), (ADDED, "x.txt")]
        assert second.pairs() == [(ADDED, "x.txt")]
        assert second.closed == 1


class TestRootProtection:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("root_path", [".", "./", ".//."])
    async def test_recursive_delete_of_root_is_refused(self, store, watcher, temp_dir, root_path):
        await store.write_text("tenant/a.txt", "x")

        with pytest.raises(PathSecurityError):
            await store.delete_directory(root_path, recursive=True)

        assert temp_dir.is_dir()
        assert (temp_dir / "tenant" / "a.txt").read_text() == "x"
        assert watcher.pairs() == [(ADDED, "tenant/a.txt")]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", [
        lambda s: s.write_text(".", "x"),
        lambda s: s.open_for_writing("."),
        lambda s: s.open_for_writing(".", FileWriteMode.RANDOM_ACCESS),
        lambda s: s.pre_allocate(".", 16),
        lambda s: s.create_directory("."),
        lambda s: s.delete_file("."),
        lambda s: s.delete_directory("."),
        lambda s: s.copy_file("src.txt", "."),
    ])
    async def test_mutators_refuse_the_root(self, store, watcher, operation):
        await store.write_text("src.txt", "s")

        with pytest.raises(PathSecurityError):
            await operation(store)

        assert watcher.pairs() == [(ADDED, "src.txt")]

    @pytest.mark.asyncio
    async def test_root_can_still_be_read(self, store, temp_dir):
        await store.write_text("top.txt", "t")

        assert await store.directory_exists(".") is True
        assert list(await store.enumerate_files(".")) == [
            os.path.join(os.path.abspath(str(temp_dir)), "top.txt")
        ]


class TestInvalidTargets:

    @pytest.mark.asyncio
    async def test_nul_in_path_is_invalid(self, store, temp_dir):
        with pytest.raises(InvalidPathError):
            await store.write_text("a\x00b.txt", "x")
        with pytest.raises(InvalidPathError):
            await store.file_exists("a\x00b.txt")

        assert list(temp_dir.iterdir()) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("operation", [
        lambda s: s.open_for_writing("folder"),
        lambda s: s.open_for_writing("folder", FileWriteMode.APPEND),
        lambda s: s.open_for_writing("folder", FileWriteMode.RANDOM_ACCESS),
        lambda s: s.write_text("folder", "x"),
        lambda s: s.pre_allocate("folder", 8),
        lambda s: s.copy_file("src.txt", "folder"),
    ])
    async def test_writing_over_a_directory(self, store, watcher, temp_dir, operation):
        await store.create_directory("folder")
        await store.write_text("src.txt", "s")

        with pytest.raises(NotAFileError) as exc_info:
            await operation(store)

        assert isinstance(exc_info.value, IsADirectoryError)
        assert (temp_dir / "folder").is_dir()
        assert watcher.pairs() == [(DIR_ADDED, "folder"), (ADDED, "src.txt")]
