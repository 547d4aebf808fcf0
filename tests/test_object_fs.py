"""
Tests for ObjectFS, the file system facade.

Tests focus on:
- Open modes and their effect at open time
- Directory markers and virtual folders
- Remove, recursive remove and rename
- Sharing of resources between handles
"""

import pytest

from blobfs.config import BlobFSConfig, StoreConfig
from blobfs.errors import (
    DirectoryNotEmptyError,
    EmptyObjectNameError,
    InvalidNameError,
    IsADirectoryError,
    NotADirectoryError,
    NotFoundError,
    PermissionDeniedError,
    UnimplementedError,
)
from blobfs.store import LocalObjectStore, MemoryObjectStore, ObjectKey
from blobfs.vfs import FOLDER_SIZE, ObjectFS, OpenFlag, OpenMode


@pytest.fixture
def fs():
    return ObjectFS(MemoryObjectStore())


@pytest.fixture
def local_fs(tmp_path):
    return ObjectFS(LocalObjectStore(str(tmp_path / "store")))


class TestOpenModes:
    """What each mode does when the file is opened."""

    def test_create_write_close_read(self, fs):
        """
        Given: A new file
        When: Creating it, writing, closing and reading it back
        Then: The data round-trips
        """
        with fs.create("bucket/new.txt") as f:
            assert f.mode is OpenMode.READ_WRITE
            f.write(b"payload")

        with fs.open("bucket/new.txt") as f:
            assert f.read() == b"payload"

    def test_create_empties_existing(self, fs):
        fs.write_bytes("bucket/f", b"old")

        fs.create("bucket/f").close()

        assert fs.read_bytes("bucket/f") == b""

    def test_read_only_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.open("bucket/missing")

    def test_read_write_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.open("bucket/missing", "r+")

    def test_truncate_mode_replaces_content(self, fs):
        fs.write_bytes("bucket/f", b"hello world")

        with fs.open("bucket/f", "w") as f:
            f.write(b"hi")

        assert fs.read_bytes("bucket/f") == b"hi"

    def test_truncate_mode_on_missing_creates(self, fs):
        fs.open("bucket/f", "w").close()

        assert fs.stat("bucket/f").size == 0

    def test_append(self, fs):
        fs.write_bytes("bucket/log", b"hello")

        with fs.open("bucket/log", "a") as f:
            assert f.tell() == 5
            f.write(b" world")

        assert fs.read_bytes("bucket/log") == b"hello world"

    def test_append_creates_missing(self, fs):
        with fs.open("bucket/log", "a") as f:
            f.write(b"first")

        assert fs.read_bytes("bucket/log") == b"first"

    def test_exclusive_on_existing(self, fs):
        fs.write_bytes("bucket/f", b"x")

        with pytest.raises(PermissionDeniedError):
            fs.open("bucket/f", "x")

    def test_exclusive_on_missing(self, fs):
        fs.open("bucket/f", "x").close()

        assert fs.is_file("bucket/f")

    def test_create_flag_keeps_existing_content(self, fs):
        """
        Given: An existing file
        When: Opening with WRITE|CREATE and overwriting the first byte
        Then: The rest of the file is kept
        """
        fs.write_bytes("bucket/f", b"hello")

        with fs.open_file("bucket/f", OpenFlag.WRITE | OpenFlag.CREATE) as f:
            assert f.mode is OpenMode.CREATE
            f.write(b"J")

        assert fs.read_bytes("bucket/f") == b"Jello"

    def test_create_flag_on_missing(self, fs):
        with fs.open_file("bucket/f", OpenFlag.WRITE | OpenFlag.CREATE) as f:
            f.write(b"new")

        assert fs.read_bytes("bucket/f") == b"new"

    def test_writable_modes_reject_directories(self, fs):
        fs.mkdir("bucket/dir")

        for mode in ("r+", "w", "a"):
            with pytest.raises(IsADirectoryError):
                fs.open("bucket/dir", mode)
        with pytest.raises(IsADirectoryError):
            fs.create("bucket/dir")

    def test_overwrite_same_length(self, fs):
        fs.write_bytes("bucket/f", b"hello")

        with fs.open("bucket/f", "r+") as f:
            f.write(b"WORLD")

        assert fs.read_bytes("bucket/f") == b"WORLD"

    def test_failed_open_does_not_leak_reference(self, fs):
        with pytest.raises(NotFoundError):
            fs.open("bucket/missing")

        assert fs.registry.refcount(ObjectKey("bucket", "missing")) == 0


class TestSharedResources:
    """Handles on the same key share one resource."""

    def test_second_open_sees_pending_write(self, fs):
        writer = fs.open("bucket/f", "w")
        writer.write(b"abc")

        with fs.open("bucket/f") as reader:
            assert reader.read() == b"abc"

        writer.close()

    def test_same_resource(self, fs):
        fs.write_bytes("bucket/f", b"x")
        a = fs.open("bucket/f")
        b = fs.open("bucket/f")

        assert a._resource is b._resource
        assert fs.registry.refcount(a.key) == 2

        a.close()
        b.close()

    def test_stale_handle_close_keeps_new_reference(self, fs):
        """
        Given: A handle open on x when another file is renamed onto x
        When: A new handle opens x and the stale handle then closes
        Then: The new handle's resource keeps its reference
        """
        fs.write_bytes("bucket/x", b"old")
        fs.write_bytes("bucket/y", b"new")
        stale = fs.open("bucket/x")

        fs.rename("bucket/y", "bucket/x")
        fresh = fs.open("bucket/x")
        stale.close()

        assert fs.registry.refcount(fresh.key) == 1
        assert fs.registry.get(fresh.key) is fresh._resource
        assert fresh.read() == b"new"
        fresh.close()
        assert fs.registry.refcount(fresh.key) == 0

    def test_evicting_open_resource_warns(self, fs, caplog):
        fs.write_bytes("bucket/x", b"data")
        f = fs.open("bucket/x")

        with caplog.at_level("WARNING", logger="blobfs.vfs.registry"):
            fs.remove("bucket/x")

        assert "1 open handle(s)" in caplog.text
        f.close()

    def test_close_flushes_everything(self, fs):
        f = fs.open("bucket/f", "w")
        f.write(b"pending")

        fs.close()

        assert fs.store.head(ObjectKey("bucket", "f")).size == 7

    def test_context_manager_closes(self, fs):
        with ObjectFS(fs.store) as other:
            other.open("bucket/g", "w").write(b"data")

        assert fs.read_bytes("bucket/g") == b"data"


class TestDirectories:
    """mkdir, makedirs and listings."""

    def test_mkdir_writes_marker(self, fs):
        fs.mkdir("bucket/dir")

        assert fs.store.head(ObjectKey("bucket", "dir/")).size == 0
        assert fs.is_dir("bucket/dir")

    def test_mkdir_is_idempotent(self, fs):
        fs.mkdir("bucket/dir")
        fs.mkdir("bucket/dir")

        assert fs.listdir("bucket") == ["dir"]

    def test_virtual_folder_in_listing(self, fs):
        """
        Given: mkdir("bucket/a/b") without a marker for "a"
        When: Listing "bucket/a"
        Then: "b" is listed as a directory
        """
        fs.mkdir("bucket/a/b")

        assert fs.listdir("bucket/a") == ["b"]
        assert fs.stat("bucket/a").is_dir
        assert fs.stat("bucket/a/b").is_dir
        with pytest.raises(NotFoundError):
            fs.store.head(ObjectKey("bucket", "a/b"))

    def test_makedirs_creates_every_marker(self, fs):
        fs.makedirs("bucket/x/y/z")

        for path in ("x/", "x/y/", "x/y/z/"):
            assert fs.store.head(ObjectKey("bucket", path)).size == 0

    def test_readdir_infos(self, fs):
        fs.mkdir("bucket/sub")
        fs.write_bytes("bucket/file", b"12345")

        infos = {i.name: i for i in fs.readdir("bucket")}

        assert infos["sub"].is_dir
        assert infos["sub"].size == FOLDER_SIZE
        assert infos["file"].size == 5

    def test_readdir_count(self, fs):
        for name in ("c", "a", "b"):
            fs.write_bytes(f"bucket/{name}", b"")

        assert [i.name for i in fs.readdir("bucket", 2)] == ["a", "b"]

    def test_listdir_on_file(self, fs):
        fs.write_bytes("bucket/f", b"")

        with pytest.raises(NotADirectoryError):
            fs.listdir("bucket/f")

    def test_listdir_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.listdir("bucket/missing")

    def test_root_is_a_directory(self, fs):
        assert fs.stat("bucket").is_dir
        assert fs.listdir("bucket") == []

    def test_stat_root_without_container(self, fs):
        with pytest.raises(InvalidNameError):
            fs.stat("")


class TestRemove:
    """remove and remove_all."""

    def test_remove_file(self, fs):
        fs.write_bytes("bucket/f", b"x")

        fs.remove("bucket/f")

        assert not fs.exists("bucket/f")

    def test_remove_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.remove("bucket/missing")

    def test_remove_non_empty_directory(self, fs):
        """
        Given: A directory with a file in it
        When: Removing the directory
        Then: DirectoryNotEmptyError, until the file is removed
        """
        fs.makedirs("bucket/d")
        fs.write_bytes("bucket/d/f", b"x")

        with pytest.raises(DirectoryNotEmptyError):
            fs.remove("bucket/d")

        fs.remove("bucket/d/f")
        fs.remove("bucket/d")

        assert not fs.exists("bucket/d")

    def test_remove_evicts_resource(self, fs):
        fs.write_bytes("bucket/f", b"x")
        key = ObjectKey("bucket", "f")
        assert key in fs.registry

        fs.remove("bucket/f")

        assert key not in fs.registry

    def test_remove_container_root(self, fs):
        with pytest.raises(EmptyObjectNameError):
            fs.remove("bucket")

    def test_remove_all(self, fs):
        fs.makedirs("bucket/d/e/f")
        fs.write_bytes("bucket/d/top", b"1")
        fs.write_bytes("bucket/d/e/f/deep", b"2")
        fs.write_bytes("bucket/keep", b"3")

        fs.remove_all("bucket/d")

        assert fs.listdir("bucket") == ["keep"]
        assert [e.name for e in fs.store.list_prefix("bucket")] == ["keep"]

    def test_remove_all_virtual_directory(self, fs):
        fs.write_bytes("bucket/v/a", b"1")
        fs.write_bytes("bucket/v/b/c", b"2")

        fs.remove_all("bucket/v")

        assert not fs.exists("bucket/v")

    def test_remove_all_file(self, fs):
        fs.write_bytes("bucket/f", b"x")

        fs.remove_all("bucket/f")

        assert not fs.exists("bucket/f")

    def test_remove_all_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.remove_all("bucket/missing")

    def test_remove_all_discards_pending_writes(self, fs):
        f = fs.open("bucket/d/f", "w")
        f.write(b"never committed")

        fs.remove_all("bucket/d")
        f.close()

        assert not fs.exists("bucket/d/f")


class TestRename:
    """rename as copy-then-delete."""

    def test_rename_file(self, fs):
        fs.write_bytes("bucket/x", b"data")

        fs.rename("bucket/x", "bucket/y")

        with pytest.raises(NotFoundError):
            fs.stat("bucket/x")
        assert fs.stat("bucket/y").size == 4
        assert fs.read_bytes("bucket/y") == b"data"

    def test_rename_across_containers(self, fs):
        fs.write_bytes("bucket/x", b"data")

        fs.rename("bucket/x", "other/x")

        assert fs.read_bytes("other/x") == b"data"
        assert not fs.exists("bucket/x")

    def test_rename_flushes_pending_write(self, fs):
        f = fs.open("bucket/p", "w")
        f.write(b"pending")

        fs.rename("bucket/p", "bucket/q")
        f.close()

        assert fs.read_bytes("bucket/q") == b"pending"
        assert not fs.exists("bucket/p")

    def test_rename_directory(self, fs):
        """
        Given: A directory tree with markers and files
        When: Renaming the directory
        Then: Every object moves under the new prefix
        """
        fs.makedirs("bucket/src/sub")
        fs.write_bytes("bucket/src/f1", b"1")
        fs.write_bytes("bucket/src/sub/f2", b"2")

        fs.rename("bucket/src", "bucket/dst")

        assert fs.listdir("bucket") == ["dst"]
        assert fs.listdir("bucket/dst") == ["f1", "sub"]
        assert fs.read_bytes("bucket/dst/sub/f2") == b"2"
        assert fs.store.head(ObjectKey("bucket", "dst/")).size == 0
        assert not fs.exists("bucket/src")

    def test_rename_directory_into_itself(self, fs):
        fs.makedirs("bucket/a")

        with pytest.raises(InvalidNameError):
            fs.rename("bucket/a", "bucket/a/b")

    def test_rename_file_onto_directory(self, fs):
        fs.write_bytes("bucket/f", b"x")
        fs.mkdir("bucket/d")

        with pytest.raises(IsADirectoryError):
            fs.rename("bucket/f", "bucket/d")

    def test_rename_missing(self, fs):
        with pytest.raises(NotFoundError):
            fs.rename("bucket/missing", "bucket/y")

    def test_rename_to_itself(self, fs):
        fs.write_bytes("bucket/f", b"x")

        fs.rename("bucket/f", "bucket/f/")

        assert fs.read_bytes("bucket/f") == b"x"


class TestMetadata:
    """stat, exists and the unsupported operations."""

    def test_stat_file(self, fs):
        fs.write_bytes("bucket/dir/f.txt", b"12345")

        info = fs.stat("bucket/dir/f.txt")

        assert info.name == "f.txt"
        assert info.size == 5
        assert not info.is_dir

    def test_exists_is_dir_is_file(self, fs):
        fs.write_bytes("bucket/dir/f", b"")

        assert fs.exists("bucket/dir")
        assert fs.is_dir("bucket/dir")
        assert not fs.is_file("bucket/dir")
        assert fs.is_file("bucket/dir/f")
        assert not fs.exists("bucket/nope")

    @pytest.mark.parametrize("call", [
        lambda fs: fs.chmod("bucket/f", 0o644),
        lambda fs: fs.chtimes("bucket/f", None, None),
        lambda fs: fs.chown("bucket/f", 0, 0),
    ])
    def test_unimplemented(self, fs, call):
        with pytest.raises(UnimplementedError):
            call(fs)


class TestFixedContainer:
    """File system bound to one container."""

    def test_paths_are_relative_to_container(self):
        store = MemoryObjectStore()
        fs = ObjectFS(store, container="bucket")

        fs.write_bytes("notes/a.txt", b"a")

        assert store.head(ObjectKey("bucket", "notes/a.txt")).size == 1
        assert fs.listdir("") == ["notes"]
        assert fs.listdir(".") == ["notes"]
        with fs.open("notes/a.txt") as f:
            assert f.name == "notes/a.txt"

    def test_from_config(self):
        config = BlobFSConfig(store=StoreConfig(backend="memory", container="bk"))
        config.fs.padding_chunk_size = 7

        fs = ObjectFS.from_config(config)

        assert isinstance(fs.store, MemoryObjectStore)
        assert fs.resolver.container == "bk"
        assert fs.padding_chunk_size == 7


class TestLocalBackend:
    """End-to-end behavior on the local directory store."""

    def test_partial_write_and_truncate(self, local_fs):
        local_fs.write_bytes("bucket/f", b"hello world")

        with local_fs.open("bucket/f", "r+") as f:
            f.write_at(b"WORLD", 6)
            f.truncate(14)

        assert local_fs.read_bytes("bucket/f") == b"hello WORLD   "

    def test_directory_lifecycle(self, local_fs):
        local_fs.makedirs("bucket/a/b")
        local_fs.write_bytes("bucket/a/b/c", b"x")

        local_fs.rename("bucket/a", "bucket/z")
        assert local_fs.listdir("bucket/z/b") == ["c"]

        local_fs.remove_all("bucket/z")
        assert local_fs.listdir("bucket") == []

    def test_deeply_nested_path(self, local_fs):
        """
        Given: A path nested deeper than one file name can spell out
        When: Creating, listing and removing it
        Then: The local store handles it like any other path
        """
        deep = "bucket/" + "d/" * 90
        local_fs.makedirs(deep)
        local_fs.write_bytes(deep + "f", b"deep")

        assert local_fs.listdir(deep) == ["f"]
        assert local_fs.read_bytes(deep + "f") == b"deep"

        local_fs.remove_all("bucket/d")
        assert local_fs.listdir("bucket") == []

    def test_empty_segment_in_name(self, local_fs):
        local_fs.write_bytes("bucket/a//x", b"x")

        assert local_fs.listdir("bucket/a") == []
