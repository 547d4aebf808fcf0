"""
Tests for the blobfs command line interface.
"""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from blobfs import config
from blobfs.cli import app
from blobfs.decorators import EXIT_CODES
from blobfs.errors import ErrorKind


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Keep the user's real config file out of the tests."""
    with patch.object(config, 'get_config_path', return_value=tmp_path / "cfg" / "config.json"):
        yield


@pytest.fixture
def store_root(tmp_path):
    return str(tmp_path / "store")


def invoke(store_root, *args, **kwargs):
    return runner.invoke(app, ["--root", store_root, *args], **kwargs)


class TestFileCommands:
    """put, cat, get, write and truncate."""

    def test_put_and_cat(self, store_root, tmp_path):
        """
        Given: A local file
        When: Uploading it and printing it back
        Then: The content round-trips
        """
        local = tmp_path / "local.txt"
        local.write_bytes(b"hello world")

        result = invoke(store_root, "put", str(local), "bucket/docs/hello.txt")
        assert result.exit_code == 0

        result = invoke(store_root, "cat", "bucket/docs/hello.txt")
        assert result.exit_code == 0
        assert result.output == "hello world"

    def test_put_from_stdin(self, store_root):
        result = invoke(store_root, "put", "-", "bucket/stdin.txt", input="piped")
        assert result.exit_code == 0

        assert invoke(store_root, "cat", "bucket/stdin.txt").output == "piped"

    def test_cat_range(self, store_root):
        invoke(store_root, "put", "-", "bucket/f", input="0123456789")

        result = invoke(store_root, "cat", "bucket/f", "--offset", "3", "--size", "4")

        assert result.output == "3456"

    def test_get(self, store_root, tmp_path):
        invoke(store_root, "put", "-", "bucket/f", input="data")
        dest = tmp_path / "out.bin"

        result = invoke(store_root, "get", "bucket/f", str(dest))

        assert result.exit_code == 0
        assert dest.read_bytes() == b"data"

    def test_write_at_offset(self, store_root):
        invoke(store_root, "write", "bucket/notes.txt", "hello world")

        result = invoke(store_root, "write", "bucket/notes.txt", "WORLD", "--offset", "6")

        assert result.exit_code == 0
        assert invoke(store_root, "cat", "bucket/notes.txt").output == "hello WORLD"

    def test_write_append(self, store_root):
        invoke(store_root, "write", "bucket/log", "a")
        invoke(store_root, "write", "bucket/log", "b", "--append")

        assert invoke(store_root, "cat", "bucket/log").output == "ab"

    def test_write_past_end(self, store_root):
        invoke(store_root, "write", "bucket/f", "abc")

        result = invoke(store_root, "write", "bucket/f", "x", "--offset", "10")

        assert result.exit_code == EXIT_CODES[ErrorKind.OUT_OF_RANGE]

    def test_truncate(self, store_root):
        invoke(store_root, "write", "bucket/f", "hello")

        result = invoke(store_root, "truncate", "bucket/f", "8")

        assert result.exit_code == 0
        assert invoke(store_root, "cat", "bucket/f").output == "hello   "

    def test_cat_missing(self, store_root):
        result = invoke(store_root, "cat", "bucket/missing")

        assert result.exit_code == EXIT_CODES[ErrorKind.NOT_FOUND]
        assert "no such file or directory" in result.output


class TestDirectoryCommands:
    """ls, stat, mkdir, rm and mv."""

    def test_mkdir_and_ls(self, store_root):
        result = invoke(store_root, "mkdir", "-p", "bucket/a/b")
        assert result.exit_code == 0

        result = invoke(store_root, "ls", "bucket/a")
        assert result.exit_code == 0
        assert "b/" in result.output

    def test_ls_long(self, store_root):
        invoke(store_root, "write", "bucket/file.txt", "12345")

        result = invoke(store_root, "ls", "-l", "bucket")

        assert result.exit_code == 0
        assert "file.txt" in result.output

    def test_stat(self, store_root):
        invoke(store_root, "write", "bucket/file.txt", "12345")

        result = invoke(store_root, "stat", "bucket/file.txt")

        assert result.exit_code == 0
        assert "file.txt" in result.output
        assert "5" in result.output

    def test_rm_non_empty_directory(self, store_root):
        invoke(store_root, "write", "bucket/d/f", "x")

        result = invoke(store_root, "rm", "bucket/d")

        assert result.exit_code == EXIT_CODES[ErrorKind.DIRECTORY_NOT_EMPTY]

    def test_rm_recursive(self, store_root):
        invoke(store_root, "write", "bucket/d/f", "x")

        result = invoke(store_root, "rm", "-r", "bucket/d")

        assert result.exit_code == 0
        assert invoke(store_root, "cat", "bucket/d/f").exit_code == EXIT_CODES[ErrorKind.NOT_FOUND]

    def test_mv(self, store_root):
        invoke(store_root, "write", "bucket/x", "data")

        result = invoke(store_root, "mv", "bucket/x", "bucket/y")

        assert result.exit_code == 0
        assert invoke(store_root, "cat", "bucket/y").output == "data"

    def test_container_option(self, store_root):
        invoke(store_root, "write", "bucket/inside.txt", "x")

        result = runner.invoke(app, ["--root", store_root, "--container", "bucket", "ls"])

        assert result.exit_code == 0
        assert "inside.txt" in result.output

    def test_missing_container(self, store_root):
        result = invoke(store_root, "ls", "")

        assert result.exit_code == EXIT_CODES[ErrorKind.INVALID_NAME]


class TestConfigCommands:
    """config show, init and set."""

    def test_init_and_show(self):
        result = runner.invoke(app, ["config", "init"])
        assert result.exit_code == 0
        assert config.get_config_path().exists()

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "Store Settings" in result.output

    def test_set(self):
        result = runner.invoke(app, ["config", "set", "--container", "photos", "--padding-chunk-size", "64"])

        assert result.exit_code == 0
        loaded = config.load_config()
        assert loaded.store.container == "photos"
        assert loaded.fs.padding_chunk_size == 64

    def test_color_setting_applies_to_consoles(self):
        """
        Given: cli.color turned off in the config
        When: Running any command
        Then: Both the output and the error console drop colors
        """
        from blobfs import cli, decorators

        runner.invoke(app, ["config", "set", "--no-cli-color"])
        with patch.object(cli.console, "no_color", False), \
                patch.object(decorators.console, "no_color", False):
            result = runner.invoke(app, ["about"])

            assert result.exit_code == 0
            assert cli.console.no_color is True
            assert decorators.console.no_color is True

        runner.invoke(app, ["config", "set", "--cli-color"])
        with patch.object(cli.console, "no_color", True):
            runner.invoke(app, ["about"])

            assert cli.console.no_color is False

    def test_set_invalid_backend(self):
        result = runner.invoke(app, ["config", "set", "--backend", "tape"])

        assert result.exit_code == 1


class TestAbout:
    def test_about(self):
        result = runner.invoke(app, ["about"])

        assert result.exit_code == 0
        assert "blobfs" in result.output
