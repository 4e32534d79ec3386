"""Tests for the blobfs CLI."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from blobfs import cli
from blobfs.db import make_engine, make_session_factory
from conftest import sqlite_url

runner = CliRunner()


@pytest.fixture
def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point the CLI at an initialized SQLite database in tmp_path."""
    engine = make_engine(sqlite_url(tmp_path))
    monkeypatch.setattr(cli, "engine", engine)
    monkeypatch.setattr(cli, "async_session_factory", make_session_factory(engine))

    result = runner.invoke(cli.app, ["init"])
    assert result.exit_code == 0, result.output

    yield

    asyncio.run(engine.dispose())


@pytest.fixture
def local_file(tmp_path: Path) -> Path:
    path = tmp_path / "notes.txt"
    path.write_text("hello world")
    return path


def invoke(*args: str):
    return runner.invoke(cli.app, list(args))


class TestInit:
    def test_init(self, db: None) -> None:
        result = invoke("init")
        assert result.exit_code == 0
        assert "Database initialized" in result.output

    def test_reset_requires_confirmation(self, db: None) -> None:
        result = runner.invoke(cli.app, ["reset"], input="n\n")
        assert result.exit_code == 0
        assert "Aborted" in result.output

    def test_reset_force(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/notes.txt")

        result = invoke("reset", "--force")

        assert result.exit_code == 0
        assert invoke("cat", "/docs/notes.txt").exit_code == 1


class TestPutAndRead:
    def test_put_then_cat(self, db: None, local_file: Path) -> None:
        result = invoke("put", str(local_file), "/docs/notes.txt")
        assert result.exit_code == 0, result.output
        assert "create_file: /docs/notes.txt" in result.output

        result = invoke("cat", "/docs/notes.txt")
        assert result.exit_code == 0
        assert result.output == "hello world"

    def test_put_conflict_fails(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/notes.txt")

        result = invoke("put", str(local_file), "/docs")

        assert result.exit_code == 1
        assert "conflicts with" in result.output

    def test_put_update(self, db: None, local_file: Path, tmp_path: Path) -> None:
        invoke("put", str(local_file), "/notes.txt")
        newer = tmp_path / "newer.txt"
        newer.write_text("v2")

        result = invoke("put", str(newer), "/notes.txt", "--update")

        assert result.exit_code == 0, result.output
        assert "updated" in result.output
        assert invoke("cat", "/notes.txt").output == "v2"

    def test_stat(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/notes.txt", "-m", "author=smith", "-m", "pages=3")

        result = invoke("stat", "/docs/notes.txt")

        assert result.exit_code == 0, result.output
        assert "text/plain" in result.output
        assert "author" in result.output
        assert "smith" in result.output

    def test_cat_missing_file(self, db: None) -> None:
        result = invoke("cat", "/nope")
        assert result.exit_code == 1
        assert "File not found: /nope" in result.output

    def test_bad_meta_pair(self, db: None, local_file: Path) -> None:
        result = invoke("put", str(local_file), "/a", "-m", "novalue")
        assert result.exit_code != 0


class TestListing:
    def test_ls(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/notes.txt")
        invoke("put", str(local_file), "/docs/old/a.txt")

        result = invoke("ls", "/docs")

        assert result.exit_code == 0, result.output
        assert "notes.txt" in result.output
        assert "old/" in result.output

    def test_ls_empty(self, db: None) -> None:
        result = invoke("ls", "/nothing")
        assert result.exit_code == 0
        assert "Empty or missing folder" in result.output

    def test_find(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/a.txt", "-m", "author=smith")
        invoke("put", str(local_file), "/b.txt", "-m", "author=jones")

        result = invoke("find", "metadata.author=smith")

        assert result.exit_code == 0, result.output
        assert "/a.txt" in result.output
        assert "/b.txt" not in result.output

    def test_find_nothing(self, db: None) -> None:
        result = invoke("find", "metadata.author=nobody")
        assert result.exit_code == 0
        assert "No matching files" in result.output

    def test_find_unknown_field(self, db: None) -> None:
        result = invoke("find", "owner=me")
        assert result.exit_code == 1
        assert "Unsupported query field" in result.output


class TestModify:
    def test_mv_file(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/notes.txt")

        result = invoke("mv", "/docs/notes.txt", "renamed.txt")

        assert result.exit_code == 0, result.output
        assert "rename_file: /docs/notes.txt to /docs/renamed.txt" in result.output
        assert invoke("cat", "/docs/renamed.txt").output == "hello world"

    def test_mv_folder(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/a.txt")
        invoke("put", str(local_file), "/docs/sub/b.txt")

        result = invoke("mv", "/docs", "/archive")

        assert result.exit_code == 0, result.output
        assert "Renamed: 2 file(s)" in result.output
        assert invoke("cat", "/archive/sub/b.txt").exit_code == 0

    def test_mv_missing(self, db: None) -> None:
        result = invoke("mv", "/nope", "/other")
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_rm_file(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/a.txt")

        result = invoke("rm", "/a.txt")

        assert result.exit_code == 0
        assert "Deleted: 1 file(s)" in result.output
        assert invoke("cat", "/a.txt").exit_code == 1

    def test_rm_recursive(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/docs/a.txt")
        invoke("put", str(local_file), "/docs/sub/b.txt")

        result = invoke("rm", "-r", "/docs")

        assert result.exit_code == 0, result.output
        assert "Deleted: 2 file(s)" in result.output

    def test_meta_set_and_show(self, db: None, local_file: Path) -> None:
        invoke("put", str(local_file), "/a.txt")

        result = invoke("meta", "/a.txt", "--set", "tags=[\"x\", \"y\"]", "--set", "owner=me")

        assert result.exit_code == 0, result.output
        shown = invoke("meta", "/a.txt")
        assert json.loads(shown.output) == {"tags": ["x", "y"], "owner": "me"}
