"""Tests pinning down what the filesystem does NOT guarantee.

Conflict checks and writes are separate store round trips, and folder-wide
operations touch one blob at a time. These tests document the resulting
behaviour so that a change to it is a visible, deliberate decision.
"""

from __future__ import annotations

import asyncio
from uuid import UUID

import pytest

from blobfs.errors import ConflictError, NonUniqueError, StoreError
from blobfs.filesystem import BlobFS
from blobfs.store import MemoryBlobStore


class FailingStore(MemoryBlobStore):
    """Memory store whose Nth rename or delete fails."""

    def __init__(self, fail_on: int) -> None:
        super().__init__()
        self._fail_on = fail_on
        self._calls = 0

    def _tick(self) -> None:
        self._calls += 1
        if self._calls == self._fail_on:
            raise StoreError("connection lost")

    async def rename_by_id(self, blob_id: UUID, new_name: str) -> None:
        self._tick()
        await super().rename_by_id(blob_id, new_name)

    async def delete_by_id(self, blob_id: UUID) -> None:
        self._tick()
        await super().delete_by_id(blob_id)


class TestCheckThenActRace:
    """Concurrent writers are not serialized."""

    async def test_concurrent_creates_both_succeed(self) -> None:
        fs = BlobFS(MemoryBlobStore())

        results = await asyncio.gather(
            fs.create_file("/race", "first"),
            fs.create_file("/race", "second"),
        )

        # Both passed the conflict check before either wrote
        assert results == [1, 1]
        assert await fs.is_file("/race")
        with pytest.raises(NonUniqueError):
            await fs.get_file("/race")

    async def test_sequential_creates_are_checked(self) -> None:
        fs = BlobFS(MemoryBlobStore())
        await fs.create_file("/race", "first")
        with pytest.raises(ConflictError):
            await fs.create_file("/race", "second")


class TestBatchPartialFailure:
    """Folder-wide operations stop at the first failure without rollback."""

    async def test_rename_folder_partially_applied(self) -> None:
        store = FailingStore(fail_on=2)
        fs = BlobFS(store)
        for name in ("/dir/a", "/dir/b", "/dir/c"):
            await fs.create_file(name, "x")
        notifications: list[str] = []
        fs = BlobFS(store, on_modified=notifications.append)

        with pytest.raises(StoreError, match="connection lost"):
            await fs.rename_folder("/dir", "/new")

        assert sorted(await store.list_all_names()) == ["/dir/b", "/dir/c", "/new/a"]
        assert notifications == []

    async def test_delete_folder_partially_applied(self) -> None:
        store = FailingStore(fail_on=3)
        fs = BlobFS(store)
        for name in ("/dir/a", "/dir/b", "/dir/c", "/dir/d"):
            await fs.create_file(name, "x")

        with pytest.raises(StoreError):
            await fs.delete_folder("/dir")

        assert await store.list_all_names() == ["/dir/c", "/dir/d"]
