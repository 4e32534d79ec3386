"""In-process blob store.

Keeps blobs in an insertion-ordered dict. Each call yields to the event loop
once, the way a round trip to a real store would, so concurrent tasks
interleave between the facade's check and its write.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from blobfs.errors import StoreError
from blobfs.store.base import DEFAULT_CHUNK_SIZE, BlobRecord, BlobStore, NamePattern
from blobfs.store.query import matches_query, validate_query


def _detached(record: BlobRecord) -> BlobRecord:
    """Copy of ``record`` whose metadata the caller may mutate freely."""
    return replace(record, metadata=copy.deepcopy(record.metadata))


@dataclass
class _Entry:
    record: BlobRecord
    chunks: list[bytes]


class MemoryBlobStore(BlobStore):
    """A blob store held entirely in memory.

    Usage:
        store = MemoryBlobStore()
        fs = BlobFS(store)
        await fs.create_file("/notes/todo.txt", "buy milk")
    """

    def __init__(self, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self._chunk_size = chunk_size
        self._entries: dict[UUID, _Entry] = {}

    def _entry(self, blob_id: UUID) -> _Entry:
        entry = self._entries.get(blob_id)
        if entry is None:
            raise StoreError(f"No blob with id {blob_id}")
        return entry

    async def put(
        self,
        name: str,
        metadata: Any,
        content_type: str,
        data: bytes,
    ) -> BlobRecord:
        await asyncio.sleep(0)
        record = BlobRecord(
            blob_id=uuid4(),
            name=name,
            metadata=copy.deepcopy(metadata),
            content_type=content_type,
            length=len(data),
            upload_date=datetime.now(timezone.utc),
        )
        chunks = [data[i : i + self._chunk_size] for i in range(0, len(data), self._chunk_size)]
        self._entries[record.blob_id] = _Entry(record, chunks)
        return _detached(record)

    async def find_by_name(self, name: str) -> list[BlobRecord]:
        await asyncio.sleep(0)
        return [_detached(e.record) for e in self._entries.values() if e.record.name == name]

    async def find_by_pattern(self, pattern: NamePattern) -> list[BlobRecord]:
        await asyncio.sleep(0)
        return [_detached(e.record) for e in self._entries.values() if pattern.matches(e.record.name)]

    async def find_by_query(self, query: Any) -> list[BlobRecord]:
        validate_query(query)
        await asyncio.sleep(0)
        return [_detached(e.record) for e in self._entries.values() if matches_query(e.record, query)]

    async def delete_by_id(self, blob_id: UUID) -> None:
        await asyncio.sleep(0)
        self._entry(blob_id)
        del self._entries[blob_id]

    async def rename_by_id(self, blob_id: UUID, new_name: str) -> None:
        await asyncio.sleep(0)
        entry = self._entry(blob_id)
        entry.record = replace(entry.record, name=new_name)

    async def list_all_names(self) -> list[str]:
        await asyncio.sleep(0)
        return [e.record.name for e in self._entries.values()]

    async def stream_content(self, blob_id: UUID) -> AsyncIterator[bytes]:
        await asyncio.sleep(0)
        chunks = list(self._entry(blob_id).chunks)
        for chunk in chunks:
            yield chunk

    async def replace_metadata(self, blob_id: UUID, metadata: Any) -> None:
        await asyncio.sleep(0)
        entry = self._entry(blob_id)
        entry.record = replace(entry.record, metadata=copy.deepcopy(metadata))
