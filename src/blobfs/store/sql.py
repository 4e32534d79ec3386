"""Blob store backed by SQLAlchemy asyncio.

Blobs live in two tables (see :mod:`blobfs.models.blob`): ``blob_files``
for names and metadata, ``blob_chunks`` for content. Content is streamed
back one chunk per query, so reading a large file never loads it in a
single round trip.

Usage:
    engine = make_engine("sqlite+aiosqlite:///./blobfs.db")
    await init_db(engine)
    store = SqlBlobStore(make_session_factory(engine))
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import ColumnElement, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blobfs.config import settings
from blobfs.errors import StoreError
from blobfs.models import BlobChunk, BlobFile
from blobfs.store.base import BlobRecord, BlobStore, NamePattern
from blobfs.store.query import matches_query, validate_query

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors(op: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"{op} failed: {exc}") from exc


def _to_record(blob: BlobFile) -> BlobRecord:
    upload_date = blob.upload_date
    # SQLite drops the offset on the way back
    if upload_date.tzinfo is None:
        upload_date = upload_date.replace(tzinfo=timezone.utc)
    return BlobRecord(
        blob_id=blob.blob_id,
        name=blob.name,
        metadata=blob.meta,
        content_type=blob.content_type,
        length=blob.length,
        upload_date=upload_date,
    )


class SqlBlobStore(BlobStore):
    """Chunked blob store on any SQLAlchemy async database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        chunk_size: int | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: Factory for database sessions. Each operation
                runs in its own session and commits before returning.
            chunk_size: Bytes per content chunk (default: settings.chunk_size_bytes).
        """
        self._session_factory = session_factory
        self._chunk_size = chunk_size or settings.chunk_size_bytes
        if self._chunk_size <= 0:
            raise ValueError("chunk_size must be positive")

    async def _select(self, stmt: Any) -> list[BlobRecord]:
        async with self._session_factory() as session:
            result = await session.scalars(stmt.order_by(BlobFile.upload_date, BlobFile.name))
            return [_to_record(blob) for blob in result]

    async def put(
        self,
        name: str,
        metadata: Any,
        content_type: str,
        data: bytes,
    ) -> BlobRecord:
        size = self._chunk_size
        blob = BlobFile(
            blob_id=uuid4(),
            name=name,
            meta=metadata,
            content_type=content_type,
            length=len(data),
            chunk_size=size,
            upload_date=datetime.now(timezone.utc),
        )
        blob.chunks = [
            BlobChunk(n=n, data=data[offset : offset + size])
            for n, offset in enumerate(range(0, len(data), size))
        ]
        record = _to_record(blob)
        with _translate_errors("put"):
            async with self._session_factory() as session:
                session.add(blob)
                await session.commit()
        logger.debug("Stored %s (%d bytes, %d chunks)", name, len(data), len(blob.chunks))
        return record

    async def find_by_name(self, name: str) -> list[BlobRecord]:
        with _translate_errors("find_by_name"):
            return await self._select(select(BlobFile).where(BlobFile.name == name))

    async def find_by_pattern(self, pattern: NamePattern) -> list[BlobRecord]:
        # LIKE may be case-insensitive (SQLite); re-filter to stay exact
        stmt = select(BlobFile).where(BlobFile.name.startswith(pattern.start, autoescape=True))
        with _translate_errors("find_by_pattern"):
            records = await self._select(stmt)
        return [r for r in records if pattern.matches(r.name)]

    async def find_by_query(self, query: Any) -> list[BlobRecord]:
        """Find blobs by a mapping query or a SQLAlchemy clause over BlobFile."""
        if isinstance(query, ColumnElement):
            with _translate_errors("find_by_query"):
                return await self._select(select(BlobFile).where(query))
        validate_query(query)
        with _translate_errors("find_by_query"):
            records = await self._select(select(BlobFile))
        return [r for r in records if matches_query(r, query)]

    async def delete_by_id(self, blob_id: UUID) -> None:
        with _translate_errors("delete_by_id"):
            async with self._session_factory() as session:
                await session.execute(delete(BlobChunk).where(BlobChunk.blob_id == blob_id))
                result = await session.execute(delete(BlobFile).where(BlobFile.blob_id == blob_id))
                if result.rowcount == 0:
                    await session.rollback()
                    raise StoreError(f"No blob with id {blob_id}")
                await session.commit()
        logger.debug("Deleted blob %s", blob_id)

    async def rename_by_id(self, blob_id: UUID, new_name: str) -> None:
        with _translate_errors("rename_by_id"):
            async with self._session_factory() as session:
                blob = await session.get(BlobFile, blob_id)
                if blob is None:
                    raise StoreError(f"No blob with id {blob_id}")
                old_name = blob.name
                blob.name = new_name
                await session.commit()
        logger.debug("Renamed %s to %s", old_name, new_name)

    async def list_all_names(self) -> list[str]:
        with _translate_errors("list_all_names"):
            async with self._session_factory() as session:
                result = await session.scalars(select(BlobFile.name))
                return list(result)

    async def stream_content(self, blob_id: UUID) -> AsyncIterator[bytes]:
        with _translate_errors("stream_content"):
            async with self._session_factory() as session:
                blob = await session.get(BlobFile, blob_id)
                if blob is None:
                    raise StoreError(f"No blob with id {blob_id}")
                count = -(-blob.length // blob.chunk_size)
                for n in range(count):
                    data = await session.scalar(
                        select(BlobChunk.data).where(BlobChunk.blob_id == blob_id, BlobChunk.n == n)
                    )
                    if data is None:
                        raise StoreError(f"Missing chunk {n} of blob {blob_id}")
                    yield data

    async def replace_metadata(self, blob_id: UUID, metadata: Any) -> None:
        with _translate_errors("replace_metadata"):
            async with self._session_factory() as session:
                blob = await session.get(BlobFile, blob_id)
                if blob is None:
                    raise StoreError(f"No blob with id {blob_id}")
                blob.meta = metadata
                await session.commit()
