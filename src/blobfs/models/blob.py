"""Blob models for chunked blob storage.

The layout follows MongoDB GridFS: one row per blob holding the name and
metadata, and the content split into fixed-size chunks in a second table.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Integer, LargeBinary, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from blobfs.models.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlobFile(Base):
    """A named blob.

    ``name`` is the full pathname of the file. It is indexed but not unique:
    uniqueness is checked by the filesystem before every write.
    """

    __tablename__ = "blob_files"

    blob_id: Mapped[UUID] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(4096), index=True)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Any] = mapped_column("metadata", JSON().with_variant(JSONB(), "postgresql"), default=dict)
    content_type: Mapped[str] = mapped_column(String(255))
    length: Mapped[int] = mapped_column(BigInteger)
    chunk_size: Mapped[int] = mapped_column(Integer)
    upload_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, index=True)

    # Relationships
    chunks: Mapped[list[BlobChunk]] = relationship(
        back_populates="blob",
        cascade="all, delete-orphan",
        order_by="BlobChunk.n",
    )


class BlobChunk(Base):
    """One fixed-size piece of a blob's content. The last chunk may be short."""

    __tablename__ = "blob_chunks"

    blob_id: Mapped[UUID] = mapped_column(
        ForeignKey("blob_files.blob_id", ondelete="CASCADE"), primary_key=True
    )
    n: Mapped[int] = mapped_column(Integer, primary_key=True)
    data: Mapped[bytes] = mapped_column(LargeBinary)

    # Relationships
    blob: Mapped[BlobFile] = relationship(back_populates="chunks")
