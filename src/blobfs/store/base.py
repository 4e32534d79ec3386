"""Blob store contract consumed by the filesystem facade.

A blob store is a flat collection of named byte blobs with metadata. It has
no notion of folders; the facade builds those from name prefixes using
:class:`NamePattern` queries.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from blobfs.errors import NonUniqueError

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 255 * 1024


@dataclass(frozen=True)
class BlobRecord:
    """A stored blob without its content."""

    blob_id: UUID
    name: str
    metadata: Any
    content_type: str
    length: int
    upload_date: datetime


class PatternKind(str, Enum):
    """Shape of the names matched below a prefix."""

    SUBTREE = "subtree"  # prefix/...
    CHILDREN = "children"  # prefix/<segment>
    NESTED = "nested"  # prefix/<segment>/...<segment>


@dataclass(frozen=True)
class NamePattern:
    """A literal, case-sensitive prefix query over blob names.

    ``prefix`` is a canonical pathname (the empty string for the root); the
    slash separating it from the rest of the name is implied.
    """

    prefix: str
    kind: PatternKind

    @classmethod
    def subtree(cls, prefix: str) -> NamePattern:
        return cls(prefix, PatternKind.SUBTREE)

    @classmethod
    def children(cls, prefix: str) -> NamePattern:
        return cls(prefix, PatternKind.CHILDREN)

    @classmethod
    def nested(cls, prefix: str) -> NamePattern:
        return cls(prefix, PatternKind.NESTED)

    @property
    def start(self) -> str:
        """The literal string every matching name begins with."""
        return self.prefix + "/"

    def matches(self, name: str) -> bool:
        if not name.startswith(self.start):
            return False
        rest = name[len(self.start) :]
        if self.kind is PatternKind.SUBTREE:
            return True
        if self.kind is PatternKind.CHILDREN:
            return bool(rest) and "/" not in rest
        head, sep, tail = rest.partition("/")
        return bool(head) and bool(sep) and bool(tail)


class BlobStore(ABC):
    """Abstract async blob store.

    Implementations are not required to enforce name uniqueness; the
    facade checks for conflicts before every write.
    """

    @abstractmethod
    async def put(
        self,
        name: str,
        metadata: Any,
        content_type: str,
        data: bytes,
    ) -> BlobRecord:
        """Store a new blob and return its record."""

    @abstractmethod
    async def find_by_name(self, name: str) -> list[BlobRecord]:
        """Return every blob whose name equals ``name`` exactly."""

    @abstractmethod
    async def find_by_pattern(self, pattern: NamePattern) -> list[BlobRecord]:
        """Return blobs matching ``pattern`` in upload order."""

    @abstractmethod
    async def find_by_query(self, query: Any) -> list[BlobRecord]:
        """Return blobs matching an arbitrary query (see :mod:`blobfs.store.query`)."""

    @abstractmethod
    async def delete_by_id(self, blob_id: UUID) -> None:
        """Remove a blob and its content."""

    @abstractmethod
    async def rename_by_id(self, blob_id: UUID, new_name: str) -> None:
        """Give a blob a new name. Content and metadata are untouched."""

    @abstractmethod
    async def list_all_names(self) -> list[str]:
        """Return the names of all blobs in the store."""

    @abstractmethod
    def stream_content(self, blob_id: UUID) -> AsyncIterator[bytes]:
        """Yield the blob content chunk by chunk."""

    @abstractmethod
    async def replace_metadata(self, blob_id: UUID, metadata: Any) -> None:
        """Replace the metadata of a blob."""

    async def get_by_exact_name(self, name: str) -> BlobRecord | None:
        """Return the single blob named ``name``, or None.

        Raises:
            NonUniqueError: More than one blob has this name.
        """
        records = await self.find_by_name(name)
        if len(records) > 1:
            logger.warning("Found %d blobs named %s", len(records), name)
            raise NonUniqueError(name)
        return records[0] if records else None


def record_fields(record: BlobRecord) -> Mapping[str, Any]:
    """Fields of a record addressable from queries."""
    return {
        "name": record.name,
        "content_type": record.content_type,
        "length": record.length,
        "upload_date": record.upload_date,
        "metadata": record.metadata,
    }
