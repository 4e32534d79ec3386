"""Blob store backends for blobfs.

Submodules:
- base: the BlobStore contract, BlobRecord and NamePattern
- query: Mongo-style query matching for find_files
- memory: in-process store
- sql: SQLAlchemy asyncio store with chunked content
"""

from blobfs.store.base import BlobRecord, BlobStore, NamePattern, PatternKind
from blobfs.store.memory import MemoryBlobStore
from blobfs.store.sql import SqlBlobStore

__all__ = [
    "BlobRecord",
    "BlobStore",
    "MemoryBlobStore",
    "NamePattern",
    "PatternKind",
    "SqlBlobStore",
]
