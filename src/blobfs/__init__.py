"""blobfs: a hierarchical filesystem emulated on a flat blob store."""

__version__ = "0.1.0"

from blobfs.errors import (
    BlobFSError,
    ConflictError,
    InvalidArgumentError,
    NonUniqueError,
    NotFoundError,
    StoreError,
)
from blobfs.filesystem import BlobFS, Descriptor
from blobfs.store import BlobRecord, BlobStore, MemoryBlobStore, NamePattern, SqlBlobStore

__all__ = [
    "BlobFS",
    "BlobFSError",
    "BlobRecord",
    "BlobStore",
    "ConflictError",
    "Descriptor",
    "InvalidArgumentError",
    "MemoryBlobStore",
    "NamePattern",
    "NonUniqueError",
    "NotFoundError",
    "SqlBlobStore",
    "StoreError",
    "__version__",
]
