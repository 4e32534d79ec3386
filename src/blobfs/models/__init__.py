"""Database models for blobfs."""

from blobfs.models.base import Base
from blobfs.models.blob import BlobChunk, BlobFile

__all__ = [
    "Base",
    "BlobChunk",
    "BlobFile",
]
