"""Exceptions raised by blobfs.

Every failure surfaces as one of these. Backend failures are wrapped in
StoreError with the original exception chained as ``__cause__``.
"""

from __future__ import annotations


class BlobFSError(Exception):
    """Base class for all blobfs errors."""


class NotFoundError(BlobFSError, LookupError):
    """An operation required an existing file that is absent."""

    def __init__(self, name: str) -> None:
        super().__init__(f"File not found: {name}")
        self.name = name


class ConflictError(BlobFSError):
    """A candidate name collides with an existing file or folder."""

    def __init__(self, op: str, candidate: str, existing: str) -> None:
        super().__init__(f"{op}: '{candidate}' conflicts with '{existing}'")
        self.candidate = candidate
        self.existing = existing


class InvalidArgumentError(BlobFSError, ValueError):
    """Wrong argument type, or an empty name where one is required."""


class NonUniqueError(BlobFSError):
    """More than one blob shares an exact name.

    The facade never creates duplicates itself, so this signals either a
    concurrent writer or a store modified behind our back.
    """

    def __init__(self, name: str) -> None:
        super().__init__(f"Not unique: {name}")
        self.name = name


class StoreError(BlobFSError):
    """The underlying blob store failed (I/O, database, malformed query)."""
