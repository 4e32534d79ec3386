"""Hierarchical filesystem emulated on a flat blob store.

Every blob is a file whose name is its full pathname. Folders are not stored:
a folder exists while at least one blob name starts with ``folder + "/"``.
Two consequences follow:

1. There is no "move into folder". ``rename_file("/a/x", "/b")`` renames the
   file to ``/b``; it does not put it inside ``/b``.
2. There are no empty folders. Deleting the last file under a folder removes
   the folder; ``get_files`` and ``get_folders`` of an absent folder return
   empty lists and ``delete_folder`` returns 0.

Every write that introduces a name is checked for conflicts against all
existing names, case-insensitively (see :mod:`blobfs.conflicts`). Renaming
``/my/dir/a.txt`` to ``b.txt`` fails if ``/My/Dir/B.txt`` already exists.

Concurrency: the check and the write are separate round trips to the store
and nothing locks between them. Two tasks creating the same path at the same
time can both pass the check and both write, leaving two blobs with one
name; exact lookups of that name then raise NonUniqueError. Folder-wide
operations work one blob at a time and stop at the first failure, leaving
the blobs already handled renamed or deleted.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from blobfs.conflicts import check_conflict
from blobfs.errors import InvalidArgumentError, NotFoundError
from blobfs.paths import Pathname, basename, display, resolve, resolve_pair
from blobfs.store.base import BlobRecord, BlobStore, NamePattern

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPE = "text/plain"
BINARY_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Descriptor:
    """Read-only view of a file, built fresh on every read."""

    filename: str
    pathname: str
    metadata: Any
    content_type: str
    content_length: int
    last_modified: datetime
    content: bytes | None = None
    """Only populated by BlobFS.get_file."""

    @classmethod
    def from_record(cls, record: BlobRecord) -> Descriptor:
        return cls(
            filename=basename(record.name),
            pathname=record.name,
            metadata=record.metadata,
            content_type=record.content_type,
            content_length=record.length,
            last_modified=record.upload_date,
        )


def _coerce_data(data: Any) -> tuple[bytes, str]:
    """Return (bytes, default content type) for a file payload."""
    if isinstance(data, str):
        return data.encode("utf-8"), TEXT_CONTENT_TYPE
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data), BINARY_CONTENT_TYPE
    raise InvalidArgumentError(f"Expected str or bytes for file data, got {type(data).__name__}")


def _coerce_metadata(metadata: Any, content_type: Any) -> tuple[Any, Any]:
    """Return (metadata, content_type); a str in the metadata slot is a content type."""
    if metadata is None:
        return {}, content_type
    if isinstance(metadata, str):
        return {}, metadata
    if isinstance(metadata, Mapping):
        return dict(metadata), content_type
    raise InvalidArgumentError(f"Expected a mapping for metadata, got {type(metadata).__name__}")


class BlobFS:
    """Filesystem operations over a :class:`BlobStore`.

    Usage:
        fs = BlobFS(SqlBlobStore(async_session_factory), on_modified=print)
        await fs.create_file("/docs/readme.txt", "hello", {"author": "me"})
        await fs.get_files("/docs", filenames_only=True)  # ["readme.txt"]
    """

    def __init__(
        self,
        store: BlobStore,
        on_modified: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the filesystem.

        Args:
            store: The blob store holding the files.
            on_modified: Called after every successful mutation with a short
                description such as ``"delete_file: /a/b"`` or
                ``"rename_file: /a/b to /a/c"``.
        """
        self._store = store
        self._on_modified = on_modified if callable(on_modified) else (lambda _message: None)

    @property
    def store(self) -> BlobStore:
        return self._store

    def _modified(self, message: str) -> None:
        logger.debug("Modified: %s", message)
        self._on_modified(message)

    async def _find_one(self, name: Pathname) -> BlobRecord:
        record = await self._store.get_by_exact_name(name)
        if record is None:
            raise NotFoundError(name)
        return record

    async def _check_for_conflict(self, name: Pathname, op: str) -> None:
        check_conflict(name, await self._store.list_all_names(), op)

    # ── Create / update ──────────────────────────────────────────────────────

    async def create_file(
        self,
        pathname: str,
        data: str | bytes,
        metadata: Mapping[str, Any] | str | None = None,
        content_type: str | None = None,
    ) -> int:
        """Create a new file.

        Args:
            pathname: Where to create the file.
            data: File content. A str is stored as UTF-8 text.
            metadata: Optional metadata. A str here is taken as the content type.
            content_type: Defaults to text/plain for str data and
                application/octet-stream for bytes.

        Returns:
            The number of files created (always 1).

        Raises:
            InvalidArgumentError: Bad data or metadata type, or an empty name.
            ConflictError: The name collides with an existing file or folder.
        """
        content, default_type = _coerce_data(data)
        metadata, content_type = _coerce_metadata(metadata, content_type)
        if not isinstance(content_type, str):
            content_type = default_type
        name = resolve(pathname)
        await self._check_for_conflict(name, "Create File")
        await self._store.put(name, metadata, content_type, content)
        self._modified(f"create_file: {name}")
        return 1

    async def create_or_update_file(
        self,
        pathname: str,
        data: str | bytes,
        metadata: Mapping[str, Any] | str | None = None,
        content_type: str | None = None,
    ) -> bool:
        """Create the file, or update it if it exists.

        Returns:
            True if the file was created, False if it was updated.
        """
        exists = await self.is_file(pathname)
        if exists:
            await self.update_file(pathname, data, metadata, content_type)
        else:
            await self.create_file(pathname, data, metadata, content_type)
        return not exists

    async def update_file(
        self,
        pathname: str,
        data: str | bytes,
        metadata: Mapping[str, Any] | str | None = None,
        content_type: str | None = None,
    ) -> None:
        """Replace the content of an existing file.

        The file is deleted and created again. When ``metadata`` is omitted
        the existing metadata is kept.
        """
        if isinstance(metadata, str):
            content_type = metadata
            metadata = None
        if metadata is None:
            metadata = await self.get_metadata(pathname)
        # validate before deleting anything
        _coerce_data(data)
        _coerce_metadata(metadata, content_type)
        await self.delete_file(pathname)
        await self.create_file(pathname, data, metadata, content_type)

    async def update_metadata(self, pathname: str, metadata: Any) -> int:
        """Replace the metadata of an existing file. Content is untouched.

        Returns:
            The number of files updated (always 1).

        Raises:
            InvalidArgumentError: ``metadata`` is not a mapping.
            NotFoundError: No such file.
        """
        if metadata is not None and not isinstance(metadata, Mapping):
            raise InvalidArgumentError(f"Expected a mapping for metadata, got {type(metadata).__name__}")
        metadata = dict(metadata or {})
        name = resolve(pathname)
        record = await self._find_one(name)
        await self._store.replace_metadata(record.blob_id, metadata)
        self._modified(f"update_metadata: {name}")
        return 1

    # ── Delete ───────────────────────────────────────────────────────────────

    async def delete_file(self, pathname: str) -> int:
        """Delete a file.

        Returns:
            The number of files deleted (always 1).

        Raises:
            NotFoundError: No such file.
            NonUniqueError: More than one blob has this name.
        """
        name = resolve(pathname)
        record = await self._find_one(name)
        await self._store.delete_by_id(record.blob_id)
        self._modified(f"delete_file: {name}")
        return 1

    async def delete_folder(self, folder: str) -> int:
        """Delete every file below ``folder``, like ``rm -rf``.

        Returns:
            The number of files deleted; 0 if the folder does not exist.
        """
        name = resolve(folder)
        records = await self._store.find_by_pattern(NamePattern.subtree(name))
        for record in records:
            await self._store.delete_by_id(record.blob_id)
        logger.info("Deleted %d file(s) under %s", len(records), display(name))
        self._modified(f"delete_folder: {display(name)}")
        return len(records)

    # ── Read ─────────────────────────────────────────────────────────────────

    async def find_files(self, query: Any) -> list[Descriptor]:
        """Find files matching a store query.

        Example:
            await fs.find_files({"metadata.author.name.last": "Smith"})
        """
        records = await self._store.find_by_query(query)
        return [Descriptor.from_record(r) for r in records]

    async def get_file(self, pathname: str) -> Descriptor:
        """Get a file descriptor including its content."""
        name = resolve(pathname)
        record = await self._find_one(name)
        chunks = [chunk async for chunk in self._store.stream_content(record.blob_id)]
        return replace(Descriptor.from_record(record), content=b"".join(chunks))

    async def get_files(self, folder: str, filenames_only: bool = False) -> list[Descriptor] | list[str]:
        """List the files directly inside ``folder``. Content is not included."""
        name = resolve(folder)
        records = await self._store.find_by_pattern(NamePattern.children(name))
        if filenames_only:
            return [basename(r.name) for r in records]
        return [Descriptor.from_record(r) for r in records]

    async def get_folders(self, parent: str) -> list[str]:
        """List the names of the folders directly inside ``parent``."""
        name = resolve(parent)
        records = await self._store.find_by_pattern(NamePattern.nested(name))
        folders: list[str] = []
        for record in records:
            folder = record.name[len(name) + 1 :].split("/", 1)[0]
            if folder not in folders:
                folders.append(folder)
        return folders

    async def get_metadata(self, pathname: str) -> Any:
        name = resolve(pathname)
        record = await self._find_one(name)
        return record.metadata

    async def is_file(self, pathname: str) -> bool:
        """True if a file has exactly this (case-sensitive) name."""
        records = await self._store.find_by_name(resolve(pathname))
        return bool(records)

    async def is_folder(self, pathname: str) -> bool:
        """True if any file lives below ``pathname``."""
        records = await self._store.find_by_pattern(NamePattern.subtree(resolve(pathname)))
        return bool(records)

    # ── Rename ───────────────────────────────────────────────────────────────

    async def rename_file(self, old_pathname: str, new_pathname: str) -> int:
        """Rename a file.

        A relative ``new_pathname`` is resolved against the file's folder, so
        ``rename_file("/dir/a", "b")`` gives ``/dir/b``.

        Returns:
            The number of files renamed (always 1).

        Raises:
            NotFoundError: The file does not exist.
            ConflictError: The new name collides with a file or folder.
        """
        old_name, new_name = resolve_pair(old_pathname, new_pathname)
        record = await self._find_one(old_name)
        await self._check_for_conflict(new_name, "Rename File")
        await self._store.rename_by_id(record.blob_id, new_name)
        self._modified(f"rename_file: {old_name} to {new_name}")
        return 1

    async def rename_folder(self, old_folder: str, new_folder: str) -> int:
        """Rename a folder by renaming every file below it.

        Returns:
            The number of files renamed; 0 if the old folder is empty.

        Raises:
            ConflictError: The new folder collides with a file or folder.
        """
        old_name, new_name = resolve_pair(old_folder, new_folder)
        await self._check_for_conflict(new_name, "Rename Folder")
        records = await self._store.find_by_pattern(NamePattern.subtree(old_name))
        for record in records:
            await self._store.rename_by_id(record.blob_id, new_name + record.name[len(old_name) :])
        logger.info("Renamed %d file(s) from %s to %s", len(records), display(old_name), display(new_name))
        self._modified(f"rename_folder: {old_name} to {new_name}")
        return len(records)
