"""Name conflict detection.

A candidate conflicts with an existing name when, after lower-casing both
and appending a slash, either one is a prefix of the other:

    Candidate    Existing     Result
    ---------------------------------------------------
    /a           /a/b         Conflict (already a folder)
    /a/b         /a/b         Conflict (duplicate)
    /A/B         /a/b         Conflict (differs only by case)
    /b           /a/b         OK
    /a/b/c       /a/b         Conflict (already a file)
    /a/c         /a/b         OK

The comparison is case-insensitive even though exact-name lookups in the
store are case-sensitive.
"""

from __future__ import annotations

from collections.abc import Iterable

from blobfs.errors import ConflictError, InvalidArgumentError


def check_conflict(name: str, existing_names: Iterable[str], op: str = "BlobFS") -> None:
    """Raise if ``name`` would collide with any of ``existing_names``.

    The whole name set must be passed in; collisions can happen at any depth.

    Raises:
        InvalidArgumentError: The name is empty or blank.
        ConflictError: The name collides with an existing file or folder.
    """
    if not name or not name.strip():
        raise InvalidArgumentError(f"{op}: The name must not be empty")
    candidate = name.lower() + "/"
    for existing in existing_names:
        other = existing.lower() + "/"
        if other.startswith(candidate) or candidate.startswith(other):
            raise ConflictError(op, candidate[:-1], other[:-1])
