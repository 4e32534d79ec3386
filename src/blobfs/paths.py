"""Path resolution for the virtual hierarchy.

Blob names are canonical absolute paths: one leading slash, no trailing
slash, no empty, ``.`` or ``..`` segments. The root resolves to the empty
string so that ``root + "/" + segment`` never produces a double slash.

Examples:
    >>> resolve("a/../../b\\\\   c  \\\\ . \\\\ d/e")
    '/b/c/d/e'
    >>> resolve_pair("/a/b/old", "new")
    ('/a/b/old', '/a/b/new')
    >>> resolve_pair("/a/b/old", "../new")
    ('/a/b/old', '/a/new')
    >>> resolve_pair("/a/b/old", "/dir/new")
    ('/a/b/old', '/dir/new')

Nothing here touches the store.
"""

from __future__ import annotations

from typing import Any, NewType

Pathname = NewType("Pathname", str)
"""A canonical absolute path. Only produced by :func:`resolve` and :func:`resolve_pair`."""

ROOT = Pathname("")


def split(path: Any) -> tuple[list[str], bool]:
    """Split a raw path into trimmed, non-empty segments.

    Returns:
        Tuple of (segments, is_absolute).
    """
    path = "" if path is None else str(path)
    path = path.replace("\\", "/").lstrip()
    is_absolute = path.startswith("/")
    segments = [s.strip() for s in path.split("/")]
    return [s for s in segments if s], is_absolute


def normalize(segments: list[str]) -> list[str]:
    """Fold ``.`` and ``..`` segments left to right.

    Excess ``..`` at the root is absorbed.
    """
    result: list[str] = []
    for segment in segments:
        if segment == "..":
            if result:
                result.pop()
        elif segment != ".":
            result.append(segment)
    return result


def _join(segments: list[str]) -> Pathname:
    return Pathname("/".join(["", *segments]))


def resolve(path: Any) -> Pathname:
    """Resolve a path as absolute, even when it has no leading slash."""
    segments, _ = split(path)
    return _join(normalize(segments))


def resolve_pair(source: Any, target: Any) -> tuple[Pathname, Pathname]:
    """Resolve a rename target against its source.

    A relative target replaces the last segment of the source, so it is
    resolved from the source's parent. An absolute target ignores the source.
    """
    source_segments, _ = split(source)
    source_segments = normalize(source_segments)
    target_segments, target_is_absolute = split(target)
    if not target_is_absolute:
        target_segments = [*source_segments[:-1], *target_segments]
    return _join(source_segments), _join(normalize(target_segments))


def basename(pathname: str) -> str:
    """Return the last segment of a pathname."""
    return pathname[pathname.rfind("/") + 1 :]


def display(pathname: str) -> str:
    """Render a pathname for messages, showing the root as ``/``."""
    return pathname or "/"
