"""Mongo-style query matching over blob records.

A query is a mapping of field to condition::

    {"metadata.author.name.last": "Smith"}
    {"content_type": {"$in": ["text/plain", "text/markdown"]}}
    {"length": {"$gte": 1024}, "name": {"$regex": r"\\.txt$"}}

Fields are ``name`` (alias ``filename``), ``content_type`` (alias
``contentType``), ``length``, ``upload_date`` (alias ``uploadDate``),
``metadata`` and dotted paths into the metadata. A condition that is not an
operator mapping is compared for equality.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any

from blobfs.errors import StoreError
from blobfs.store.base import BlobRecord, record_fields

FIELD_ALIASES = {
    "filename": "name",
    "contentType": "content_type",
    "uploadDate": "upload_date",
}

QUERY_FIELDS = frozenset({"name", "content_type", "length", "upload_date", "metadata"})

_MISSING = object()


def _compare(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def check(value: Any, operand: Any) -> bool:
        if value is _MISSING or value is None:
            return False
        try:
            return op(value, operand)
        except TypeError:
            return False

    return check


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "$eq": lambda value, operand: value == operand,
    "$ne": lambda value, operand: value != operand,
    "$in": lambda value, operand: value in operand,
    "$nin": lambda value, operand: value not in operand,
    "$exists": lambda value, operand: (value is not _MISSING) == bool(operand),
    "$regex": lambda value, operand: isinstance(value, str) and re.search(operand, value) is not None,
    "$gt": _compare(lambda value, operand: value > operand),
    "$gte": _compare(lambda value, operand: value >= operand),
    "$lt": _compare(lambda value, operand: value < operand),
    "$lte": _compare(lambda value, operand: value <= operand),
}



# These compare a missing field as if it were None
_NULL_MATCHING = frozenset({"$eq", "$ne", "$in", "$nin"})


def _split_field(field: str) -> tuple[str, str]:
    if not isinstance(field, str):
        raise StoreError(f"Unsupported query field: {field!r}")
    head, _, rest = field.partition(".")
    head = FIELD_ALIASES.get(head, head)
    if head not in QUERY_FIELDS or (rest and head != "metadata"):
        raise StoreError(f"Unsupported query field: {field}")
    return head, rest


def validate_query(query: Any) -> None:
    """Check that ``query`` can be evaluated, without looking at any record.

    Raises:
        StoreError: The query is not a mapping, or uses an unknown field or
            operator, or an invalid regular expression.
    """
    if not isinstance(query, Mapping):
        raise StoreError(f"Expected a mapping query, got {type(query).__name__}")
    for field, condition in query.items():
        _split_field(field)
        if not _is_operator_mapping(condition):
            continue
        for op, operand in condition.items():
            if op not in OPERATORS:
                raise StoreError(f"Unsupported query operator: {op}")
            if op == "$regex":
                try:
                    re.compile(operand)
                except (re.error, TypeError) as exc:
                    raise StoreError(f"Invalid regular expression in query: {exc}") from exc


def lookup(record: BlobRecord, field: str) -> Any:
    """Return the value of ``field`` on ``record``, or a sentinel if absent."""
    head, rest = _split_field(field)
    value = record_fields(record)[head]
    for key in rest.split(".") if rest else ():
        if not isinstance(value, Mapping) or key not in value:
            return _MISSING
        value = value[key]
    return value


def _is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def matches_condition(value: Any, condition: Any) -> bool:
    if not _is_operator_mapping(condition):
        if value is _MISSING:
            return condition is None
        return value == condition
    for op, operand in condition.items():
        check = OPERATORS.get(op)
        if check is None:
            raise StoreError(f"Unsupported query operator: {op}")
        compared = None if value is _MISSING and op in _NULL_MATCHING else value
        if not check(compared, operand):
            return False
    return True


def matches_query(record: BlobRecord, query: Mapping[str, Any]) -> bool:
    """Return True if ``record`` satisfies every condition in ``query``.

    Raises:
        StoreError: The query is not a mapping or uses an unknown field or operator.
    """
    validate_query(query)
    return all(matches_condition(lookup(record, field), condition) for field, condition in query.items())
