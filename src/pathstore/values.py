"""Property values: kind classification, validation and the cross-kind total order.

Supported kinds, in the order values of different kinds compare::

    int < datetime < bool < str < float < Key

``bytes`` values are stored as opaque blobs. They are never indexed, so
filters skip them and sort orders treat them as absent.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Union

from pathstore.errors import ValidationError
from pathstore.keys import INT64_MAX, INT64_MIN, Key, check_path

PropertyValue = Union[int, float, str, bool, datetime, Key, bytes]
FieldValue = Union[PropertyValue, list[PropertyValue]]
Entity = Mapping[str, Any]


class ValueKind(IntEnum):
    """Value kinds; the integer value is the cross-kind sort precedence."""

    INT = 0
    TIMESTAMP = 1
    BOOL = 2
    STRING = 3
    FLOAT = 4
    KEY = 5
    BLOB = 6


INDEXED_KINDS = frozenset(
    {
        ValueKind.INT,
        ValueKind.TIMESTAMP,
        ValueKind.BOOL,
        ValueKind.STRING,
        ValueKind.FLOAT,
        ValueKind.KEY,
    }
)


def kind_of(value: Any) -> ValueKind:
    """Classify a single property value, raising ValidationError if unsupported."""
    # bool before int: bool is an int subclass.
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, int):
        if not INT64_MIN <= value <= INT64_MAX:
            raise ValidationError(f"Integer {value} does not fit in a signed 64-bit integer")
        return ValueKind.INT
    if isinstance(value, float):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, datetime):
        return ValueKind.TIMESTAMP
    if isinstance(value, Key):
        check_path(value)
        if not value.is_complete():
            raise ValidationError(f"Key property values must be complete: {value}")
        return ValueKind.KEY
    if isinstance(value, (bytes, bytearray)):
        return ValueKind.BLOB
    raise ValidationError(f"Unsupported property value type {type(value).__name__}")


def is_multi_valued(value: Any) -> bool:
    """Whether a stored field value is a list of values (bytes never is)."""
    return isinstance(value, list)


def _snapshot_value(name: str, value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, (list, tuple)):
                raise ValidationError(f"Field '{name}' contains a nested list")
            kind_of(item)
            items.append(bytes(item) if isinstance(item, bytearray) else item)
        return items
    kind_of(value)
    return bytes(value) if isinstance(value, bytearray) else value


def snapshot_entity(entity: Any) -> dict[str, Any]:
    """Validate an entity mapping and return an independent copy of it."""
    if not isinstance(entity, Mapping):
        raise ValidationError(f"Entity must be a mapping, got {type(entity).__name__}")
    snapshot: dict[str, Any] = {}
    for name, value in entity.items():
        if not isinstance(name, str):
            raise ValidationError(f"Field names must be str, got {type(name).__name__}")
        snapshot[name] = _snapshot_value(name, value)
    return snapshot


def copy_entity(entity: Mapping[str, Any]) -> dict[str, Any]:
    """Copy an already validated entity so callers cannot mutate stored lists."""
    return {name: list(v) if isinstance(v, list) else v for name, v in entity.items()}


def check_filter_value(value: Any) -> ValueKind:
    """Validate the right-hand side of a filter."""
    if isinstance(value, (list, tuple)):
        raise ValidationError("Filter values must be single values, not lists")
    kind = kind_of(value)
    if kind not in INDEXED_KINDS:
        raise ValidationError(f"Cannot filter on unindexed value type {type(value).__name__}")
    return kind


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sign(left: Any, right: Any) -> int:
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def _compare_floats(left: float, right: float) -> int:
    # NaN sorts before every other float and equals itself.
    left_nan = math.isnan(left)
    right_nan = math.isnan(right)
    if left_nan or right_nan:
        return _sign(not left_nan, not right_nan)
    return _sign(left, right)


def compare_values(left: Any, right: Any) -> int:
    """Three-way compare two indexed values, possibly of different kinds."""
    left_kind = kind_of(left)
    right_kind = kind_of(right)
    if left_kind != right_kind:
        return -1 if left_kind < right_kind else 1

    if left_kind == ValueKind.KEY:
        return compare_keys(left, right)
    if left_kind == ValueKind.TIMESTAMP:
        return _sign(_as_utc(left), _as_utc(right))
    if left_kind == ValueKind.FLOAT:
        return _compare_floats(left, right)
    if left_kind == ValueKind.BLOB:
        raise ValidationError("Blob values are not comparable")
    # Python orders False < True and compares str by code point.
    return _sign(left, right)


def _compare_ids(left: Any, right: Any) -> int:
    if left is None or right is None:
        raise ValidationError("Cannot order incomplete keys")
    # Integer ids come before string ids.
    left_rank = 0 if isinstance(left, int) else 1
    right_rank = 0 if isinstance(right, int) else 1
    if left_rank != right_rank:
        return -1 if left_rank < right_rank else 1
    return _sign(left, right)


def compare_keys(left: Key, right: Key) -> int:
    """Three-way compare two keys.

    Keys with more ancestors sort first. At equal depth the leaf ids decide,
    then the ids of each parent in turn, walking towards the root. Kinds and
    namespaces do not take part.
    """
    if len(left.path) != len(right.path):
        return -1 if len(left.path) > len(right.path) else 1
    for l_elem, r_elem in zip(reversed(left.path), reversed(right.path)):
        comp = _compare_ids(l_elem.id, r_elem.id)
        if comp != 0:
            return comp
    return 0
