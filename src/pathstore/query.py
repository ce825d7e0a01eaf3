"""Query building, evaluation over stored records, and result iteration."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, MutableMapping
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any

from pathstore.errors import ValidationError
from pathstore.filters import Filter, Order, PropertyProxy, normalize_op
from pathstore.keys import KEY_NAME, Key, check_path, is_ancestor
from pathstore.values import (
    ValueKind,
    check_filter_value,
    compare_keys,
    compare_values,
    copy_entity,
    is_multi_valued,
    kind_of,
)

logger = logging.getLogger(__name__)

Record = tuple[Key, dict[str, Any]]

_MISSING = object()


@dataclass
class Query:
    """An ancestor/kind scoped query with property filters and sort orders.

    ``root`` selects the scope: its leaf kind restricts results to that kind
    (an empty kind matches any kind), and an incomplete leaf id matches any
    id at that level.
    """

    root: Key
    filters: list[Filter] = field(default_factory=list)
    orders: list[Order] = field(default_factory=list)
    keys_only: bool = False

    def filter(self, name: str, op: str, value: Any) -> Query:
        self.filters.append(Filter(name, op, value))
        return self

    def where(self, expr: Filter) -> Query:
        if not isinstance(expr, Filter):
            raise ValidationError(f"Expected Filter, got {type(expr).__name__}")
        self.filters.append(expr)
        return self

    def order(self, ref: str | Order | PropertyProxy, descending: bool = False) -> Query:
        if isinstance(ref, Order):
            self.orders.append(ref)
        elif isinstance(ref, PropertyProxy):
            self.orders.append(Order(ref.name, descending=descending))
        elif isinstance(ref, str):
            parsed = Order.parse(ref)
            if parsed.descending and descending:
                raise ValidationError(f"Order {ref!r} already has a direction; drop the '-' prefix or descending=True")
            self.orders.append(Order(parsed.name, parsed.descending or descending))
        else:
            raise ValidationError(f"Cannot order by {ref!r}")
        return self

    def only_keys(self, keys_only: bool = True) -> Query:
        self.keys_only = keys_only
        return self


def _check_query(query: Query) -> tuple[list[Filter], list[Order]]:
    """Validate a query and return its filters with canonical operators."""
    root = query.root
    if not isinstance(root, Key):
        raise ValidationError(f"Query root must be a Key, got {type(root).__name__}")
    check_path(root)
    if not root.path:
        raise ValidationError("Query root must name at least one path element")
    for element in root.path[:-1]:
        if element.incomplete:
            raise ValidationError(f"Only the leaf of a query root may be incomplete: {root}")

    filters: list[Filter] = []
    for f in query.filters:
        if not isinstance(f, Filter) or not isinstance(f.name, str):
            raise ValidationError(f"Malformed filter {f!r}")
        op = normalize_op(f.op)
        kind = check_filter_value(f.value)
        if f.name == KEY_NAME and kind != ValueKind.KEY:
            raise ValidationError(f"Filters on {KEY_NAME} need a Key value")
        filters.append(Filter(f.name, op, f.value))

    for o in query.orders:
        if not isinstance(o, Order) or not isinstance(o.name, str):
            raise ValidationError(f"Malformed order {o!r}")
        if not isinstance(o.descending, bool):
            raise ValidationError(f"Order direction must be a bool, got {o.descending!r}")

    return filters, list(query.orders)


def _passes(f: Filter, key: Key, fields: dict[str, Any]) -> bool:
    if f.name == KEY_NAME:
        value: Any = key
    elif f.name in fields:
        value = fields[f.name]
    else:
        # Absent properties do not exclude the record.
        return True

    if is_multi_valued(value):
        return any(
            f.matches(compare_values(item, f.value))
            for item in value
            if kind_of(item) != ValueKind.BLOB
        )
    if kind_of(value) == ValueKind.BLOB:
        return True
    return f.matches(compare_values(value, f.value))


def _includes(root: Key, filters: list[Filter], key: Key, fields: dict[str, Any]) -> bool:
    if key.namespace != root.namespace:
        return False
    if root.kind and key.kind != root.kind:
        return False
    if not is_ancestor(root, key):
        return False
    return all(_passes(f, key, fields) for f in filters)


def _sort_value(order: Order, key: Key, fields: dict[str, Any]) -> Any:
    if order.name == KEY_NAME:
        return key
    value = fields.get(order.name, _MISSING)
    if value is _MISSING:
        return _MISSING
    if is_multi_valued(value):
        indexed = [v for v in value if kind_of(v) != ValueKind.BLOB]
        if not indexed:
            return _MISSING
        pick = max if order.descending else min
        return pick(indexed, key=cmp_to_key(compare_values))
    if kind_of(value) == ValueKind.BLOB:
        return _MISSING
    return value


def _sorted(records: list[Record], orders: list[Order]) -> list[Record]:
    if not orders:
        return records

    decorated = [([_sort_value(o, key, fields) for o in orders], (key, fields)) for key, fields in records]

    def compare(left: tuple[list[Any], Record], right: tuple[list[Any], Record]) -> int:
        for order, lv, rv in zip(orders, left[0], right[0]):
            if lv is _MISSING and rv is _MISSING:
                continue
            # Absent values sort last in both directions.
            if lv is _MISSING:
                return 1
            if rv is _MISSING:
                return -1
            if order.name == KEY_NAME:
                comp = compare_keys(lv, rv)
            else:
                comp = compare_values(lv, rv)
            if comp != 0:
                return -comp if order.descending else comp
        return 0

    decorated.sort(key=cmp_to_key(compare))
    return [record for _, record in decorated]


def evaluate(query: Query, records: Iterable[Record]) -> list[Record]:
    """Return the records matching ``query``, sorted by its orders."""
    filters, orders = _check_query(query)
    matched = [(key, fields) for key, fields in records if _includes(query.root, filters, key, fields)]
    logger.debug("Query on %s matched %d record(s)", query.root, len(matched))
    return _sorted(matched, orders)


class QueryIterator:
    """Single-pass cursor over a materialized query result.

    ``next()`` follows the datastore convention: it returns the next key and
    fills ``destination``, then returns ``None`` (and clears
    ``destination``) once exhausted. The iterator protocol yields
    ``(key, entity)`` pairs over the same cursor, with ``entity`` set to
    ``None`` for keys-only queries.
    """

    def __init__(self, records: list[Record], keys_only: bool = False) -> None:
        self._records = records
        self._keys_only = keys_only
        self._index = 0

    @property
    def keys_only(self) -> bool:
        return self._keys_only

    @property
    def exhausted(self) -> bool:
        return self._index >= len(self._records)

    @property
    def remaining(self) -> int:
        return len(self._records) - self._index

    def next(self, destination: MutableMapping[str, Any] | None = None) -> Key | None:
        if self.exhausted:
            if destination is not None:
                destination.clear()
            return None

        key, fields = self._records[self._index]
        self._index += 1
        if not self._keys_only and destination is not None:
            destination.clear()
            destination.update(copy_entity(fields))
        return key

    def __iter__(self) -> Iterator[tuple[Key, dict[str, Any] | None]]:
        return self

    def __next__(self) -> tuple[Key, dict[str, Any] | None]:
        if self.exhausted:
            raise StopIteration
        key, fields = self._records[self._index]
        self._index += 1
        return key, None if self._keys_only else copy_entity(fields)

    def keys(self) -> list[Key]:
        """Drain the cursor and return the remaining keys."""
        keys = [key for key, _ in self._records[self._index :]]
        self._index = len(self._records)
        return keys
