"""Filter and order expressions for queries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pathstore.errors import ValidationError
from pathstore.keys import KEY_NAME

# Each operator maps to a predicate over the three-way comparison of the
# stored value against the filter value.
OPERATORS: dict[str, Callable[[int], bool]] = {
    "<": lambda comp: comp < 0,
    "<=": lambda comp: comp <= 0,
    "==": lambda comp: comp == 0,
    ">=": lambda comp: comp >= 0,
    ">": lambda comp: comp > 0,
}

_OP_ALIASES = {"=": "=="}

NULL_FILTER_ERROR = "Absent properties cannot be filtered on; compare against a value instead."


def normalize_op(op: str) -> str:
    """Return the canonical spelling of a filter operator."""
    op = _OP_ALIASES.get(op, op)
    if op not in OPERATORS:
        raise ValidationError(f"Unknown filter operator {op!r}")
    return op


@dataclass(frozen=True)
class Filter:
    """A comparison between a property (or the entity key) and a value."""

    name: str
    op: str
    value: Any

    def matches(self, comp: int) -> bool:
        return OPERATORS[normalize_op(self.op)](comp)


@dataclass(frozen=True)
class Order:
    """A sort clause on a property (or the entity key)."""

    name: str
    descending: bool = False

    @classmethod
    def parse(cls, text: str) -> Order:
        """Parse ``"Name"`` or ``"-Name"`` (descending)."""
        if text.startswith("-"):
            return cls(text[1:], descending=True)
        return cls(text)

    def __str__(self) -> str:
        return f"-{self.name}" if self.descending else self.name


class PropertyProxy:
    """Builds Filter and Order values from Python operators.

    Usage: ``prop("Age") >= 21`` or ``prop("Age").desc()``
    """

    def __init__(self, name: str) -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def __eq__(self, other: object) -> Filter:  # type: ignore[override]
        if other is None:
            raise TypeError(NULL_FILTER_ERROR)
        return Filter(self._name, "==", other)

    def __gt__(self, other: Any) -> Filter:
        return Filter(self._name, ">", other)

    def __ge__(self, other: Any) -> Filter:
        return Filter(self._name, ">=", other)

    def __lt__(self, other: Any) -> Filter:
        return Filter(self._name, "<", other)

    def __le__(self, other: Any) -> Filter:
        return Filter(self._name, "<=", other)

    __hash__ = None  # type: ignore[assignment]

    def asc(self) -> Order:
        return Order(self._name)

    def desc(self) -> Order:
        return Order(self._name, descending=True)


def prop(name: str) -> PropertyProxy:
    """Create a proxy for building filters and orders on a property."""
    return PropertyProxy(name)


def key() -> PropertyProxy:
    """Create a proxy addressing the entity key itself."""
    return PropertyProxy(KEY_NAME)
