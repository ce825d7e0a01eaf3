"""Hierarchical, namespaced entity keys."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Union

from pathstore.errors import ValidationError

IdValue = Union[int, str, None]

# Reserved property name addressing the entity key in filters and orders.
KEY_NAME = "__key__"

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _check_id(id: object) -> None:
    if id is None or isinstance(id, str):
        return
    if isinstance(id, bool) or not isinstance(id, int):
        raise ValidationError(f"Key id must be int, str or None, got {type(id).__name__}")
    if not INT64_MIN <= id <= INT64_MAX:
        raise ValidationError(f"Key id {id} does not fit in a signed 64-bit integer")


@dataclass(frozen=True)
class PathElement:
    """One (kind, id) step of a key path. ``id=None`` marks an incomplete id."""

    kind: str
    id: IdValue = None

    @property
    def incomplete(self) -> bool:
        return self.id is None

    def __str__(self) -> str:
        if self.id is None:
            return f"{self.kind}:?"
        if isinstance(self.id, str):
            return f"{self.kind}:{self.id!r}"
        return f"{self.kind}:{self.id}"


@dataclass(frozen=True)
class Key:
    """A namespaced path of (kind, id) pairs.

    Only the leaf element may be incomplete. Equality is structural and
    includes the id type, so ``Key.root().append("K", 1)`` and
    ``Key.root().append("K", "1")`` differ.
    """

    namespace: str = ""
    path: tuple[PathElement, ...] = ()

    @classmethod
    def root(cls, namespace: str = "") -> Key:
        if not isinstance(namespace, str):
            raise ValidationError(f"Namespace must be str, got {type(namespace).__name__}")
        return cls(namespace=namespace)

    def append(self, kind: str, id: IdValue = None) -> Key:
        """Return a child key. ``id=None`` leaves the new leaf incomplete."""
        if not isinstance(kind, str):
            raise ValidationError(f"Kind must be str, got {type(kind).__name__}")
        _check_id(id)
        if self.path and self.path[-1].incomplete:
            raise ValidationError(f"Cannot append to incomplete key {self}")
        return Key(self.namespace, self.path + (PathElement(kind, id),))

    def parent(self) -> Key | None:
        if len(self.path) <= 1:
            return None
        return Key(self.namespace, self.path[:-1])

    def with_id(self, id: IdValue) -> Key:
        """Return the same key with its leaf id replaced."""
        if not self.path:
            raise ValidationError("Cannot set the id of an empty key")
        _check_id(id)
        return Key(self.namespace, self.path[:-1] + (replace(self.path[-1], id=id),))

    def is_complete(self) -> bool:
        return bool(self.path) and not self.path[-1].incomplete

    def is_ancestor_of(self, other: Key) -> bool:
        return is_ancestor(self, other)

    @property
    def kind(self) -> str:
        return self.path[-1].kind if self.path else ""

    @property
    def id(self) -> IdValue:
        return self.path[-1].id if self.path else None

    @property
    def depth(self) -> int:
        return len(self.path)

    def __str__(self) -> str:
        path = "/".join(str(p) for p in self.path)
        return f"Key(ns={self.namespace!r}, path={path})"


def is_ancestor(ancestor: Key, candidate: Key) -> bool:
    """Whether ``candidate`` lies in the subtree rooted at ``ancestor``.

    The ancestor's leaf matches any id when incomplete and any kind when its
    kind is empty. Every other element must match exactly.
    """
    if candidate.namespace != ancestor.namespace:
        return False
    if not ancestor.path or len(candidate.path) < len(ancestor.path):
        return False

    depth = len(ancestor.path)
    if candidate.path[: depth - 1] != ancestor.path[: depth - 1]:
        return False

    leaf = ancestor.path[-1]
    other = candidate.path[depth - 1]
    if leaf.kind and leaf.kind != other.kind:
        return False
    if leaf.incomplete:
        return True
    return type(leaf.id) is type(other.id) and leaf.id == other.id


def check_path(key: Key) -> None:
    """Validate the shape of a key: a str namespace and a tuple of well-formed elements.

    Keys built with ``Key(...)`` directly skip the checks ``append`` makes.
    """
    if not isinstance(key.namespace, str):
        raise ValidationError(f"Namespace must be str, got {type(key.namespace).__name__}")
    if not isinstance(key.path, tuple):
        raise ValidationError(f"Key path must be a tuple, got {type(key.path).__name__}")
    for element in key.path:
        if not isinstance(element, PathElement):
            raise ValidationError(f"Key path elements must be PathElement, got {type(element).__name__}")
        if not isinstance(element.kind, str):
            raise ValidationError(f"Kind must be str, got {type(element.kind).__name__}")
        _check_id(element.id)


def check_key(key: object, *, allow_incomplete: bool = False) -> Key:
    """Validate a key passed to a store operation and return it."""
    if not isinstance(key, Key):
        raise ValidationError(f"Expected Key, got {type(key).__name__}")
    check_path(key)
    if not key.path:
        raise ValidationError(f"Key has an empty path: {key}")
    for element in key.path[:-1]:
        if element.incomplete:
            raise ValidationError(f"Only the leaf of a key may be incomplete: {key}")
    if not key.path[-1].kind:
        raise ValidationError(f"Key leaf kind must not be empty: {key}")
    if not allow_incomplete and not key.is_complete():
        raise ValidationError(f"Key is incomplete: {key}")
    return key
