"""Structured error types for pathstore."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathstore.keys import Key


class PathstoreError(Exception):
    """Base error for all pathstore errors."""


class ValidationError(PathstoreError):
    """Raised when a call is malformed; nothing is applied to the store."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NotFoundError(PathstoreError):
    """Raised (or reported per index) when no entity exists for a key."""

    def __init__(self, key: Key, index: int | None = None) -> None:
        self.key = key
        self.index = index
        where = f" at index {index}" if index is not None else ""
        super().__init__(f"No entity for {key}{where}")


class GetMultiError(PathstoreError):
    """Raised when some indices of a multi-key lookup had no entity.

    ``errors`` is aligned with the requested keys: ``None`` where the lookup
    succeeded, a :class:`NotFoundError` where it missed. The entities that were
    found stay available through ``results``.
    """

    def __init__(
        self,
        errors: list[NotFoundError | None],
        results: list[dict[str, Any] | None],
    ) -> None:
        self.errors = errors
        self.results = results
        missing = self.indices
        super().__init__(f"{len(missing)} of {len(errors)} entities not found: indices {missing}")

    @property
    def indices(self) -> list[int]:
        return [i for i, err in enumerate(self.errors) if err is not None]

    def not_found(self, index: int) -> bool:
        return 0 <= index < len(self.errors) and self.errors[index] is not None


class TransactionStateError(PathstoreError):
    """Raised when a transaction is nested or used outside its scope."""

    def __init__(self, message: str = "already in transaction") -> None:
        super().__init__(message)
