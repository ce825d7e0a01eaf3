"""Deferred-commit transactions over a MemoryStore."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from pathstore.errors import TransactionStateError

if TYPE_CHECKING:
    from pathstore.keys import Key
    from pathstore.query import Query, QueryIterator
    from pathstore.storage import GetResult, MemoryStore

logger = logging.getLogger(__name__)


class TransactionState(Enum):
    """Transaction lifecycle of a store."""

    IDLE = "idle"
    ACTIVE = "active"
    COMMITTING = "committing"
    ABORTING = "aborting"


class OperationKind(Enum):
    PUT = "put"
    DELETE = "delete"


@dataclass(frozen=True)
class Operation:
    """A mutation queued inside a transaction, replayed on commit."""

    kind: OperationKind
    key: Key
    entity: dict[str, Any] | None = None


class Transaction:
    """Transactional view of a MemoryStore.

    ``put`` and ``delete`` are validated immediately and queued; the queue is
    applied to the store, in order, only when the scope exits cleanly. Reads
    go straight to the store and do not see the queued writes.

    Usage::

        with store.transaction() as tx:
            tx.put([key], [{"Name": "a"}])
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store
        self._operations: list[Operation] = []
        self._active = False
        self._finished = False

    def __enter__(self) -> Transaction:
        if self._finished:
            raise TransactionStateError("transaction already finished")
        self._store._begin()
        self._active = True
        logger.log(self._store.log_level, "Transaction started")
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: Any,
    ) -> None:
        """Commit on clean exit; otherwise discard the queue and re-raise."""
        self._active = False
        self._finished = True
        if exc_type is None:
            self._store._commit(self._operations)
            logger.log(
                self._store.log_level,
                "Transaction committed %d operation(s)",
                len(self._operations),
            )
        else:
            self._store._abort()
            logger.log(
                self._store.log_level,
                "Transaction aborted, discarded %d operation(s): %r",
                len(self._operations),
                exc_value,
            )

    @property
    def pending(self) -> tuple[Operation, ...]:
        return tuple(self._operations)

    @property
    def active(self) -> bool:
        return self._active

    def _check_active(self) -> None:
        if not self._active:
            raise TransactionStateError("transaction is not active")

    def get(self, keys: Sequence[Key]) -> list[GetResult]:
        self._check_active()
        return self._store.get(keys)

    def get_multi(self, keys: Sequence[Key]) -> list[dict[str, Any]]:
        self._check_active()
        return self._store.get_multi(keys)

    def allocate_keys(self, parent: Key, n: int) -> list[Key]:
        self._check_active()
        return self._store.allocate_keys(parent, n)

    def run(self, query: Query) -> QueryIterator:
        self._check_active()
        return self._store.run(query)

    def put(self, keys: Sequence[Key], entities: Sequence[Any]) -> list[Key]:
        """Queue puts; incomplete keys are completed now so callers can use them."""
        self._check_active()
        complete_keys, snapshots = self._store._prepare_put(keys, entities)
        for key, entity in zip(complete_keys, snapshots):
            self._operations.append(Operation(OperationKind.PUT, key, entity))
        return complete_keys

    def delete(self, keys: Sequence[Key]) -> None:
        self._check_active()
        for key in self._store._check_keys(keys):
            self._operations.append(Operation(OperationKind.DELETE, key))

    def run_in_transaction(self, body: Callable[[Transaction], Any]) -> Any:
        raise TransactionStateError()
