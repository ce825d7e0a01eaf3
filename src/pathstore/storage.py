"""In-memory entity store: keyed records, id allocation, queries, transactions."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pathstore.config import PathstoreConfig
from pathstore.errors import (
    GetMultiError,
    NotFoundError,
    TransactionStateError,
    ValidationError,
)
from pathstore.keys import Key, check_key
from pathstore.query import Query, QueryIterator, evaluate
from pathstore.transaction import Operation, OperationKind, Transaction, TransactionState
from pathstore.values import copy_entity, snapshot_entity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GetResult:
    """Outcome of looking up one key: either an entity or a NotFoundError."""

    key: Key
    entity: dict[str, Any] | None = None
    error: NotFoundError | None = None

    @property
    def found(self) -> bool:
        return self.error is None

    def unwrap(self) -> dict[str, Any]:
        if self.error is not None:
            raise self.error
        assert self.entity is not None
        return self.entity


@runtime_checkable
class DatastoreProtocol(Protocol):
    """Operations shared by MemoryStore and its Transaction view."""

    def get(self, keys: Sequence[Key]) -> list[GetResult]: ...

    def get_multi(self, keys: Sequence[Key]) -> list[dict[str, Any]]: ...

    def put(self, keys: Sequence[Key], entities: Sequence[Any]) -> list[Key]: ...

    def delete(self, keys: Sequence[Key]) -> None: ...

    def allocate_keys(self, parent: Key, n: int) -> list[Key]: ...

    def run(self, query: Query) -> QueryIterator: ...

    def run_in_transaction(self, body: Callable[[Any], Any]) -> Any: ...


class MemoryStore:
    """Entity store held entirely in process memory.

    Records are kept as snapshots keyed by complete Key; at most one record
    exists per key. Ids for incomplete keys come from a counter owned by the
    store, shared by ``put`` and ``allocate_keys`` and never reset.

    Not thread-safe: callers sharing a store across threads must serialize
    access themselves.

    Example:
        >>> store = MemoryStore()
        >>> [key] = store.put([Key.root().append("Task")], [{"Title": "write"}])
        >>> store.get_multi([key])
        [{'Title': 'write'}]
    """

    def __init__(self, config: PathstoreConfig | None = None) -> None:
        self._config = config or PathstoreConfig()
        self._records: dict[Key, dict[str, Any]] = {}
        self._last_id = self._config.id_start
        self._state = TransactionState.IDLE

    @property
    def config(self) -> PathstoreConfig:
        return self._config

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def log_level(self) -> int:
        return logging.INFO if self._config.log_operations else logging.DEBUG

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, Key):
            return False
        try:
            check_key(key)
        except ValidationError:
            # Malformed or incomplete keys are never stored.
            return False
        return key in self._records

    def new_key(self, kind: str, id: int | str | None = None, parent: Key | None = None) -> Key:
        """Build a key in the configured default namespace (or under ``parent``)."""
        base = parent if parent is not None else Key.root(self._config.default_namespace)
        return base.append(kind, id)

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def _check_batch(self, size: int) -> None:
        limit = self._config.max_batch_size
        if size > limit:
            raise ValidationError(f"Batch of {size} exceeds max_batch_size of {limit}")

    def _check_keys(self, keys: Sequence[Key], *, allow_incomplete: bool = False) -> list[Key]:
        if isinstance(keys, Key) or not isinstance(keys, Sequence):
            raise ValidationError(f"Expected a sequence of keys, got {type(keys).__name__}")
        self._check_batch(len(keys))
        return [check_key(k, allow_incomplete=allow_incomplete) for k in keys]

    def _prepare_put(
        self, keys: Sequence[Key], entities: Sequence[Any]
    ) -> tuple[list[Key], list[dict[str, Any]]]:
        """Validate a put call and complete its keys, without touching records."""
        checked = self._check_keys(keys, allow_incomplete=True)
        if isinstance(entities, (str, bytes)) or not isinstance(entities, Sequence):
            raise ValidationError(f"Expected a sequence of entities, got {type(entities).__name__}")
        if len(checked) != len(entities):
            raise ValidationError(
                f"Got {len(checked)} keys but {len(entities)} entities; lengths must match"
            )
        snapshots = [snapshot_entity(e) for e in entities]

        # Ids are drawn only once the whole call is known to be valid.
        complete = [k if k.is_complete() else k.with_id(self._next_id()) for k in checked]
        return complete, snapshots

    def get(self, keys: Sequence[Key]) -> list[GetResult]:
        """Look up each key independently; a miss never affects other indices."""
        results: list[GetResult] = []
        for index, key in enumerate(self._check_keys(keys)):
            entity = self._records.get(key)
            if entity is None:
                results.append(GetResult(key, error=NotFoundError(key, index)))
            else:
                results.append(GetResult(key, entity=copy_entity(entity)))
        return results

    def get_multi(self, keys: Sequence[Key]) -> list[dict[str, Any]]:
        """Return the entities for ``keys`` or raise GetMultiError naming the misses."""
        results = self.get(keys)
        if all(r.found for r in results):
            return [r.unwrap() for r in results]
        raise GetMultiError([r.error for r in results], [r.entity for r in results])

    def put(self, keys: Sequence[Key], entities: Sequence[Any]) -> list[Key]:
        """Insert or overwrite entities, completing incomplete keys.

        Returns the complete keys in input order.
        """
        complete, snapshots = self._prepare_put(keys, entities)
        for key, entity in zip(complete, snapshots):
            self._records[key] = entity
        logger.log(self.log_level, "Put %d entities", len(complete))
        return complete

    def delete(self, keys: Sequence[Key]) -> None:
        """Remove the entities for ``keys``; missing keys are ignored."""
        checked = self._check_keys(keys)
        for key in checked:
            self._records.pop(key, None)
        logger.log(self.log_level, "Deleted %d keys", len(checked))

    def allocate_keys(self, parent: Key, n: int) -> list[Key]:
        """Reserve ``n`` ids for the leaf kind of ``parent`` without storing anything."""
        check_key(parent, allow_incomplete=True)
        if isinstance(n, bool) or not isinstance(n, int) or n < 0:
            raise ValidationError(f"Number of keys must be a non-negative int, got {n!r}")
        self._check_batch(n)
        keys = [parent.with_id(self._next_id()) for _ in range(n)]
        logger.log(self.log_level, "Allocated %d ids for kind %s", n, parent.kind)
        return keys

    def run(self, query: Query) -> QueryIterator:
        """Evaluate ``query`` against the current records.

        The result is materialized now; later mutations do not affect it.
        """
        if not isinstance(query, Query):
            raise ValidationError(f"Expected Query, got {type(query).__name__}")
        records = evaluate(query, self._records.items())
        return QueryIterator(records, keys_only=query.keys_only)

    def transaction(self) -> Transaction:
        """Return a transaction to use as a context manager."""
        return Transaction(self)

    def run_in_transaction(self, body: Callable[[Transaction], Any]) -> Any:
        """Run ``body(tx)`` and commit its queued writes if it returns normally.

        Any exception raised by ``body`` discards the queue and propagates
        unchanged.
        """
        with self.transaction() as tx:
            result = body(tx)
        return result

    def _begin(self) -> None:
        if self._state is not TransactionState.IDLE:
            raise TransactionStateError()
        self._state = TransactionState.ACTIVE

    def _commit(self, operations: list[Operation]) -> None:
        self._state = TransactionState.COMMITTING
        try:
            for op in operations:
                if op.kind is OperationKind.PUT:
                    assert op.entity is not None
                    self._records[op.key] = op.entity
                else:
                    self._records.pop(op.key, None)
        finally:
            self._state = TransactionState.IDLE

    def _abort(self) -> None:
        self._state = TransactionState.ABORTING
        self._state = TransactionState.IDLE
