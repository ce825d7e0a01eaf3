"""Typed facade that stores pydantic models through any datastore."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any, TypeVar

from pydantic import BaseModel

from pathstore.codec import decode, encode
from pathstore.keys import Key
from pathstore.query import Query
from pathstore.storage import DatastoreProtocol

M = TypeVar("M", bound=BaseModel)


class ModelClient:
    """Encode models on the way in and decode them on the way out.

    Works against a MemoryStore or a Transaction alike, since both satisfy
    DatastoreProtocol.
    """

    def __init__(self, datastore: DatastoreProtocol) -> None:
        self._datastore = datastore

    @property
    def datastore(self) -> DatastoreProtocol:
        return self._datastore

    def get(self, model_cls: type[M], keys: Sequence[Key]) -> list[M | None]:
        """Return one model per key, ``None`` where no entity exists."""
        return [
            decode(model_cls, r.entity) if r.entity is not None else None
            for r in self._datastore.get(keys)
        ]

    def get_one(self, model_cls: type[M], key: Key) -> M | None:
        return self.get(model_cls, [key])[0]

    def put(self, keys: Sequence[Key], models: Sequence[BaseModel]) -> list[Key]:
        entities = [encode(m) for m in models]
        return self._datastore.put(keys, entities)

    def delete(self, keys: Sequence[Key]) -> None:
        self._datastore.delete(keys)

    def allocate_keys(self, parent: Key, n: int) -> list[Key]:
        return self._datastore.allocate_keys(parent, n)

    def query(self, model_cls: type[M], query: Query) -> Iterator[tuple[Key, M | None]]:
        """Yield ``(key, model)`` pairs; the model is ``None`` for keys-only queries."""
        for key, entity in self._datastore.run(query):
            yield key, decode(model_cls, entity) if entity is not None else None

    def run_in_transaction(self, body: Callable[[ModelClient], Any]) -> Any:
        return self._datastore.run_in_transaction(lambda tx: body(ModelClient(tx)))
