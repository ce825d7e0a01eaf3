"""pathstore: in-memory, namespaced, hierarchical entity store."""

__version__ = "0.1.0"

from pathstore.client import ModelClient
from pathstore.codec import KeyProperty, decode, encode
from pathstore.config import PathstoreConfig
from pathstore.errors import (
    GetMultiError,
    NotFoundError,
    PathstoreError,
    TransactionStateError,
    ValidationError,
)
from pathstore.filters import Filter, Order, key, prop
from pathstore.keys import KEY_NAME, Key, PathElement, is_ancestor
from pathstore.query import Query, QueryIterator
from pathstore.storage import DatastoreProtocol, GetResult, MemoryStore
from pathstore.transaction import Operation, OperationKind, Transaction, TransactionState
from pathstore.values import ValueKind, compare_keys, compare_values

__all__ = [
    "__version__",
    "Key",
    "PathElement",
    "KEY_NAME",
    "is_ancestor",
    "ValueKind",
    "compare_values",
    "compare_keys",
    "Filter",
    "Order",
    "prop",
    "key",
    "Query",
    "QueryIterator",
    "MemoryStore",
    "GetResult",
    "DatastoreProtocol",
    "Transaction",
    "TransactionState",
    "Operation",
    "OperationKind",
    "PathstoreConfig",
    "PathstoreError",
    "ValidationError",
    "NotFoundError",
    "GetMultiError",
    "TransactionStateError",
    "ModelClient",
    "KeyProperty",
    "encode",
    "decode",
]
