"""Shared test fixtures for pathstore tests."""

from __future__ import annotations

import pytest

from pathstore import Key, MemoryStore


def child_key(parent_id: int, child_id: int, namespace: str = "") -> Key:
    return Key.root(namespace).append("Parent", parent_id).append("Child", child_id)


@pytest.fixture
def store():
    """An empty store with default configuration."""
    return MemoryStore()


@pytest.fixture
def family_store(store):
    """Store holding children under two parents plus one root-level child."""
    keys = [
        child_key(1, 1),
        child_key(2, 2),
        child_key(1, 3),
        Key.root().append("Child", 4),
    ]
    store.put(keys, [{"IntValue": 1}, {"IntValue": 2}, {"IntValue": 3}, {"IntValue": 4}])
    return store
