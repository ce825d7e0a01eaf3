"""Configuration for the in-memory store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PathstoreConfig:
    """Configuration for a MemoryStore instance."""

    default_namespace: str = ""
    id_start: int = 0
    max_batch_size: int = 10000
    log_operations: bool = False
