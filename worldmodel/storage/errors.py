"""Exceptions raised by the world model."""

from typing import Any, Optional


class WorldModelError(Exception):
    """Base class for world model errors."""


class PersistenceError(WorldModelError):
    """A backend operation on one entity failed."""

    def __init__(self, entity_type: str, entity_key: Any, message: Optional[str] = None):
        self.entity_type = entity_type
        self.entity_key = entity_key
        super().__init__(message or f"Failed to persist {entity_type} {entity_key!r}")


class DuplicateKeyError(PersistenceError):
    """A uniqueness constraint was violated (concurrent first sighting)."""

    def __init__(self, entity_type: str, entity_key: Any, message: Optional[str] = None):
        super().__init__(
            entity_type,
            entity_key,
            message or f"Duplicate {entity_type} {entity_key!r}",
        )


class BatchTooLargeError(WorldModelError):
    """A session exceeds the configured batch size."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(f"Session has {size} interactions, limit is {limit}")
