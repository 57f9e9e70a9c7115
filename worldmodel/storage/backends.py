"""Document backends for the world model store.

The store only needs a handful of document-store primitives: equality
lookups (dotted paths, list fields match any element), insert, and an
update that sets some fields while appending to others.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class DocumentBackend(ABC):
    """Abstract async document store."""

    @abstractmethod
    async def find_one(self, collection: str, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def find_many(self, collection: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert_one(self, collection: str, document: Dict[str, Any]) -> str:
        """Insert a document and return its id; raises DuplicateKeyError on a unique clash."""
        pass

    @abstractmethod
    async def update_one(
        self,
        collection: str,
        key: Dict[str, Any],
        set_fields: Optional[Dict[str, Any]] = None,
        push_fields: Optional[Dict[str, List[Any]]] = None
    ) -> bool:
        """
        Update the first document matching ``key``.

        Args:
            collection: Collection name
            key: Equality filter
            set_fields: Dotted path -> value, overwritten
            push_fields: Dotted path -> values, appended to the list at that path

        Returns:
            True when a document matched
        """
        pass

    @abstractmethod
    async def ensure_unique(self, collection: str, fields: Sequence[str]):
        """Declare a uniqueness constraint over ``fields``."""
        pass


# ============================================================
# Dotted-path helpers
# ============================================================

def get_path_values(document: Any, path: str) -> List[Any]:
    """All values at a dotted path; lists fan out."""
    values = [document]
    for part in path.split('.'):
        next_values = []
        for value in values:
            if isinstance(value, list):
                value_items = value
            else:
                value_items = [value]
            for item in value_items:
                if isinstance(item, dict) and part in item:
                    next_values.append(item[part])
        values = next_values
    return values


def matches(document: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    """Equality match; a list value matches if any element equals the expected value."""
    for path, expected in filter.items():
        found = False
        for value in get_path_values(document, path):
            if value == expected or (isinstance(value, list) and expected in value):
                found = True
                break
        if not found:
            return False
    return True


def set_path(document: Dict[str, Any], path: str, value: Any):
    parts = path.split('.')
    target = document
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    target[parts[-1]] = value


def push_path(document: Dict[str, Any], path: str, values: List[Any]):
    parts = path.split('.')
    target = document
    for part in parts[:-1]:
        if not isinstance(target.get(part), dict):
            target[part] = {}
        target = target[part]
    current = target.get(parts[-1])
    if not isinstance(current, list):
        current = []
    target[parts[-1]] = current + list(values)


def apply_update(document: Dict[str, Any], set_fields: Optional[Dict[str, Any]],
                 push_fields: Optional[Dict[str, List[Any]]]):
    for path, value in (set_fields or {}).items():
        set_path(document, path, copy.deepcopy(value))
    for path, values in (push_fields or {}).items():
        push_path(document, path, copy.deepcopy(values))


# ============================================================
# In-memory backend
# ============================================================

class InMemoryBackend(DocumentBackend):
    """
    Dict-of-lists store with unique indexes.

    Documents are deep-copied on the way in and out so callers never
    hold references into stored state.
    """

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.unique_indexes: Dict[str, List[Tuple[str, ...]]] = {}

    def _collection(self, name: str) -> List[Dict[str, Any]]:
        return self.collections.setdefault(name, [])

    async def find_one(self, collection, filter):
        for document in self._collection(collection):
            if matches(document, filter):
                return copy.deepcopy(document)
        return None

    async def find_many(self, collection, filter):
        return [copy.deepcopy(d) for d in self._collection(collection) if matches(d, filter)]

    async def insert_one(self, collection, document):
        document = copy.deepcopy(document)
        document.setdefault('_id', uuid.uuid4().hex)

        for fields in self.unique_indexes.get(collection, []):
            values = tuple(document.get(f) for f in fields)
            if any(v is None for v in values):
                continue
            for existing in self._collection(collection):
                if tuple(existing.get(f) for f in fields) == values:
                    raise DuplicateKeyError(collection, values)

        self._collection(collection).append(document)
        return document['_id']

    async def update_one(self, collection, key, set_fields=None, push_fields=None):
        for document in self._collection(collection):
            if matches(document, key):
                apply_update(document, set_fields, push_fields)
                return True
        return False

    async def ensure_unique(self, collection, fields):
        indexes = self.unique_indexes.setdefault(collection, [])
        fields = tuple(fields)
        if fields not in indexes:
            indexes.append(fields)
            logger.debug("Unique index on %s%s", collection, fields)
