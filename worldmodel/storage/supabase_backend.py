"""
Supabase document backend.

Each collection is a table with three columns:

    id        text primary key
    key       text unique      -- joined unique-index values, NULL when incomplete
    document  jsonb

Top-level equality filters are pushed down as JSONB containment;
dotted paths are filtered client-side. The supabase client is
synchronous, so every call runs in a worker thread.
"""

import asyncio
import copy
import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

from postgrest.exceptions import APIError
from supabase import create_client, Client

from .backends import DocumentBackend, apply_update, matches
from .errors import DuplicateKeyError, PersistenceError

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = '23505'

KEY_SEPARATOR = '|'


class SupabaseBackend(DocumentBackend):
    """Document backend on Supabase (PostgREST) tables."""

    def __init__(
        self,
        client: Optional[Client] = None,
        url: Optional[str] = None,
        key: Optional[str] = None,
        table_names: Optional[Dict[str, str]] = None
    ):
        """
        Initialize the backend.

        Args:
            client: Existing supabase client (takes precedence)
            url: SUPABASE_URL, used when no client is given
            key: SUPABASE_ANON_KEY, used when no client is given
            table_names: collection -> table overrides
        """
        if client is None:
            if not url or not key:
                raise PersistenceError('backend', 'supabase', 'Supabase credentials not configured')
            client = create_client(url, key)
        self.client = client
        self.table_names = table_names or {}
        self.unique_indexes: Dict[str, Tuple[str, ...]] = {}
        logger.info("Supabase backend initialized")

    def _table(self, collection: str):
        return self.client.table(self.table_names.get(collection, collection))

    def _row_key(self, collection: str, document: Dict[str, Any]) -> Optional[str]:
        fields = self.unique_indexes.get(collection)
        if not fields:
            return None
        values = [document.get(f) for f in fields]
        if any(v is None for v in values):
            return None
        return KEY_SEPARATOR.join(str(v) for v in values)

    @staticmethod
    def _split_filter(filter: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        top_level = {k: v for k, v in filter.items() if '.' not in k}
        nested = {k: v for k, v in filter.items() if '.' in k}
        return top_level, nested

    def _select_rows(self, collection: str, filter: Dict[str, Any]) -> List[Dict[str, Any]]:
        top_level, nested = self._split_filter(filter)
        query = self._table(collection).select('id, key, document')
        if top_level:
            query = query.contains('document', top_level)
        result = query.execute()
        rows = result.data or []
        if nested:
            rows = [row for row in rows if matches(row['document'], nested)]
        return rows

    async def find_one(self, collection, filter):
        rows = await asyncio.to_thread(self._select_rows, collection, filter)
        return rows[0]['document'] if rows else None

    async def find_many(self, collection, filter):
        rows = await asyncio.to_thread(self._select_rows, collection, filter)
        return [row['document'] for row in rows]

    async def insert_one(self, collection, document):
        document = copy.deepcopy(document)
        document.setdefault('_id', uuid.uuid4().hex)
        row = {
            'id': document['_id'],
            'key': self._row_key(collection, document),
            'document': document,
        }

        def _insert():
            self._table(collection).insert(row).execute()

        try:
            await asyncio.to_thread(_insert)
        except APIError as e:
            if getattr(e, 'code', None) == UNIQUE_VIOLATION:
                raise DuplicateKeyError(collection, row['key']) from e
            raise PersistenceError(collection, row['key'], f"Insert failed: {e}") from e
        return document['_id']

    async def update_one(self, collection, key, set_fields=None, push_fields=None):
        # Read-modify-write: appends from concurrent writers can race
        def _update() -> bool:
            rows = self._select_rows(collection, key)
            if not rows:
                return False
            row = rows[0]
            document = row['document']
            apply_update(document, set_fields, push_fields)
            self._table(collection).update({'document': document}).eq('id', row['id']).execute()
            return True

        try:
            return await asyncio.to_thread(_update)
        except APIError as e:
            raise PersistenceError(collection, key, f"Update failed: {e}") from e

    async def ensure_unique(self, collection: str, fields: Sequence[str]):
        # The unique constraint itself lives on the table's ``key`` column
        self.unique_indexes[collection] = tuple(fields)
