"""Tests for the document backends."""

from unittest.mock import MagicMock

import pytest

from worldmodel.storage.backends import InMemoryBackend, matches, apply_update
from worldmodel.storage.errors import DuplicateKeyError, PersistenceError
from worldmodel.storage.supabase_backend import SupabaseBackend


class TestPathHelpers:

    def test_list_fields_match_any_element(self):
        document = {'discovery_contexts': [{'category_path': 'men'}, {'category_path': 'sale'}]}

        assert matches(document, {'discovery_contexts.category_path': 'sale'})
        assert not matches(document, {'discovery_contexts.category_path': 'kids'})

    def test_set_and_push(self):
        document = {'tags': ['a'], 'state': {'price': 10}}

        apply_update(document, {'state.price': 12, 'state.currency': 'EUR'}, {'tags': ['b'], 'log': [1]})

        assert document == {'tags': ['a', 'b'], 'state': {'price': 12, 'currency': 'EUR'}, 'log': [1]}


class TestInMemoryBackend:

    @pytest.mark.asyncio
    async def test_insert_and_find(self, backend):
        document_id = await backend.insert_one('things', {'name': 'a'})

        found = await backend.find_one('things', {'name': 'a'})

        assert found['_id'] == document_id
        assert await backend.find_one('things', {'name': 'b'}) is None

    @pytest.mark.asyncio
    async def test_reads_are_copies(self, backend):
        await backend.insert_one('things', {'name': 'a', 'tags': []})

        found = await backend.find_one('things', {'name': 'a'})
        found['tags'].append('mutated')

        assert (await backend.find_one('things', {'name': 'a'}))['tags'] == []

    @pytest.mark.asyncio
    async def test_unique_index(self, backend):
        await backend.ensure_unique('things', ['domain', 'key'])
        await backend.insert_one('things', {'domain': 'd', 'key': 1})

        with pytest.raises(DuplicateKeyError):
            await backend.insert_one('things', {'domain': 'd', 'key': 1})

        # Incomplete keys are not constrained
        await backend.insert_one('things', {'domain': 'd', 'key': None})
        await backend.insert_one('things', {'domain': 'd', 'key': None})
        assert len(await backend.find_many('things', {'domain': 'd'})) == 3

    @pytest.mark.asyncio
    async def test_update_missing_document(self, backend):
        assert await backend.update_one('things', {'name': 'x'}, set_fields={'a': 1}) is False


class TestSupabaseBackend:

    def test_requires_credentials(self):
        with pytest.raises(PersistenceError):
            SupabaseBackend()

    @pytest.mark.asyncio
    async def test_find_pushes_top_level_filter(self):
        client = MagicMock()
        query = client.table.return_value.select.return_value
        query.contains.return_value.execute.return_value.data = [
            {'id': '1', 'key': None, 'document': {'_id': '1', 'domain': 'd', 'contexts': [{'path': 'men'}]}},
            {'id': '2', 'key': None, 'document': {'_id': '2', 'domain': 'd', 'contexts': [{'path': 'kids'}]}},
        ]
        backend = SupabaseBackend(client=client)

        found = await backend.find_many('world_model_products', {'domain': 'd', 'contexts.path': 'kids'})

        query.contains.assert_called_once_with('document', {'domain': 'd'})
        assert [d['_id'] for d in found] == ['2']

    @pytest.mark.asyncio
    async def test_insert_writes_unique_key(self):
        client = MagicMock()
        backend = SupabaseBackend(client=client, table_names={'world_model_domains': 'domains'})
        await backend.ensure_unique('world_model_domains', ['domain'])

        await backend.insert_one('world_model_domains', {'domain': 'shop.example.com'})

        client.table.assert_called_with('domains')
        row = client.table.return_value.insert.call_args[0][0]
        assert row['key'] == 'shop.example.com'
        assert row['document']['domain'] == 'shop.example.com'
