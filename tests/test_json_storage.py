"""Tests for JSON snapshots of a domain."""

from datetime import datetime

import pytest

from worldmodel.core.ingester import SessionIngester
from worldmodel.storage.json_storage import JSONStorage


@pytest.mark.asyncio
async def test_export_round_trip(tmp_path, store, browse_session):
    await SessionIngester(store=store).ingest_session(browse_session)
    snapshot = await store.export_domain('shop.example.com')
    path = tmp_path / 'world_model.json'

    JSONStorage.save(snapshot, str(path))
    loaded = JSONStorage.load(str(path))

    assert loaded['domain']['domain'] == 'shop.example.com'
    assert {c['category_path'] for c in loaded['categories']} == {'men', 'women', 'kids'}
    assert loaded['products'][0]['product_id'] == 'oxford-cotton-shirt'


def test_datetimes_are_serialized(tmp_path):
    path = tmp_path / 'snapshot.json'

    JSONStorage.save({'exported_at': datetime(2024, 1, 2, 3, 4, 5)}, str(path))

    assert JSONStorage.load(str(path))['exported_at'] == '2024-01-02T03:04:05'


def test_unserializable_value_raises(tmp_path):
    with pytest.raises(TypeError):
        JSONStorage.save({'value': object()}, str(tmp_path / 'bad.json'))
