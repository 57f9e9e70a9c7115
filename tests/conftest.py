"""Shared fixtures: raw interaction records and an in-memory store."""

import pytest

from worldmodel.storage.backends import InMemoryBackend
from worldmodel.storage.world_model_store import WorldModelStore
from worldmodel.utils.interaction import Interaction


SHOP = 'https://shop.example.com'
PRODUCT_URL = f'{SHOP}/p/oxford-cotton-shirt'
HM_PRODUCT_URL = 'https://www2.hm.com/en_us/productpage.1234567001.html'
PRODUCT_NAME = 'Oxford Cotton Button-Down Shirt'


def make_record(text, url, type='CLICK', id=None, tag='button',
                attributes=None, class_name='', nearby=None, selector=None, box=None):
    """Raw capture record in the shape the browser extension sends."""
    record_id = id or f"int-{abs(hash((text, url))) % 100000}"
    return {
        'id': record_id,
        'type': type,
        'timestamp': 1700000000000,
        'element': {
            'tag': tag,
            'text': text,
            'className': class_name,
            'attributes': attributes or {},
            'nearbyElements': nearby or [],
        },
        'context': {'pageUrl': url, 'pageTitle': ''},
        'selectors': {'primary': selector} if selector else {},
        'visual': {'boundingBox': box or {}},
    }


def make_interaction(text, url, **kwargs):
    return Interaction.from_dict(make_record(text, url, **kwargs))


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def interaction():
    return make_interaction


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend):
    return WorldModelStore(backend=backend)


@pytest.fixture
def browse_session():
    """Category click, product page visit, variant picks and add to bag."""
    return [
        make_record(
            'Men', f'{SHOP}/browse/men', id='nav-men', tag='a', selector='#nav-men',
            nearby=[
                {'text': 'Women', 'selector': '#nav-women', 'relationship': 'sibling', 'distance': 40},
                {'text': 'Kids', 'selector': '#nav-kids', 'relationship': 'sibling', 'distance': 80},
                {'text': 'Sign in', 'selector': '#sign-in', 'relationship': 'sibling', 'distance': 300},
            ],
        ),
        make_record(PRODUCT_NAME, PRODUCT_URL, id='title', tag='h1', selector='h1.product-title'),
        make_record('Navy', PRODUCT_URL, id='swatch-navy', selector='#swatch-navy',
                    attributes={'data-color': 'navy', 'class': 'swatch'}, box={'x': 10, 'y': 300}),
        make_record('M', PRODUCT_URL, id='size-m', selector='#size-m',
                    attributes={'data-size': 'M'}, box={'x': 10, 'y': 400}),
        make_record('Add to Bag', PRODUCT_URL, id='add-to-bag', selector='#add-to-bag'),
    ]


@pytest.fixture
def search_session():
    return [
        make_record('Search', f'{SHOP}/search?q=shirts', id='search'),
        make_record(PRODUCT_NAME, PRODUCT_URL, id='title', tag='h1'),
        make_record('M', PRODUCT_URL, id='size-m'),
        make_record('Add to Bag', PRODUCT_URL, id='add-to-bag'),
    ]
