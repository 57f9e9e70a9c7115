# worldmodel/storage/__init__.py
"""Persistence: schema, backends and the world model store."""

from .schema import (
    DOMAINS, CATEGORIES, PRODUCTS, VARIANT_KEYS,
    Domain, Category, Product,
    CategoryDiscoveryContext, ProductDiscoveryContext,
    SiblingCategory, SiblingProduct,
    SelectorInfo, SelectorReliability,
    VariantCluster, VariantOption,
    CategoryType, PageType, SiblingContext, VariantType,
)
from .errors import WorldModelError, PersistenceError, DuplicateKeyError, BatchTooLargeError
from .backends import DocumentBackend, InMemoryBackend
from .json_storage import JSONStorage
from .world_model_store import WorldModelStore

__all__ = [
    'DOMAINS',
    'CATEGORIES',
    'PRODUCTS',
    'VARIANT_KEYS',
    'Domain',
    'Category',
    'Product',
    'CategoryDiscoveryContext',
    'ProductDiscoveryContext',
    'SiblingCategory',
    'SiblingProduct',
    'SelectorInfo',
    'SelectorReliability',
    'VariantCluster',
    'VariantOption',
    'CategoryType',
    'PageType',
    'SiblingContext',
    'VariantType',
    'WorldModelError',
    'PersistenceError',
    'DuplicateKeyError',
    'BatchTooLargeError',
    'DocumentBackend',
    'InMemoryBackend',
    'JSONStorage',
    'WorldModelStore',
]
