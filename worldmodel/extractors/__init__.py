# worldmodel/extractors/__init__.py
"""Attribute, selector and product extractors.

``variant_clusters`` and ``product_extractor`` depend on the storage
schema and are imported from their modules directly.
"""

from .attribute_detector import (
    AttributeDetector, AttributeMatch, ColorDetector, SizeDetector, PhraseDetector
)
from .selector_builder import SelectorBuilder

__all__ = [
    'AttributeDetector',
    'AttributeMatch',
    'ColorDetector',
    'SizeDetector',
    'PhraseDetector',
    'SelectorBuilder',
]
