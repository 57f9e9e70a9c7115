# worldmodel/__init__.py
"""E-commerce interaction world model: classify captured sessions and
accumulate domains, categories, products and variant clusters."""

from .utils import URLUtils, Interaction, SessionContext, parse_interactions
from .url_intelligence import URLPatternMatcher
from .classifiers import IntentClassifier, PageClassifier, ClassificationResult
from .extractors import AttributeDetector, SelectorBuilder
from .sequences import SequenceSegmenter, UniversalSequence
from .storage import WorldModelStore, InMemoryBackend, JSONStorage, PersistenceError
from .core import WorldModelConfig, SessionIngester, IngestionResult

__version__ = '1.0.0'

__all__ = [
    'URLUtils',
    'Interaction',
    'SessionContext',
    'parse_interactions',
    'URLPatternMatcher',
    'IntentClassifier',
    'PageClassifier',
    'ClassificationResult',
    'AttributeDetector',
    'SelectorBuilder',
    'SequenceSegmenter',
    'UniversalSequence',
    'WorldModelStore',
    'InMemoryBackend',
    'JSONStorage',
    'PersistenceError',
    'WorldModelConfig',
    'SessionIngester',
    'IngestionResult',
]
