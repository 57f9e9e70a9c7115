# worldmodel/classifiers/__init__.py
"""Page and interaction-intent classifiers."""

from .base_classifier import (
    BaseInteractionClassifier, ClassificationResult, ScoredResult,
    ExtractedData, AttributeData, ElementDetails
)
from .page_classifier import PageClassifier, PageClassification, SemanticFeatures
from .analyzers import AnalysisInput, CascadeAnalyzer, SignalAnalyzers, build_cascade
from .intent_classifier import IntentClassifier

__all__ = [
    'BaseInteractionClassifier',
    'ClassificationResult',
    'ScoredResult',
    'ExtractedData',
    'AttributeData',
    'ElementDetails',
    'PageClassifier',
    'PageClassification',
    'SemanticFeatures',
    'AnalysisInput',
    'CascadeAnalyzer',
    'SignalAnalyzers',
    'build_cascade',
    'IntentClassifier',
]
