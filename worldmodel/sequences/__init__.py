# worldmodel/sequences/__init__.py
"""Behavioral sequence segmentation."""

from .segmenter import SequenceSegmenter, SequenceSegment, UniversalSequence

__all__ = [
    'SequenceSegmenter',
    'SequenceSegment',
    'UniversalSequence',
]
