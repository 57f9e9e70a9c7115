"""Detect product attributes (colors, sizes, fits, actions, availability) from element text.

Each detector scores a piece of element text independently. The
detectors are run in a fixed order on product detail pages; the first
one whose score exceeds its own threshold names the attribute type.
"""

import re
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class AttributeMatch:
    """A scored attribute guess."""
    attribute_type: str
    value: str
    confidence: float


class ColorDetector:
    """Color names, optionally with a shade modifier ("dark blue", "Navy")."""

    attribute_type = 'color'
    threshold = 0.8

    def __init__(self):
        self.color_names = [
            'black', 'white', 'red', 'blue', 'green', 'yellow', 'orange', 'purple', 'pink',
            'brown', 'gray', 'grey', 'navy', 'beige', 'cream', 'tan', 'olive', 'maroon',
            'teal', 'burgundy', 'khaki', 'ivory', 'coral', 'salmon', 'mint', 'lavender',
            'crimson', 'emerald', 'turquoise', 'violet', 'magenta', 'cyan', 'lime',
        ]
        self.shade_modifiers = ['dark', 'light', 'bright', 'pale', 'deep']
        self.brand_color_pattern = re.compile(r'^[a-z]+\s*(blue|red|green|black|white|gray|grey)$')
        self._word_patterns = {
            name: re.compile(rf'(?<![a-z]){name}(?![a-z])')
            for name in self.color_names + self.shade_modifiers
        }

    def detect(self, text: str) -> AttributeMatch:
        text = text.strip().lower()

        if text in self.color_names or text in self.shade_modifiers:
            return AttributeMatch(self.attribute_type, text, 0.95)

        if any(pattern.search(text) for pattern in self._word_patterns.values()):
            return AttributeMatch(self.attribute_type, text, 0.9)

        if self.brand_color_pattern.match(text):
            return AttributeMatch(self.attribute_type, text, 0.85)

        return AttributeMatch(self.attribute_type, text, 0.0)


class SizeDetector:
    """Letter sizes, numeric clothing sizes, waist sizes and shoe sizes."""

    attribute_type = 'size'
    threshold = 0.8

    LETTER_SIZES = re.compile(r'^(xs|s|m|l|xl|xxl|xxxl)$', re.IGNORECASE)
    WORD_SIZES = re.compile(r'^(extra small|small|medium|large|extra large)$', re.IGNORECASE)
    NUMERIC = re.compile(r'^\d{1,2}$')
    WAIST = re.compile(r'^\d{2,3}w?$', re.IGNORECASE)
    SHOE = re.compile(r'^\d{1,2}(\.\d)?$')
    LABELLED = re.compile(r'^(size\s*)?\d+', re.IGNORECASE)

    def detect(self, text: str) -> AttributeMatch:
        text = text.strip()

        if self.LETTER_SIZES.match(text) or self.WORD_SIZES.match(text):
            return AttributeMatch(self.attribute_type, text.upper(), 0.95)

        if self.NUMERIC.match(text) and 0 <= int(text) <= 50:
            return AttributeMatch(self.attribute_type, text, 0.9)

        if self.WAIST.match(text):
            return AttributeMatch(self.attribute_type, text.upper(), 0.9)

        if self.SHOE.match(text) and 3 <= float(text) <= 20:
            return AttributeMatch(self.attribute_type, text, 0.85)

        if self.LABELLED.match(text):
            return AttributeMatch(self.attribute_type, re.sub(r'^size\s*', '', text, flags=re.IGNORECASE), 0.8)

        return AttributeMatch(self.attribute_type, text, 0.0)


class PhraseDetector:
    """Phrase-table detector: exact phrase scores higher than a contained phrase."""

    def __init__(self, attribute_type: str, phrases: List[str],
                 exact_confidence: float, partial_confidence: float, threshold: float):
        self.attribute_type = attribute_type
        self.phrases = phrases
        self.exact_confidence = exact_confidence
        self.partial_confidence = partial_confidence
        self.threshold = threshold

    def detect(self, text: str) -> AttributeMatch:
        text = text.strip().lower()

        if text in self.phrases:
            return AttributeMatch(self.attribute_type, text, self.exact_confidence)

        if any(phrase in text for phrase in self.phrases):
            return AttributeMatch(self.attribute_type, text, self.partial_confidence)

        return AttributeMatch(self.attribute_type, text, 0.0)


def action_detector() -> PhraseDetector:
    return PhraseDetector(
        'action',
        ['add to bag', 'add to cart', 'buy now', 'purchase', 'checkout',
         'add to wishlist', 'save for later', 'quick add', 'select'],
        exact_confidence=0.95, partial_confidence=0.9, threshold=0.8,
    )


def style_detector() -> PhraseDetector:
    return PhraseDetector(
        'style',
        ['regular fit', 'slim fit', 'loose fit', 'relaxed fit', 'straight fit',
         'skinny', 'wide leg', 'bootcut', 'regular', 'slim', 'loose', 'relaxed'],
        exact_confidence=0.9, partial_confidence=0.8, threshold=0.7,
    )


def availability_detector() -> PhraseDetector:
    return PhraseDetector(
        'availability',
        ['in stock', 'out of stock', 'low stock', 'available', 'unavailable',
         'sold out', 'limited availability', 'pre-order', 'backorder'],
        exact_confidence=0.95, partial_confidence=0.9, threshold=0.8,
    )


class AttributeDetector:
    """
    Run the attribute detectors in priority order.

    Order: color -> size -> action -> style -> availability.
    """

    def __init__(self):
        self.detectors = [
            ColorDetector(),
            SizeDetector(),
            action_detector(),
            style_detector(),
            availability_detector(),
        ]

    def detect(self, text: Optional[str]) -> Optional[AttributeMatch]:
        """
        Return the first attribute match exceeding its detector's threshold.

        Args:
            text: Element text

        Returns:
            AttributeMatch or None
        """
        if not text or not text.strip():
            return None

        for detector in self.detectors:
            match = detector.detect(text)
            if match.confidence > detector.threshold:
                return match
        return None

    def classify_value(self, value: str) -> Optional[str]:
        """Attribute type for an already-extracted value, None when unrecognised."""
        match = self.detect(value)
        return match.attribute_type if match else None
