"""Behavioral sequence segmentation.

Splits an ordered interaction list into shopping phases and scores the
sequence as a whole.

Algorithm:
    1. Classify every interaction's page (PageClassifier)
    2. Derive a behavior type per interaction:
       convert -> configure -> focus -> browse
    3. Group maximal runs of equal behavior type into segments
    4. Decide the overall flow type, quality score and completion
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..classifiers.base_classifier import ClassificationResult
from ..classifiers.page_classifier import PageClassifier, PageClassification
from ..classifiers.text_heuristics import gender_section_from_text
from ..url_intelligence.url_patterns import URLPatternMatcher
from ..utils.interaction import Interaction


BROWSE = 'browse'
FOCUS = 'focus'
CONFIGURE = 'configure'
CONVERT = 'convert'

SEGMENT_BASE_CONFIDENCE = {
    BROWSE: 0.7,
    FOCUS: 0.8,
    CONFIGURE: 0.9,
    CONVERT: 0.95,
}

SEGMENT_INTENTS = {
    BROWSE: 'Exploring product categories and options',
    FOCUS: 'Examining specific product details',
    CONFIGURE: 'Selecting product variants and options',
    CONVERT: 'Adding product to cart or purchasing',
}

CONVERSION_PHRASES = ['add to cart', 'add to bag', 'buy now', 'purchase', 'checkout', 'place order']


@dataclass
class SequenceSegment:
    """A maximal run of interactions sharing one behavior type."""
    type: str  # "browse", "focus", "configure", "convert"
    interactions: List[Interaction]
    start_index: int
    end_index: int
    confidence: float
    intent: str
    classifications: List[Optional[ClassificationResult]] = field(default_factory=list)


@dataclass
class UniversalSequence:
    """Segmented session with sequence-level verdicts."""
    segments: List[SequenceSegment] = field(default_factory=list)
    overall_type: str = 'navigation_flow'  # browse_to_cart, search_to_cart, product_configuration
    quality_score: float = 0.0
    conversion_complete: bool = False
    user_intent: str = 'General shopping and browsing'
    page_classifications: List[PageClassification] = field(default_factory=list)


class SequenceSegmenter:
    """Segment an interaction sequence into browse/focus/configure/convert phases."""

    def __init__(self, page_classifier: Optional[PageClassifier] = None,
                 url_matcher: Optional[URLPatternMatcher] = None):
        self.page_classifier = page_classifier or PageClassifier()
        self.url_matcher = url_matcher or URLPatternMatcher()

    def segment(
        self,
        interactions: List[Interaction],
        classifications: Optional[List[ClassificationResult]] = None
    ) -> UniversalSequence:
        """
        Segment a session.

        Args:
            interactions: Ordered interactions
            classifications: Per-interaction intent results, carried into segments

        Returns:
            UniversalSequence (empty segments for an empty session)
        """
        if not interactions:
            return UniversalSequence()

        classifications = list(classifications or [])
        classifications += [None] * (len(interactions) - len(classifications))

        pages = [self.page_classifier.classify(i) for i in interactions]
        behaviors = [self.classify_behavior(i, p) for i, p in zip(interactions, pages)]

        segments: List[SequenceSegment] = []
        start = 0
        for index in range(1, len(interactions) + 1):
            if index == len(interactions) or behaviors[index] != behaviors[start]:
                segments.append(self.build_segment(
                    behaviors[start],
                    interactions[start:index],
                    classifications[start:index],
                    start,
                    index - 1,
                ))
                start = index

        return UniversalSequence(
            segments=segments,
            overall_type=self.determine_sequence_type(segments, pages),
            quality_score=self.calculate_quality(segments),
            conversion_complete=any(s.type == CONVERT for s in segments),
            user_intent=self.extract_user_intent(interactions, segments),
            page_classifications=pages,
        )

    # ------------------------------------------------------------
    # Per-interaction behavior
    # ------------------------------------------------------------

    def classify_behavior(self, interaction: Interaction, page: PageClassification) -> str:
        text = interaction.text or ''
        attributes = interaction.element.attributes or {}
        on_product_page = page.page_type == 'product' or self.url_matcher.is_product_page(interaction.url)

        if self.is_conversion_action(text, page):
            return CONVERT

        if on_product_page and self.page_classifier.detect_variant_selectors(text, attributes):
            return CONFIGURE

        if on_product_page and page.semantic_features.has_product_details:
            return FOCUS

        return BROWSE

    @staticmethod
    def is_conversion_action(text: str, page: PageClassification) -> bool:
        lower_text = text.lower()
        return (
            any(phrase in lower_text for phrase in CONVERSION_PHRASES)
            or page.semantic_features.has_cart_indicators
        )

    def build_segment(self, behavior, interactions, classifications, start, end) -> SequenceSegment:
        return SequenceSegment(
            type=behavior,
            interactions=list(interactions),
            start_index=start,
            end_index=end,
            confidence=self.segment_confidence(behavior, len(interactions)),
            intent=SEGMENT_INTENTS.get(behavior, 'Navigating through the shopping experience'),
            classifications=list(classifications),
        )

    @staticmethod
    def segment_confidence(behavior: str, interaction_count: int) -> float:
        base = SEGMENT_BASE_CONFIDENCE.get(behavior, 0.5)
        return min(1.0, base + min(0.2, 0.03 * interaction_count))

    # ------------------------------------------------------------
    # Sequence-level verdicts
    # ------------------------------------------------------------

    @staticmethod
    def determine_sequence_type(segments: List[SequenceSegment], pages: List[PageClassification]) -> str:
        segment_types = {s.type for s in segments}
        page_types = [p.page_type for p in pages]
        has_product = 'product' in page_types
        has_conversion = CONVERT in segment_types

        # search must lead into a product page, not follow the last one
        search_leads = (
            'search' in page_types and has_product
            and page_types.index('search') < len(page_types) - 1 - page_types[::-1].index('product')
        )

        if search_leads and has_conversion:
            return 'search_to_cart'
        if BROWSE in segment_types and has_product and has_conversion:
            return 'browse_to_cart'
        if has_product and CONFIGURE in segment_types:
            return 'product_configuration'
        return 'navigation_flow'

    @staticmethod
    def calculate_quality(segments: List[SequenceSegment]) -> float:
        if not segments:
            return 0.0

        quality = 0.5
        quality += min(0.2, len(segments) * 0.05)
        quality += len({s.type for s in segments}) * 0.1
        if any(s.type == CONVERT for s in segments):
            quality += 0.2
        if any(s.type == CONFIGURE for s in segments):
            quality += 0.1

        average_confidence = sum(s.confidence for s in segments) / len(segments)
        return min(1.0, (quality + average_confidence) / 2)

    @staticmethod
    def extract_user_intent(interactions: List[Interaction], segments: List[SequenceSegment]) -> str:
        early_text = ' '.join(i.text for i in interactions[:3]).lower()
        section = gender_section_from_text(early_text)

        if section == 'women':
            return "Shopping for women's items"
        if section == 'men':
            return "Shopping for men's items"
        if 'sale' in early_text or 'discount' in early_text:
            return 'Looking for deals and discounts'
        if any(s.type == CONVERT for s in segments):
            return 'Shopping with purchase intent'
        return 'General shopping and browsing'
