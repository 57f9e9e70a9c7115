"""Signal-specific analyzers for the intent cascade.

Each analyzer looks at one kind of evidence and returns a ScoredResult.
The IntentClassifier evaluates them in order as a list of
``CascadeAnalyzer`` strategy objects; the first result whose confidence
exceeds its analyzer's threshold wins.

Order:
    1. product_attribute - variant/action text on product detail pages
    2. url               - structural URL families
    3. navigation        - where the click led (look-ahead)
    4. behavior          - session intent/stage plus name heuristics
    5. text              - text-only fallback
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .base_classifier import (
    ScoredResult, PRODUCT, CATEGORY, UI, PRODUCT_ATTRIBUTE, IGNORE
)
from .text_heuristics import looks_like_category_name, looks_like_product_name, is_ui_text
from ..extractors.attribute_detector import AttributeDetector
from ..url_intelligence.url_patterns import URLPatternMatcher
from ..utils.interaction import Interaction, SessionContext, CLICK
from ..utils.url_utils import URLUtils


@dataclass
class AnalysisInput:
    """Everything an analyzer may look at for one interaction."""
    interaction: Interaction
    session_context: SessionContext = field(default_factory=SessionContext)
    subsequent_interactions: List[Interaction] = field(default_factory=list)


@dataclass
class CascadeAnalyzer:
    """One rule in the cascade."""
    name: str
    evaluate: Callable[[AnalysisInput], ScoredResult]
    threshold: float

    def accepts(self, result: ScoredResult) -> bool:
        return result.confidence > self.threshold


class SignalAnalyzers:
    """
    The analyzer implementations.

    Kept together because they share the URL matcher and the attribute
    detector; each method is independently callable and testable.
    """

    def __init__(
        self,
        url_matcher: Optional[URLPatternMatcher] = None,
        attribute_detector: Optional[AttributeDetector] = None,
        lookahead_window: int = 4
    ):
        self.url_matcher = url_matcher or URLPatternMatcher()
        self.attribute_detector = attribute_detector or AttributeDetector()
        self.lookahead_window = lookahead_window

    def is_product_detail_page(self, url: Optional[str]) -> bool:
        """Variant selectors only live on product detail pages."""
        if self.url_matcher.is_product_detail_url(url):
            return True
        return bool(url) and self.url_matcher.analyze(url).type == PRODUCT

    # ------------------------------------------------------------
    # 1. Product attributes
    # ------------------------------------------------------------

    def analyze_product_attribute(self, data: AnalysisInput) -> ScoredResult:
        text = data.interaction.text.strip()
        if not text:
            return ScoredResult.unknown('No element text')

        if not self.is_product_detail_page(data.interaction.url):
            return ScoredResult.unknown('Not on product detail page')

        match = self.attribute_detector.detect(text)
        if not match:
            return ScoredResult.unknown('Not recognized as product attribute')

        return ScoredResult(
            type=PRODUCT_ATTRIBUTE,
            confidence=match.confidence,
            reasoning=f"Detected {match.attribute_type} attribute: {match.value}",
            attribute_type=match.attribute_type,
            attribute_value=match.value,
        )

    # ------------------------------------------------------------
    # 2. URL structure
    # ------------------------------------------------------------

    def analyze_url(self, data: AnalysisInput) -> ScoredResult:
        url = data.interaction.url
        if not url:
            # Missing URL is not evidence; let the text fallback decide
            return ScoredResult.unknown('No URL available')

        analysis = self.url_matcher.analyze(url)
        return ScoredResult(analysis.type, analysis.confidence, analysis.reasoning)

    # ------------------------------------------------------------
    # 3. Navigation intent
    # ------------------------------------------------------------

    def analyze_navigation_intent(self, data: AnalysisInput) -> ScoredResult:
        interaction = data.interaction
        if interaction.type != CLICK or not data.subsequent_interactions:
            return ScoredResult.unknown('No click or no subsequent interactions')

        next_url = self.find_next_url(data.subsequent_interactions)
        if not next_url:
            return ScoredResult.unknown('No subsequent URL found')

        destination = self.url_matcher.analyze(next_url)

        if destination.type == PRODUCT:
            return ScoredResult(PRODUCT, 0.85, f"Click led to product page: {next_url}")

        if destination.type == CATEGORY:
            return ScoredResult(CATEGORY, 0.8, f"Click led to category page: {next_url}")

        if interaction.url and URLUtils.is_same_page(interaction.url, next_url):
            return ScoredResult(UI, 0.7, 'Click did not change page significantly')

        return ScoredResult.unknown('Navigation intent unclear')

    def find_next_url(self, interactions: List[Interaction]) -> Optional[str]:
        """First URL within the look-ahead window."""
        for interaction in interactions[:self.lookahead_window]:
            if interaction.url:
                return interaction.url
        return None

    # ------------------------------------------------------------
    # 4. Behavioral context
    # ------------------------------------------------------------

    def analyze_behavioral_context(self, data: AnalysisInput) -> ScoredResult:
        context = data.session_context
        text = data.interaction.text
        if not text:
            return ScoredResult.unknown('No element text')

        if context.user_intent == 'browse' or context.shopping_stage == 'awareness':
            if looks_like_category_name(text):
                return ScoredResult(
                    CATEGORY, 0.7, 'User browsing categories, element looks like category name'
                )

        if context.user_intent == 'purchase' or context.shopping_stage == 'consideration':
            if looks_like_product_name(text):
                return ScoredResult(
                    PRODUCT, 0.6, 'User in purchasing mode, element looks like product'
                )

        return ScoredResult.unknown('Behavioral context not decisive')

    # ------------------------------------------------------------
    # 5. Text fallback
    # ------------------------------------------------------------

    def analyze_text(self, data: AnalysisInput) -> ScoredResult:
        text = data.interaction.text
        if not text or not text.strip():
            return ScoredResult(IGNORE, 0.9, 'No element text')

        if is_ui_text(text):
            return ScoredResult(IGNORE, 0.8, 'Appears to be UI text')

        if looks_like_product_name(text):
            return ScoredResult(PRODUCT, 0.6, 'Text pattern suggests product name')

        if looks_like_category_name(text):
            return ScoredResult(CATEGORY, 0.5, 'Text pattern suggests category name')

        return ScoredResult(IGNORE, 0.5, 'Text pattern not recognized')


def build_cascade(
    analyzers: SignalAnalyzers,
    attribute_threshold: float = 0.8,
    url_threshold: float = 0.8,
    navigation_threshold: float = 0.7,
    behavior_threshold: float = 0.6
) -> List[CascadeAnalyzer]:
    """Assemble the ordered analyzer list."""
    return [
        CascadeAnalyzer('product_attribute', analyzers.analyze_product_attribute, attribute_threshold),
        CascadeAnalyzer('url', analyzers.analyze_url, url_threshold),
        CascadeAnalyzer('navigation', analyzers.analyze_navigation_intent, navigation_threshold),
        CascadeAnalyzer('behavior', analyzers.analyze_behavioral_context, behavior_threshold),
        CascadeAnalyzer('text', analyzers.analyze_text, 0.0),
    ]
