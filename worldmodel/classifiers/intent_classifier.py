"""Intent classifier: what did the user mean by this click?

Runs the ordered analyzer cascade (see ``analyzers``) and turns the
winning ScoredResult into a ClassificationResult, attaching the domain
and the extracted product/category data or attribute sighting.
"""

import logging
import re
from typing import List, Optional, Tuple

from .analyzers import AnalysisInput, CascadeAnalyzer, SignalAnalyzers, build_cascade
from .base_classifier import (
    BaseInteractionClassifier, ClassificationResult, ScoredResult, ExtractedData,
    AttributeData, ElementDetails, PRODUCT, CATEGORY, PRODUCT_ATTRIBUTE, IGNORE
)
from .text_heuristics import gender_section_from_text
from ..extractors.selector_builder import SelectorBuilder
from ..url_intelligence.url_patterns import URLPatternMatcher, GENDER_SECTIONS
from ..utils.interaction import Interaction, SessionContext
from ..utils.url_utils import URLUtils


class IntentClassifier(BaseInteractionClassifier):
    """
    Cascade classifier over product-attribute, URL, navigation,
    behavioral and text signals.

    Stateless per call; a single instance can be shared.
    """

    def __init__(
        self,
        attribute_threshold: float = 0.8,
        url_threshold: float = 0.8,
        navigation_threshold: float = 0.7,
        behavior_threshold: float = 0.6,
        lookahead_window: int = 4,
        url_matcher: Optional[URLPatternMatcher] = None,
        selector_builder: Optional[SelectorBuilder] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.url_matcher = url_matcher or URLPatternMatcher()
        self.selector_builder = selector_builder or SelectorBuilder()
        self.logger = logger or logging.getLogger(__name__)

        self.analyzers = SignalAnalyzers(
            url_matcher=self.url_matcher,
            lookahead_window=lookahead_window,
        )
        self.cascade: List[CascadeAnalyzer] = build_cascade(
            self.analyzers,
            attribute_threshold=attribute_threshold,
            url_threshold=url_threshold,
            navigation_threshold=navigation_threshold,
            behavior_threshold=behavior_threshold,
        )

    @classmethod
    def from_config(cls, config, logger: Optional[logging.Logger] = None) -> 'IntentClassifier':
        """Build a classifier from a WorldModelConfig."""
        return cls(
            attribute_threshold=config.attribute_threshold,
            url_threshold=config.url_threshold,
            navigation_threshold=config.navigation_threshold,
            behavior_threshold=config.behavior_threshold,
            lookahead_window=config.lookahead_window,
            logger=logger,
        )

    def classify_interaction(
        self,
        interaction: Interaction,
        session_context: Optional[SessionContext] = None,
        subsequent_interactions: Optional[List[Interaction]] = None
    ) -> ClassificationResult:
        """
        Classify one interaction.

        Args:
            interaction: The interaction to classify
            session_context: Session-level behavioural summary
            subsequent_interactions: Interactions captured after this one

        Returns:
            ClassificationResult (always exactly one)
        """
        if self.should_ignore(interaction):
            return ClassificationResult(
                type=IGNORE,
                confidence=1.0,
                reasoning='Non-meaningful interaction type or missing data',
            )

        data = AnalysisInput(
            interaction=interaction,
            session_context=session_context or SessionContext(),
            subsequent_interactions=list(subsequent_interactions or []),
        )

        for analyzer in self.cascade:
            scored = analyzer.evaluate(data)
            if analyzer.accepts(scored):
                if scored.type == PRODUCT_ATTRIBUTE:
                    return self.build_attribute_result(scored, interaction, analyzer.name)
                return self.build_result(scored, interaction, analyzer.name)

        # The text analyzer accepts everything; kept for custom cascades
        return ClassificationResult(type=IGNORE, confidence=0.5, reasoning='Cascade exhausted')

    def classify_session(
        self,
        interactions: List[Interaction],
        session_context: Optional[SessionContext] = None
    ) -> List[ClassificationResult]:
        """Classify every interaction in order, each with its look-ahead slice."""
        window = self.analyzers.lookahead_window
        return [
            self.classify_interaction(
                interaction,
                session_context,
                interactions[index + 1:index + 1 + window],
            )
            for index, interaction in enumerate(interactions)
        ]

    @staticmethod
    def should_ignore(interaction: Interaction) -> bool:
        if not interaction.is_click_like:
            return True
        return not interaction.text and not interaction.url

    # ------------------------------------------------------------
    # Result building
    # ------------------------------------------------------------

    def build_result(
        self,
        scored: ScoredResult,
        interaction: Interaction,
        analyzer_name: str
    ) -> ClassificationResult:
        result = ClassificationResult(
            type=scored.type,
            confidence=scored.confidence,
            reasoning=scored.reasoning,
            analyzer=analyzer_name,
        )

        if scored.type not in (PRODUCT, CATEGORY):
            return result

        url = interaction.url
        text = interaction.text
        if not (url and text):
            return result

        result.domain = URLUtils.extract_domain(url)
        extracted = ExtractedData(name=text.strip(), url=url)

        if scored.type == CATEGORY:
            path, text_path, url_path, mismatch = self.derive_category_path(text, url)
            extracted.category_path = path
            extracted.text_category_path = text_path
            extracted.url_category_path = url_path
            extracted.category_path_mismatch = mismatch
        else:
            extracted.product_id = self.generate_product_id(text, url)

        result.extracted_data = extracted
        return result

    def build_attribute_result(
        self,
        scored: ScoredResult,
        interaction: Interaction,
        analyzer_name: str
    ) -> ClassificationResult:
        element = interaction.element
        attribute = AttributeData(
            type=scored.attribute_type,
            value=interaction.text.strip(),
            selector=self.selector_builder.best_selector(interaction),
            parent_product_url=interaction.url or None,
            element_details=ElementDetails(
                tag=element.tag,
                class_name=element.class_name,
                id=element.id,
                attributes=dict(element.attributes),
                xpath=self.selector_builder.build_xpath(interaction),
            ),
            position=dict(interaction.bounding_box),
        )

        result = ClassificationResult(
            type=PRODUCT_ATTRIBUTE,
            confidence=scored.confidence,
            reasoning=scored.reasoning,
            analyzer=analyzer_name,
            attribute_data=attribute,
        )
        if interaction.url:
            result.domain = URLUtils.extract_domain(interaction.url)
        return result

    # ------------------------------------------------------------
    # Extraction helpers
    # ------------------------------------------------------------

    def derive_category_path(
        self,
        text: str,
        url: str
    ) -> Tuple[str, str, Optional[str], bool]:
        """
        Category path for a category click. URL structure wins over text.

        Returns:
            (category_path, text_path, url_path, mismatch)
        """
        text_path = URLUtils.slugify(text)
        url_path = (
            self.url_matcher.category_path_from_url(url)
            or self.url_matcher.gender_section_from_url(url)
        )

        url_section = self.url_matcher.gender_section_from_url(url)
        if url_path and not url_section:
            first_segment = url_path.split('/')[0]
            if first_segment in GENDER_SECTIONS:
                url_section = first_segment

        text_section = gender_section_from_text(text)
        mismatch = bool(text_section and url_section and text_section != url_section)
        if mismatch:
            self.logger.warning(
                "category path mismatch: text %r implies %r but URL implies %r, using %r",
                text.strip(), text_section, url_section, url_path
            )

        return url_path or text_path, text_path, url_path, mismatch

    def generate_product_id(self, text: str, url: str) -> str:
        """Site-native ID from the URL, else a slug of the product text."""
        url_id = self.url_matcher.extract_product_id(url)
        if url_id:
            return url_id

        slug = re.sub(r'-+', '-', re.sub(r'[^a-z0-9]', '-', text.lower()))
        return 'product-' + slug[:50]
