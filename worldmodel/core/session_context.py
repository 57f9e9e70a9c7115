"""Infer a session-level behavioural summary from raw interactions."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..classifiers.page_classifier import PageClassifier
from ..url_intelligence.url_patterns import URLPatternMatcher
from ..utils.interaction import Interaction, SessionContext

logger = logging.getLogger(__name__)


RESEARCH_INDICATORS = ['review', 'rating', 'spec', 'detail', 'feature']
PURCHASE_TERMS = ['cart', 'buy', 'checkout']

STAGE_BY_INTENT = {
    'search': 'awareness',
    'browse': 'awareness',
    'research': 'consideration',
    'compare': 'consideration',
    'purchase': 'decision',
}


@dataclass
class IntentAnalysis:
    """Scored user-intent evidence for one session."""
    primary_intent: str
    confidence: float
    shopping_stage: str
    scores: Dict[str, int] = field(default_factory=dict)
    indicators: List[str] = field(default_factory=list)


class SessionContextBuilder:
    """
    Score search/browse/compare/purchase/research evidence and map the
    winning intent onto a shopping stage.
    """

    def __init__(self, url_matcher: Optional[URLPatternMatcher] = None,
                 page_classifier: Optional[PageClassifier] = None):
        self.url_matcher = url_matcher or URLPatternMatcher()
        self.page_classifier = page_classifier or PageClassifier()

    def build(self, interactions: List[Interaction]) -> SessionContext:
        if not interactions:
            return SessionContext()

        analysis = self.analyze_intent(interactions)
        first_page = self.page_classifier.classify(interactions[0])
        logger.debug(
            "Session intent %s (%.2f), stage %s",
            analysis.primary_intent, analysis.confidence, analysis.shopping_stage
        )
        return SessionContext(
            page_type=first_page.page_type,
            user_intent=analysis.primary_intent,
            shopping_stage=analysis.shopping_stage,
            behavior_type=analysis.indicators[0] if analysis.indicators else None,
            quality_score=analysis.confidence,
        )

    def analyze_intent(self, interactions: List[Interaction]) -> IntentAnalysis:
        """
        Args:
            interactions: Session interactions in capture order

        Returns:
            IntentAnalysis; ``browse`` when no evidence is found
        """
        scores: Dict[str, int] = {}
        indicators: List[str] = []
        urls = [i.url for i in interactions if i.url]
        texts = [(i.text or '').lower() for i in interactions]

        searches = [
            i for i, text in zip(interactions, texts)
            if i.type == 'INPUT' or 'search' in (i.url or '').lower() or 'search' in text
        ]
        if searches:
            scores['search'] = len(searches) * 20
            indicators.append('search_behavior')

        category_pages = [u for u in urls if self.url_matcher.analyze(u).type == 'category']
        if category_pages:
            scores['browse'] = len(category_pages) * 15
            indicators.append('category_browsing')

        product_pages = [u for u in urls if self.url_matcher.is_product_page(u)]
        if len(product_pages) > 2:
            scores['compare'] = len(product_pages) * 10
            indicators.append('multiple_products_viewed')

        purchases = [t for t in texts if any(term in t for term in PURCHASE_TERMS)]
        if purchases:
            scores['purchase'] = len(purchases) * 25
            indicators.append('purchase_actions')

        joined = ' '.join(texts)
        research_count = sum(1 for indicator in RESEARCH_INDICATORS if indicator in joined)
        if research_count:
            scores['research'] = research_count * 15
            indicators.append('research_behavior')

        primary = max(scores, key=scores.get) if scores else 'browse'
        return IntentAnalysis(
            primary_intent=primary,
            confidence=min(scores.get(primary, 0), 100) / 100,
            shopping_stage=STAGE_BY_INTENT.get(primary, 'awareness'),
            scores=scores,
            indicators=indicators,
        )
