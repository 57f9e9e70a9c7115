"""Aggregate one product per product page from classified interactions.

Variant switches and add-to-cart clicks happen on the product page, so
interactions are grouped by a normalised product-page key and folded
into a single product record carrying every attribute sighting.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .attribute_detector import AttributeDetector
from .selector_builder import SelectorBuilder
from ..classifiers.base_classifier import (
    ClassificationResult, AttributeData, PRODUCT, PRODUCT_ATTRIBUTE
)
from ..classifiers.text_heuristics import PRODUCT_KEYWORDS
from ..url_intelligence.url_patterns import URLPatternMatcher
from ..utils.interaction import Interaction
from ..utils.url_utils import URLUtils


CATEGORY_TERMS = [
    'sale', 'new', 'featured', 'trending', 'popular', 'best sellers',
    'men', 'women', 'kids', 'boys', 'girls', 'baby',
    'shoes', 'clothing', 'accessories', 'bags', 'jewelry',
    't-shirts', 'shirts', 'pants', 'dresses', 'jackets', 'sweaters',
]

UI_TERMS = [
    'back', 'next', 'previous', 'continue', 'submit', 'search', 'filter',
    'sort by', 'view all', 'load more', 'size', 'color', 'add to bag',
    'add to cart', 'checkout', 'sign in', 'sign up',
]

# Looser lists used when picking a name from arbitrary page text
UI_FRAGMENTS = ['add to', 'sign in', 'checkout', 'filter', 'sort', 'view all', 'load more']
CATEGORY_FRAGMENTS = ['sale', 'new', 'men', 'women', 'shoes', 'clothing']

ATTRIBUTE_GROUPS = ('color', 'size', 'style', 'action', 'availability')

PRICE_PATTERN = re.compile(r'\$(\d+\.?\d*)')
LOCALE_SEGMENT = re.compile(r'^[a-z]{2}[_-][a-z]{2}$', re.IGNORECASE)

Pair = Tuple[Interaction, ClassificationResult]


@dataclass
class ExtractedProduct:
    """A product assembled from one product page's interactions."""
    product_id: str
    product_name: str
    url: str
    selector: str
    category_path: str
    confidence: float
    reasoning: str
    product_type: str = 'unknown'
    price: Optional[float] = None
    fallback_selectors: List[str] = field(default_factory=list)
    attributes: Dict[str, List[AttributeData]] = field(
        default_factory=lambda: {group: [] for group in ATTRIBUTE_GROUPS}
    )

    @property
    def variant_sightings(self) -> List[AttributeData]:
        return self.attributes['color'] + self.attributes['size'] + self.attributes['style']

    @property
    def attribute_count(self) -> int:
        return sum(len(values) for values in self.attributes.values())


class ProductPageAggregator:
    """Group interactions by product page and build one product per page."""

    def __init__(self, url_matcher: Optional[URLPatternMatcher] = None,
                 attribute_detector: Optional[AttributeDetector] = None,
                 selector_builder: Optional[SelectorBuilder] = None):
        self.url_matcher = url_matcher or URLPatternMatcher()
        self.attribute_detector = attribute_detector or AttributeDetector()
        self.selector_builder = selector_builder or SelectorBuilder()

    def group_by_product_page(
        self,
        interactions: List[Interaction],
        classifications: List[ClassificationResult]
    ) -> 'OrderedDict[str, List[Pair]]':
        """Product-page key -> (interaction, classification) pairs, in capture order."""
        groups: 'OrderedDict[str, List[Pair]]' = OrderedDict()
        for interaction, classification in zip(interactions, classifications):
            url = interaction.url
            if not self.url_matcher.is_product_page(url):
                continue
            key = self.url_matcher.product_page_key(url)
            groups.setdefault(key, []).append((interaction, classification))
        return groups

    def aggregate(self, pairs: List[Pair]) -> Optional[ExtractedProduct]:
        """
        Fold one product page's interactions into a product.

        Args:
            pairs: (interaction, classification) pairs from one page

        Returns:
            ExtractedProduct, or None when the page yielded neither a
            product name nor any variant/action sighting
        """
        if not pairs:
            return None

        page_url = pairs[0][0].url
        base: Optional[ExtractedProduct] = None
        attributes: Dict[str, List[AttributeData]] = {group: [] for group in ATTRIBUTE_GROUPS}

        for interaction, classification in pairs:
            if classification.type == PRODUCT and classification.extracted_data:
                text = interaction.text.strip()
                if self.is_valid_product_name(text) and (
                        base is None or self.is_better_product_name(text, base.product_name)):
                    base = self.build_product(interaction, classification)

            elif classification.type == PRODUCT_ATTRIBUTE and classification.attribute_data:
                sighting = classification.attribute_data
                group = sighting.type or self.attribute_detector.classify_value(sighting.value)
                if group in attributes:
                    attributes[group].append(sighting)

        if base is not None:
            base.attributes = attributes
            return base

        if not (attributes['color'] or attributes['size'] or attributes['action']):
            return None

        name = (
            self.infer_name_from_url(page_url)
            or self.infer_name_from_interactions([i for i, _ in pairs])
            or 'Unknown Product'
        )
        return ExtractedProduct(
            product_id=self.url_matcher.extract_product_id(page_url) or self.generate_product_id(name),
            product_name=name,
            url=page_url,
            selector='page-main-product',
            category_path=self.url_matcher.infer_listing_path(page_url),
            confidence=0.8,
            reasoning='Aggregated from product page attributes',
            product_type=self.infer_product_type(name),
            attributes=attributes,
        )

    def build_product(self, interaction: Interaction, classification: ClassificationResult) -> ExtractedProduct:
        data = classification.extracted_data
        selector = self.extract_selector(interaction)
        return ExtractedProduct(
            product_id=data.product_id or self.generate_product_id(data.name),
            product_name=data.name,
            url=data.url,
            selector=selector,
            fallback_selectors=[
                s for s in self.selector_builder.fallback_chain(interaction) if s != selector
            ],
            category_path=self.url_matcher.infer_listing_path(data.url),
            confidence=classification.confidence,
            reasoning=classification.reasoning,
            product_type=self.infer_product_type(data.name),
            price=self.extract_price(data.name),
        )

    # ------------------------------------------------------------
    # Name heuristics
    # ------------------------------------------------------------

    @staticmethod
    def is_valid_product_name(text: str) -> bool:
        """Reject category terms, UI labels, bare sizes and descriptions."""
        if not text or len(text) < 2:
            return False

        lower_text = text.lower().strip()
        if lower_text in CATEGORY_TERMS or lower_text in UI_TERMS:
            return False
        if len(lower_text) < 5 and re.match(r'^(s|m|l|xl|xxl|\d+)$', lower_text):
            return False
        if len(lower_text) > 60:
            return False
        return len(lower_text) >= 5 or bool(re.match(r'^[a-z]+ [a-z]+', lower_text))

    @staticmethod
    def is_better_product_name(new_name: str, current_name: str) -> bool:
        """Prefer clearly longer names, then names with more words."""
        if len(new_name) > len(current_name) + 5:
            return True
        return len(new_name.split(' ')) > len(current_name.split(' '))

    def infer_name_from_url(self, url: str) -> Optional[str]:
        if not url:
            return None

        if '/productpage' in url:
            segments = [
                s for s in URLUtils.path_segments(url)
                if '.html' not in s and 'productpage' not in s and not LOCALE_SEGMENT.match(s)
            ]
            if segments and len(segments[-1]) > 3:
                return self.format_product_name(segments[-1])

        if 'product.do' in url:
            pid = re.search(r'pid=([^&#]+)', url)
            if pid:
                return f"Product {pid.group(1)}"

        slug = re.search(r'/s/([^/]+)/\d+', url)
        if slug:
            return self.format_product_name(slug.group(1))

        return None

    @staticmethod
    def infer_name_from_interactions(interactions: List[Interaction]) -> Optional[str]:
        """Longest short text on the page that is neither UI nor category text."""
        best = ''
        for interaction in interactions:
            text = interaction.text.strip()
            if not text or len(text) <= len(best) or len(text) >= 60:
                continue
            lower_text = text.lower()
            if any(f in lower_text for f in UI_FRAGMENTS):
                continue
            if any(f in lower_text for f in CATEGORY_FRAGMENTS):
                continue
            best = text
        return best or None

    @staticmethod
    def format_product_name(raw: str) -> str:
        name = re.sub(r'[-_]', ' ', raw)
        return re.sub(r'\b\w', lambda m: m.group(0).upper(), name).strip()

    @staticmethod
    def infer_product_type(name: str) -> str:
        lower_name = name.lower()
        for keyword in PRODUCT_KEYWORDS:
            if keyword in lower_name:
                return keyword
        return 'unknown'

    @staticmethod
    def generate_product_id(name: str) -> str:
        slug = re.sub(r'-+', '-', re.sub(r'[^a-z0-9]', '-', name.lower()))
        return 'product-' + slug[:50]

    @staticmethod
    def extract_price(text: str) -> Optional[float]:
        match = PRICE_PATTERN.search(text or '')
        return float(match.group(1)) if match else None

    @staticmethod
    def extract_selector(interaction: Interaction) -> str:
        selectors = interaction.selectors or {}
        return selectors.get('primary') or selectors.get('css') or selectors.get('xpath') or ''
