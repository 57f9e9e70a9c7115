"""Semantic page classifier.

Classifies the page enclosing an interaction as homepage, category,
product, cart, checkout, search or unknown from DOM-shape signals
(when a DOM snapshot was captured) and element/URL text otherwise.

Strategy:
1. Detect six boolean semantic features
2. Apply a fixed decision order over the features
3. Fall back to light URL hints when nothing matched
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..utils.interaction import Interaction


@dataclass
class SemanticFeatures:
    """Boolean page features detected for one interaction."""
    has_product_grid: bool = False
    has_product_details: bool = False
    has_navigation: bool = False
    has_cart_indicators: bool = False
    has_search_functionality: bool = False
    has_variant_selectors: bool = False

    def to_dict(self) -> Dict[str, bool]:
        """Convert to dictionary for logging."""
        return {
            'has_product_grid': self.has_product_grid,
            'has_product_details': self.has_product_details,
            'has_navigation': self.has_navigation,
            'has_cart_indicators': self.has_cart_indicators,
            'has_search_functionality': self.has_search_functionality,
            'has_variant_selectors': self.has_variant_selectors,
        }


@dataclass
class PageClassification:
    """Complete page classification result."""

    page_type: str  # "homepage", "category", "product", "cart", "checkout", "search", "unknown"
    confidence: float
    indicators: List[str] = field(default_factory=list)
    semantic_features: SemanticFeatures = field(default_factory=SemanticFeatures)


class PageClassifier:
    """
    Classify an interaction's page from semantic features.

    Never raises: missing DOM snapshots or URLs only lower confidence.
    """

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self):
        """Compile all detection patterns."""

        self.dom_patterns = {
            'grid': ['grid', 'product-list', 'items-grid'],
            'navigation': ['nav', 'menu', 'navigation', 'breadcrumb'],
        }

        self.variant_patterns = {
            'letter_size': re.compile(r'\b(XS|S|M|L|XL|XXL)\b'),
            'numeric_size': re.compile(r'\b\d+(\.\d+)?\b'),
            'color': re.compile(
                r'\b(black|white|red|blue|green|yellow|purple|pink|brown|gray|grey)\b',
                re.IGNORECASE
            ),
        }

        self.cart_keywords = ['cart', 'bag', 'checkout']
        self.search_text_keywords = ['search', 'results']
        self.search_url_keywords = ['search', '?q=', 'query']

        self.url_fallbacks = [
            ('product', ['product', '/p/', '/item/'], 'product URL pattern'),
            ('checkout', ['checkout'], 'checkout URL pattern'),
            ('cart', ['cart', 'bag'], 'cart URL pattern'),
            ('search', ['search', '?q='], 'search URL pattern'),
        ]

    def classify(self, interaction: Interaction) -> PageClassification:
        """
        Classify the page an interaction happened on.

        Args:
            interaction: The interaction

        Returns:
            PageClassification
        """
        url = interaction.context.page_url or ''
        title = interaction.context.page_title or ''
        text = interaction.element.text or ''
        attributes = interaction.element.attributes or {}
        snapshot = interaction.context.dom_snapshot

        features = SemanticFeatures(
            has_product_grid=self._detect_product_grid(snapshot, text),
            has_product_details=self._detect_product_details(text, attributes),
            has_navigation=self._detect_navigation(snapshot, text),
            has_cart_indicators=self._detect_cart_indicators(text, url),
            has_search_functionality=self._detect_search(text, title, url),
            has_variant_selectors=self.detect_variant_selectors(text, attributes),
        )

        result = PageClassification(page_type='unknown', confidence=0.5, semantic_features=features)

        if features.has_product_details and features.has_variant_selectors:
            result.page_type, result.confidence = 'product', 0.9
            result.indicators += ['product details', 'variant selectors']
        elif features.has_product_grid and features.has_navigation:
            result.page_type, result.confidence = 'category', 0.85
            result.indicators += ['product grid', 'navigation']
        elif features.has_cart_indicators:
            result.page_type, result.confidence = 'cart', 0.8
            result.indicators.append('cart indicators')
            if 'checkout' in url.lower():
                result.page_type = 'checkout'
                result.indicators.append('checkout URL')
        elif features.has_search_functionality and features.has_product_grid:
            result.page_type, result.confidence = 'search', 0.8
            result.indicators += ['search functionality', 'results grid']
        elif features.has_navigation and not features.has_product_details:
            result.page_type, result.confidence = 'homepage', 0.7
            result.indicators += ['navigation', 'no product focus']

        if result.page_type == 'unknown':
            lower_url = url.lower()
            for page_type, keywords, indicator in self.url_fallbacks:
                if any(keyword in lower_url for keyword in keywords):
                    result.page_type, result.confidence = page_type, 0.6
                    result.indicators.append(indicator)
                    break

        return result

    # ------------------------------------------------------------
    # Feature detection
    # ------------------------------------------------------------

    def _detect_product_grid(self, snapshot: Any, text: str) -> bool:
        if not snapshot:
            return False
        has_grid_structure = self.search_snapshot(snapshot, self.dom_patterns['grid'])
        has_multiple_products = 'product' in text.lower() and len(text) > 50
        return has_grid_structure or has_multiple_products

    def _detect_product_details(self, text: str, attributes: Dict[str, Any]) -> bool:
        has_product_title = len(text) > 20 and 'category' not in text.lower()
        has_product_attributes = (
            'product' in str(attributes.get('class') or '')
            or 'product' in str(attributes.get('id') or '')
        )
        has_detailed_info = '$' in text or 'price' in text or 'Size' in text
        return has_product_title or has_product_attributes or has_detailed_info

    def _detect_navigation(self, snapshot: Any, text: str) -> bool:
        if not snapshot:
            lower_text = text.lower()
            return 'menu' in lower_text or 'category' in lower_text
        return self.search_snapshot(snapshot, self.dom_patterns['navigation'])

    def _detect_cart_indicators(self, text: str, url: str) -> bool:
        lower_text = text.lower()
        lower_url = url.lower()
        return (
            any(keyword in lower_text for keyword in self.cart_keywords)
            or any(keyword in lower_url for keyword in self.cart_keywords)
        )

    def _detect_search(self, text: str, title: str, url: str) -> bool:
        lower_text = f"{text} {title}".lower()
        lower_url = url.lower()
        return (
            any(keyword in lower_text for keyword in self.search_text_keywords)
            or any(keyword in lower_url for keyword in self.search_url_keywords)
        )

    def detect_variant_selectors(self, text: str, attributes: Dict[str, Any]) -> bool:
        """Element text or attributes look like a size/color option."""
        has_variant_text = any(p.search(text) for p in self.variant_patterns.values())
        name = str(attributes.get('name') or '')
        css_class = str(attributes.get('class') or '')
        has_variant_attributes = (
            'size' in name or 'color' in name
            or 'variant' in css_class or 'swatch' in css_class
        )
        return has_variant_text or has_variant_attributes

    @staticmethod
    def search_snapshot(snapshot: Any, patterns: List[str]) -> bool:
        """Keyword search over the serialised DOM snapshot."""
        if not snapshot:
            return False
        if isinstance(snapshot, str):
            serialized = snapshot.lower()
        else:
            try:
                serialized = json.dumps(snapshot, default=str).lower()
            except (TypeError, ValueError):
                serialized = str(snapshot).lower()
        return any(pattern in serialized for pattern in patterns)
