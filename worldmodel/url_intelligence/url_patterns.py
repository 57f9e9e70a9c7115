"""URL pattern families for e-commerce page types.

Seed patterns cover the URL shapes seen across the captured sites
(H&M ``/productpage.<id>.html``, Gap ``/browse/product.do?pid=``,
Nordstrom ``/s/<slug>/<id>``, generic ``/p/<slug>``). They are used for
structural URL classification, product-detail gating, product-page
grouping and per-domain URL templates.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from urllib.parse import unquote_plus

from ..utils.url_utils import URLUtils


@dataclass
class URLAnalysis:
    """Outcome of structural URL classification."""
    type: str  # "product", "category", "navigation", "ignore", "unknown"
    confidence: float
    reasoning: str


@dataclass
class DomainURLPatterns:
    """Observed URLs bucketed by page type for one domain."""
    category: List[str] = field(default_factory=list)
    product: List[str] = field(default_factory=list)
    search: List[str] = field(default_factory=list)
    sale: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            'category': list(self.category),
            'product': list(self.product),
            'search': list(self.search),
            'sale': list(self.sale),
        }


GENDER_SECTIONS = ('men', 'women', 'kids', 'boys', 'girls', 'baby')


class URLPatternMatcher:
    """Classify URLs and pull identifiers out of them."""

    def __init__(self):
        self._compile_patterns()

    def _compile_patterns(self):
        """Compile all URL patterns."""

        self.url_patterns = {
            'product_strong': [
                re.compile(r'/productpage'),
                re.compile(r'/product/'),
                re.compile(r'/p/[\w-]+'),
                re.compile(r'/s/[\w-]+/\d+'),
                re.compile(r'product\.do\?pid='),
            ],
            'category_strong': [
                re.compile(r'/(men|women|kids|boys|girls)/[\w-]+/[\w-]+\.html'),
                re.compile(r'/browse/'),
                re.compile(r'/category/'),
                re.compile(r'/(sale|new)/[\w-]+'),
                re.compile(r'breadcrumb='),
            ],
            'homepage': [
                re.compile(r'\.(com|net|org)/?$'),
                re.compile(r'index\.html'),
            ],
        }

        # Pages where variant selectors live
        self.product_detail_markers = ['/productpage', '/product.do', '/browse/product']

        # Grouping patterns for product pages
        self.product_page_patterns = {
            'productpage': re.compile(r'/productpage'),
            'product_do': re.compile(r'/product\.do'),
            'browse_product': re.compile(r'/browse/product.*pid='),
            'slug_id': re.compile(r'/s/[^/]+/\d+'),
            'generic': re.compile(r'/p/[^/]+'),
            'asin': re.compile(r'/dp/[A-Z0-9]+'),
            'pdp_anchor': re.compile(r'#pdp-page-content'),
        }

        self.product_id_patterns = [
            re.compile(r'(?:pid|productId|id)=([^&#]+)', re.IGNORECASE),
            re.compile(r'/productpage\.(\d+)\.'),
            re.compile(r'/p/([\w-]+)'),
            re.compile(r'/s/[\w-]+/(\d+)'),
        ]

        self.category_path_patterns = {
            'section_path': re.compile(r'/(men|women|kids)/([\w-]+)/([\w-]+)'),
            'browse_section': re.compile(r'/browse/(men|women|kids|boys|girls|baby)', re.IGNORECASE),
            'category_param': re.compile(r'[?&]category=([^&#]+)', re.IGNORECASE),
        }

    # ------------------------------------------------------------
    # Structural classification
    # ------------------------------------------------------------

    def analyze(self, url: Optional[str]) -> URLAnalysis:
        """
        Classify a URL by its structure.

        Args:
            url: Page URL (may be empty)

        Returns:
            URLAnalysis with a fixed confidence per family
        """
        if not url:
            return URLAnalysis('ignore', 0.9, 'No URL available')

        lower_url = url.lower()

        if any(p.search(lower_url) for p in self.url_patterns['product_strong']):
            return URLAnalysis('product', 0.95, 'URL structure indicates product detail page')

        if any(p.search(lower_url) for p in self.url_patterns['category_strong']):
            return URLAnalysis('category', 0.9, 'URL structure indicates category listing page')

        if any(p.search(lower_url) for p in self.url_patterns['homepage']):
            return URLAnalysis('navigation', 0.8, 'Homepage or index page')

        return URLAnalysis('unknown', 0.0, 'URL pattern not recognized')

    def is_product_detail_url(self, url: Optional[str]) -> bool:
        """True when the URL is a product detail page that hosts variant selectors."""
        if not url:
            return False
        return any(marker in url for marker in self.product_detail_markers)

    def is_product_page(self, url: Optional[str]) -> bool:
        """Broader product page test used for grouping interactions by page."""
        if not url:
            return False
        if any(p.search(url) for p in self.product_page_patterns.values()):
            return True
        return 'pid=' in url and '/browse/men' not in url and '/browse/women' not in url

    def product_page_key(self, url: str) -> str:
        """
        Normalised grouping key for a product page.

        Variant switches usually only change the query/fragment or the
        trailing article number, so pages of one product share a key.
        """
        pid = re.search(r'[?&]pid=([^&#]+)', url)
        if pid:
            return f"pid-{pid.group(1)}"
        article = re.search(r'/productpage\.(\d+)\.', url)
        if article:
            # H&M article numbers: first 7 digits identify the product, the rest the colour
            return f"productpage-{article.group(1)[:7]}"
        slug_id = re.search(r'/s/[^/]+/(\d+)', url)
        if slug_id:
            return f"product-{slug_id.group(1)}"
        return URLUtils.clean_url(url)

    # ------------------------------------------------------------
    # Identifier extraction
    # ------------------------------------------------------------

    def extract_product_id(self, url: Optional[str]) -> Optional[str]:
        """Site-native product ID embedded in the URL, if any."""
        if not url:
            return None
        for pattern in self.product_id_patterns:
            match = pattern.search(url)
            if match:
                return match.group(1)
        return None

    def category_path_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        Category path encoded in the URL structure.

        Returns None when the URL carries no explicit category structure;
        gender-section inference is handled separately because it is a
        weaker signal.
        """
        if not url:
            return None

        section_path = self.category_path_patterns['section_path'].search(url)
        if section_path:
            return '/'.join(section_path.groups())

        browse_section = self.category_path_patterns['browse_section'].search(url)
        if browse_section:
            return browse_section.group(1).lower()

        category_param = self.category_path_patterns['category_param'].search(url)
        if category_param:
            return URLUtils.slugify(unquote_plus(category_param.group(1)))
        return None

    def gender_section_from_url(self, url: Optional[str]) -> Optional[str]:
        """
        The single audience section the URL mentions, if exactly one.

        "women" contains "men", so sections are matched as whole words.
        """
        if not url:
            return None
        lower_url = url.lower()
        found = set()
        for section in GENDER_SECTIONS:
            if re.search(rf"(?<![a-z]){section}s?(?![a-z])", lower_url):
                found.add(section)
        if 'toddler' in lower_url:
            found.add('baby')
        if len(found) == 1:
            return found.pop()
        return None

    def infer_listing_path(self, url: Optional[str]) -> str:
        """Coarse category path for a product URL ("men/shirts"), "general" when absent."""
        if url:
            match = re.search(r'/(men|women|kids)/([\w-]+)/', url)
            if match:
                return f"{match.group(1)}/{match.group(2)}"
        return 'general'

    # ------------------------------------------------------------
    # Domain templates
    # ------------------------------------------------------------

    def bucket_urls(self, urls: List[str]) -> DomainURLPatterns:
        """Bucket observed URLs by page type for a domain record."""
        patterns = DomainURLPatterns()
        for url in urls:
            lower_url = url.lower()
            if ('/productpage' in lower_url or '/product/' in lower_url
                    or re.search(r'/p/|/dp/', lower_url)):
                patterns.product.append(url)
            elif ('/browse' in lower_url or '/category' in lower_url
                  or re.search(r'/(men|women|kids)/[\w-]+/[\w-]+', lower_url)):
                patterns.category.append(url)
            elif '/search' in lower_url or '?q=' in lower_url:
                patterns.search.append(url)
            elif '/sale' in lower_url:
                patterns.sale.append(url)
        return patterns
