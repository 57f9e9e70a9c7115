"""World model document schema.

Hierarchy: Domain -> Category -> Product, each product carrying
variant clusters and selector reliability.

Entities separate two kinds of state:
    - an append-only provenance log (``discovery_contexts``) that only
      ever grows, one entry per sighting
    - a mutable current snapshot (price, availability, last seen...)
      that always reflects the most recent sighting

Documents are stored as plain dicts (``to_dict``) so any document or
key/value store can hold them. Timestamps are ISO-8601 strings.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


# Collection names
DOMAINS = 'world_model_domains'
CATEGORIES = 'world_model_categories'
PRODUCTS = 'world_model_products'


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class SiteType(Enum):
    ECOMMERCE = 'ecommerce'
    MARKETPLACE = 'marketplace'
    CORPORATE = 'corporate'
    CONTENT = 'content'
    SAAS = 'saas'


class CategoryType(Enum):
    REGULAR = 'regular'      # "men/shirts"
    SALE = 'sale'            # "sale/mens"
    SEARCH = 'search'        # search results
    FEATURED = 'featured'    # "new-arrivals", "trending"
    MIXED = 'mixed'          # several product types on one page


class PageType(Enum):
    HOMEPAGE = 'homepage'
    CATEGORY = 'category'
    PRODUCT_DETAIL = 'product-detail'
    SEARCH_RESULTS = 'search-results'
    SALE = 'sale'
    CART = 'cart'
    CHECKOUT = 'checkout'


class SiblingContext(Enum):
    HOMOGENEOUS = 'homogeneous'  # all siblings share a product type
    MIXED = 'mixed'
    UNKNOWN = 'unknown'


class CategoryDiscoveryType(Enum):
    PRIMARY = 'primary'
    SIBLING = 'sibling'
    CHILD = 'child'
    PARENT = 'parent'
    BREADCRUMB = 'breadcrumb'


class VariantType(Enum):
    COLOR = 'color'
    SIZE = 'size'
    STYLE = 'style'


class VariantLayout(Enum):
    HORIZONTAL_ROW = 'horizontal_row'
    VERTICAL_LIST = 'vertical_list'
    GRID = 'grid'
    DROPDOWN = 'dropdown'


class SelectorType(Enum):
    CSS = 'css'
    XPATH = 'xpath'
    ARIA_LABEL = 'aria-label'
    DATA_TESTID = 'data-testid'


class ProductAvailability(Enum):
    AVAILABLE = 'available'
    OUT_OF_STOCK = 'out_of_stock'
    DISCONTINUED = 'discontinued'
    LIMITED = 'limited'


class VariantAvailability(Enum):
    IN_STOCK = 'in_stock'
    OUT_OF_STOCK = 'out_of_stock'
    LOW_STOCK = 'low_stock'
    PREORDER = 'preorder'


# ============================================================
# SELECTORS
# ============================================================

@dataclass
class SelectorReliability:
    """
    Running success record for one element-locating strategy.

    Counters only grow; there is no reset path.
    """
    success_count: int = 0
    total_attempts: int = 0
    last_used: Optional[str] = None

    @property
    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.success_count / self.total_attempts

    def record_attempt(self, success: bool):
        self.total_attempts += 1
        if success:
            self.success_count += 1
        self.last_used = now_iso()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success_count': self.success_count,
            'total_attempts': self.total_attempts,
            'success_rate': self.success_rate,
            'last_used': self.last_used,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'SelectorReliability':
        data = data or {}
        return cls(
            success_count=int(data.get('success_count') or 0),
            total_attempts=int(data.get('total_attempts') or 0),
            last_used=data.get('last_used'),
        )


@dataclass
class SelectorInfo:
    """Primary selector, ordered fallbacks and the page context they apply to."""
    selector: str
    selector_type: str = SelectorType.CSS.value
    fallback_selectors: List[str] = field(default_factory=list)
    page_type: Optional[str] = None
    reliability: SelectorReliability = field(default_factory=SelectorReliability)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'selector': self.selector,
            'selector_type': self.selector_type,
            'fallback_selectors': list(self.fallback_selectors),
            'page_type': self.page_type,
            'reliability': self.reliability.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SelectorInfo':
        return cls(
            selector=data.get('selector', ''),
            selector_type=data.get('selector_type', SelectorType.CSS.value),
            fallback_selectors=list(data.get('fallback_selectors') or []),
            page_type=data.get('page_type'),
            reliability=SelectorReliability.from_dict(data.get('reliability')),
        )


# ============================================================
# VARIANTS
# ============================================================

@dataclass
class VariantOption:
    """One selectable option inside a variant cluster."""
    value: str
    selector: str = ''
    display_name: str = ''
    selector_type: str = SelectorType.CSS.value
    availability: str = VariantAvailability.IN_STOCK.value
    in_stock: bool = True
    position: int = 0
    bounding_box: Dict[str, float] = field(default_factory=dict)
    attributes: Dict[str, Any] = field(default_factory=dict)
    last_verified: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VariantOption':
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        known.setdefault('value', '')
        return cls(**known)


@dataclass
class VariantCluster:
    """All options of one variant type (color, size or style) for a product."""
    type: str
    container_selector: str = ''
    selector_pattern: str = ''
    options: List[VariantOption] = field(default_factory=list)
    layout: str = VariantLayout.HORIZONTAL_ROW.value
    discovered_from_siblings: bool = False
    discovered_at: str = field(default_factory=now_iso)
    reliability: float = 0.0

    @property
    def total_options_found(self) -> int:
        return len(self.options)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'container_selector': self.container_selector,
            'selector_pattern': self.selector_pattern,
            'options': [option.to_dict() for option in self.options],
            'layout': self.layout,
            'discovered_from_siblings': self.discovered_from_siblings,
            'total_options_found': self.total_options_found,
            'discovered_at': self.discovered_at,
            'reliability': self.reliability,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]], cluster_type: str) -> 'VariantCluster':
        """Build a cluster from a stored document; missing data gives an empty cluster."""
        if not data:
            return cls(type=cluster_type)
        return cls(
            type=data.get('type') or cluster_type,
            container_selector=data.get('container_selector') or '',
            selector_pattern=data.get('selector_pattern') or '',
            options=[VariantOption.from_dict(o) for o in data.get('options') or []],
            layout=data.get('layout') or VariantLayout.HORIZONTAL_ROW.value,
            discovered_from_siblings=bool(data.get('discovered_from_siblings')),
            discovered_at=data.get('discovered_at') or now_iso(),
            reliability=float(data.get('reliability') or 0.0),
        )


# Product document keys for each variant type
VARIANT_KEYS = {
    VariantType.COLOR.value: 'colors',
    VariantType.SIZE.value: 'sizes',
    VariantType.STYLE.value: 'styles',
}


# ============================================================
# DISCOVERY CONTEXTS (provenance log entries)
# ============================================================

@dataclass
class SiblingCategory:
    """A category seen spatially adjacent to another."""
    category_path: str
    category_name: str
    selector: str = ''
    relative_position: str = 'unknown'
    distance: float = 0
    menu_level: int = 0
    is_active: bool = False
    discovered_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CategoryDiscoveryContext:
    """One occasion a category was observed."""
    discovered_from: str
    discovery_type: str = CategoryDiscoveryType.PRIMARY.value
    spatial_position: Optional[str] = None
    discovered_at: str = field(default_factory=now_iso)
    context_data: Dict[str, Any] = field(default_factory=dict)
    nearby_categories: List[Dict[str, Any]] = field(default_factory=list)
    menu_structure: str = 'horizontal'

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class SiblingProduct:
    """A product seen on the same page render as another."""
    product_id: Optional[str]
    product_name: Optional[str]
    selector: str = ''
    relative_position: str = 'unknown'
    distance: float = 0
    discovered_at: str = field(default_factory=now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProductDiscoveryContext:
    """One occasion a product was observed."""
    category_path: str
    page_type: str = PageType.CATEGORY.value
    sibling_context: str = SiblingContext.UNKNOWN.value
    position_on_page: int = 1
    total_products_on_page: int = 0
    discovered_at: str = field(default_factory=now_iso)
    discovered_siblings: List[SiblingProduct] = field(default_factory=list)
    context_specific_data: Dict[str, Any] = field(default_factory=dict)
    nearby_elements: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ============================================================
# ENTITIES
# ============================================================

@dataclass
class DomainReliability:
    overall_success_rate: float = 0.0
    total_interactions: int = 0
    successful_interactions: int = 0
    last_validated: str = field(default_factory=now_iso)


@dataclass
class Domain:
    """One site, identified by hostname."""
    domain: str
    site_name: str = ''
    site_type: str = SiteType.ECOMMERCE.value
    global_selectors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    url_patterns: Dict[str, List[str]] = field(default_factory=dict)
    reliability: DomainReliability = field(default_factory=DomainReliability)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Category:
    """A category listing, unique per (domain_id, category_path)."""
    domain_id: str
    category_path: str
    category_name: str
    category_type: str = CategoryType.REGULAR.value
    parent_category_path: Optional[str] = None
    child_categories: List[str] = field(default_factory=list)
    discovery_contexts: List[CategoryDiscoveryContext] = field(default_factory=list)
    url_patterns: List[str] = field(default_factory=list)
    canonical_url: str = ''
    page_selectors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    sibling_categories: List[SiblingCategory] = field(default_factory=list)
    navigation_level: int = 0
    breadcrumbs: List[str] = field(default_factory=list)
    success_rate: float = 0.0
    total_attempts: int = 0
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProductCurrentState:
    """Volatile fields; always overwritten by the latest sighting."""
    price: float = 0
    currency: str = 'USD'
    availability: str = ProductAvailability.AVAILABLE.value
    in_stock: bool = True
    last_price_update: str = field(default_factory=now_iso)


@dataclass
class ProductReliability:
    selector_success_rates: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    total_interactions: int = 0
    last_verified: str = field(default_factory=now_iso)
    last_seen: str = field(default_factory=now_iso)


@dataclass
class Product:
    """A product, unique per (domain, product_id)."""
    domain: str
    product_id: Optional[str]
    product_name: str
    product_type: str = 'unknown'
    sku: Optional[str] = None
    discovery_contexts: List[ProductDiscoveryContext] = field(default_factory=list)
    current_state: ProductCurrentState = field(default_factory=ProductCurrentState)
    canonical_url: str = ''
    variant_urls: List[Dict[str, str]] = field(default_factory=list)
    primary_image: str = ''
    gallery: List[str] = field(default_factory=list)
    page_selectors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    reliability: ProductReliability = field(default_factory=ProductReliability)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    is_active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        document = asdict(self)
        document['variants'] = {
            key: VariantCluster(type=variant_type).to_dict()
            for variant_type, key in VARIANT_KEYS.items()
        }
        return document
