"""
World Model Store - hierarchical, deduplicating persistence.

Domain -> Category -> Product, each entity carrying an append-only list
of discovery contexts next to its current-state fields.

Merge policy on a dedup hit:
    - discovery contexts are appended (push)
    - every other supplied field is overwritten (set)
    - identity fields are never rewritten

Concurrent first sightings of one entity can both miss the dedup lookup.
Unique indexes on (domain), (domain_id, category_path) and
(domain, product_id) turn the loser's insert into a DuplicateKeyError,
which is resolved by re-reading the winner and merging into it.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .backends import DocumentBackend, InMemoryBackend
from .errors import DuplicateKeyError, PersistenceError, WorldModelError
from .name_matching import first_match, normalize
from .schema import (
    DOMAINS, CATEGORIES, PRODUCTS, VARIANT_KEYS,
    Domain, Category, Product, ProductCurrentState,
    CategoryDiscoveryContext, ProductDiscoveryContext, SiblingCategory, SiblingProduct,
    CategoryType, CategoryDiscoveryType, SiblingContext, ProductAvailability,
    SelectorReliability, VariantCluster, now_iso
)
from ..classifiers.base_classifier import AttributeData
from ..extractors.variant_clusters import VariantClusterExtractor


CATEGORY_IDENTITY = ('_id', 'domain_id', 'category_path', 'created_at', 'discovery_contexts')
DOMAIN_IDENTITY = ('_id', 'domain', 'created_at')


def infer_category_path(category_name: str) -> str:
    """"Men Shirts" -> "men/shirts"."""
    path = re.sub(r'[^a-z0-9\s]', '', (category_name or '').lower())
    path = re.sub(r'\s+', '-', path.strip())
    return re.sub(r'^(men|women|kids?)-', r'\1/', path)


def infer_category_type(category_name: str) -> str:
    lower_name = (category_name or '').lower()
    if 'sale' in lower_name or 'clearance' in lower_name:
        return CategoryType.SALE.value
    if 'new' in lower_name or 'featured' in lower_name:
        return CategoryType.FEATURED.value
    return CategoryType.REGULAR.value


def determine_sibling_context(sibling_products: List[Dict[str, Any]]) -> str:
    if not sibling_products:
        return SiblingContext.UNKNOWN.value
    product_types = {p.get('product_type') or 'unknown' for p in sibling_products}
    if len(product_types) == 1:
        return SiblingContext.HOMOGENEOUS.value
    return SiblingContext.MIXED.value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value.to_dict() if hasattr(value, 'to_dict') else dict(value)


def merge_page_selectors(stored: Optional[Dict[str, Any]],
                         incoming: Optional[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Incoming selectors replace stored ones; an unchanged selector keeps its reliability."""
    merged = dict(stored or {})
    for key, selector in (incoming or {}).items():
        selector = _as_dict(selector)
        previous = merged.get(key) or {}
        if previous.get('selector') == selector.get('selector') and previous.get('reliability'):
            selector['reliability'] = previous['reliability']
        merged[key] = selector
    return merged


class WorldModelStore:
    """
    Async store for the world model.

    Args:
        backend: Document backend (in-memory when omitted)
        logger: Injected logger for diagnostics
        variant_extractor: Cluster merger used by ``merge_variant_clusters``
        collections: Overrides for the domain/category/product collection names
    """

    def __init__(
        self,
        backend: Optional[DocumentBackend] = None,
        logger: Optional[logging.Logger] = None,
        variant_extractor: Optional[VariantClusterExtractor] = None,
        collections: Optional[Dict[str, str]] = None
    ):
        self.backend = backend or InMemoryBackend()
        self.logger = logger or logging.getLogger(__name__)
        self.variant_extractor = variant_extractor or VariantClusterExtractor()

        collections = collections or {}
        self.domains = collections.get('domains', DOMAINS)
        self.categories = collections.get('categories', CATEGORIES)
        self.products = collections.get('products', PRODUCTS)
        self._initialized = False

    async def initialize(self):
        """Declare the uniqueness constraints backing dedup."""
        if self._initialized:
            return
        await self.backend.ensure_unique(self.domains, ['domain'])
        await self.backend.ensure_unique(self.categories, ['domain_id', 'category_path'])
        await self.backend.ensure_unique(self.products, ['domain', 'product_id'])
        self._initialized = True

    # ============================================================
    # DOMAINS
    # ============================================================

    async def upsert_domain(self, domain_data: Dict[str, Any]) -> str:
        """
        Create or update a domain.

        Args:
            domain_data: Domain fields; ``domain`` (hostname) is required

        Returns:
            Document id

        Raises:
            PersistenceError: naming the domain when the backend fails
        """
        await self.initialize()
        domain = domain_data['domain']
        try:
            existing = await self.backend.find_one(self.domains, {'domain': domain})
            if existing:
                await self._merge_domain(domain, domain_data)
                return existing['_id']

            document = Domain(domain=domain).to_dict()
            document.update(domain_data)
            try:
                document_id = await self.backend.insert_one(self.domains, document)
            except DuplicateKeyError:
                winner = await self.backend.find_one(self.domains, {'domain': domain})
                await self._merge_domain(domain, domain_data)
                return winner['_id']

            self.logger.info("Created domain %s", domain)
            return document_id
        except WorldModelError:
            raise
        except Exception as e:
            raise PersistenceError('domain', domain) from e

    async def _merge_domain(self, domain: str, domain_data: Dict[str, Any]):
        set_fields = {k: v for k, v in domain_data.items() if k not in DOMAIN_IDENTITY}
        set_fields['updated_at'] = now_iso()
        await self.backend.update_one(self.domains, {'domain': domain}, set_fields=set_fields)
        self.logger.debug("Updated domain %s", domain)

    async def get_domain(self, domain: str) -> Optional[Dict[str, Any]]:
        return await self.backend.find_one(self.domains, {'domain': domain})

    async def record_domain_interactions(self, domain: str, total: int, successful: int) -> Dict[str, Any]:
        """Grow the domain's interaction counters and recompute its success rate."""
        await self.initialize()
        existing = await self.get_domain(domain)
        if not existing:
            raise PersistenceError('domain', domain, f"Domain {domain!r} not found")

        reliability = existing.get('reliability') or {}
        total_interactions = int(reliability.get('total_interactions') or 0) + max(0, total)
        successful_interactions = int(reliability.get('successful_interactions') or 0) + max(0, successful)
        rate = successful_interactions / total_interactions if total_interactions else 0.0

        reliability = {
            'overall_success_rate': rate,
            'total_interactions': total_interactions,
            'successful_interactions': successful_interactions,
            'last_validated': now_iso(),
        }
        await self.backend.update_one(self.domains, {'domain': domain}, set_fields={'reliability': reliability})
        return reliability

    # ============================================================
    # CATEGORIES
    # ============================================================

    async def upsert_category(self, category_data: Dict[str, Any]) -> str:
        """
        Create or merge a category.

        Lookup order: exact (domain_id, category_path), then name
        variations against the domain's category names.

        Args:
            category_data: Category fields; ``domain_id``, ``category_path``
                and ``category_name`` are required

        Returns:
            Document id of the created or matched category
        """
        await self.initialize()
        domain_id = category_data['domain_id']
        category_path = category_data['category_path']
        entity_key = (domain_id, category_path)

        try:
            existing = await self.find_existing_category(
                domain_id, category_path, category_data.get('category_name', '')
            )
            if existing:
                await self._merge_category(existing, category_data)
                return existing['_id']

            document = self._new_category_document(category_data)
            try:
                document_id = await self.backend.insert_one(self.categories, document)
            except DuplicateKeyError:
                winner = await self.backend.find_one(
                    self.categories, {'domain_id': domain_id, 'category_path': category_path}
                )
                await self._merge_category(winner, category_data)
                return winner['_id']

            self.logger.info("Created category %s/%s", domain_id, category_path)
            return document_id
        except WorldModelError:
            raise
        except Exception as e:
            raise PersistenceError('category', entity_key) from e

    def _new_category_document(self, category_data: Dict[str, Any]) -> Dict[str, Any]:
        path = category_data['category_path']
        name = category_data.get('category_name') or path
        segments = path.split('/')
        category = Category(
            domain_id=category_data['domain_id'],
            category_path=path,
            category_name=name,
            category_type=infer_category_type(name),
            parent_category_path='/'.join(segments[:-1]) or None,
            navigation_level=len(segments) - 1,
            breadcrumbs=segments,
        )
        document = category.to_dict()
        document.update({k: v for k, v in category_data.items() if k != 'discovery_contexts'})
        document['discovery_contexts'] = [_as_dict(c) for c in category_data.get('discovery_contexts') or []]
        document['sibling_categories'] = [_as_dict(s) for s in category_data.get('sibling_categories') or []]
        return document

    async def _merge_category(self, existing: Dict[str, Any], category_data: Dict[str, Any]):
        set_fields = {k: v for k, v in category_data.items() if k not in CATEGORY_IDENTITY}
        if 'sibling_categories' in set_fields:
            set_fields['sibling_categories'] = [_as_dict(s) for s in set_fields['sibling_categories']]
        if 'page_selectors' in set_fields:
            set_fields['page_selectors'] = merge_page_selectors(
                existing.get('page_selectors'), set_fields['page_selectors']
            )
        set_fields['updated_at'] = now_iso()

        push_fields = {}
        contexts = category_data.get('discovery_contexts') or []
        if contexts:
            push_fields['discovery_contexts'] = [_as_dict(c) for c in contexts]

        await self.backend.update_one(
            self.categories, {'_id': existing['_id']}, set_fields=set_fields, push_fields=push_fields
        )
        self.logger.debug(
            "Merged category %r into %s/%s",
            category_data.get('category_name'), existing['domain_id'], existing['category_path']
        )

    async def find_existing_category(
        self,
        domain_id: str,
        category_path: str,
        category_name: str
    ) -> Optional[Dict[str, Any]]:
        by_path = await self.backend.find_one(
            self.categories, {'domain_id': domain_id, 'category_path': category_path}
        )
        if by_path:
            return by_path

        if not category_name:
            return None

        candidates = await self.backend.find_many(self.categories, {'domain_id': domain_id})
        index = first_match(category_name, [c.get('category_name') or '' for c in candidates])
        return candidates[index] if index is not None else None

    async def get_category(self, domain_id: str, category_path: str) -> Optional[Dict[str, Any]]:
        return await self.backend.find_one(
            self.categories, {'domain_id': domain_id, 'category_path': category_path}
        )

    async def get_categories_for_domain(self, domain_id: str) -> List[Dict[str, Any]]:
        return await self.backend.find_many(self.categories, {'domain_id': domain_id})

    async def ingest_category_with_siblings(
        self,
        domain_id: str,
        primary_category: Dict[str, Any],
        sibling_categories: List[Dict[str, Any]],
        discovered_from: Optional[str] = None,
        menu_structure: Optional[str] = None,
        context_data: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Upsert a clicked category and every category seen next to it.

        The primary category records the processed siblings; each sibling
        gets a ``sibling`` discovery context pointing back at the primary.
        A failing sibling is logged and skipped.
        """
        siblings = self.process_sibling_categories(sibling_categories)
        menu = menu_structure or 'horizontal'

        primary_context = CategoryDiscoveryContext(
            discovered_from=discovered_from or 'direct',
            discovery_type=CategoryDiscoveryType.PRIMARY.value,
            context_data={'section': 'main-nav', 'interaction_type': 'click', **(context_data or {})},
            nearby_categories=[s.to_dict() for s in siblings],
            menu_structure=menu,
        )
        primary_id = await self.upsert_category({
            'domain_id': domain_id,
            **primary_category,
            'discovery_contexts': [primary_context],
            'sibling_categories': siblings,
        })

        for raw, sibling in zip(sibling_categories, siblings):
            sibling_context = CategoryDiscoveryContext(
                discovered_from=primary_category['category_path'],
                discovery_type=CategoryDiscoveryType.SIBLING.value,
                spatial_position=raw.get('spatial_position'),
                context_data={'section': 'main-nav', 'interaction_type': 'visible'},
                menu_structure=menu,
            )
            try:
                await self.upsert_category({
                    'domain_id': domain_id,
                    'category_path': sibling.category_path,
                    'category_name': sibling.category_name,
                    'discovery_contexts': [sibling_context],
                })
            except WorldModelError as e:
                self.logger.warning("Skipping sibling category %r: %s", sibling.category_name, e)

        return primary_id

    @staticmethod
    def process_sibling_categories(sibling_categories: Iterable[Dict[str, Any]]) -> List[SiblingCategory]:
        processed = []
        for sibling in sibling_categories:
            name = sibling.get('category_name') or sibling.get('name') or ''
            processed.append(SiblingCategory(
                category_path=sibling.get('category_path') or infer_category_path(name),
                category_name=name,
                selector=sibling.get('selector') or '',
                relative_position=sibling.get('relative_position') or 'unknown',
                distance=sibling.get('distance') or 0,
                menu_level=sibling.get('menu_level') or 0,
                is_active=bool(sibling.get('is_active')),
            ))
        return processed

    async def get_selector_patterns(self, domain_id: str, page_type: str) -> Dict[str, Dict[str, Any]]:
        """Category page selectors that apply to ``page_type``, keyed by selector role."""
        patterns = {}
        for category in await self.get_categories_for_domain(domain_id):
            for key, selector in (category.get('page_selectors') or {}).items():
                if not selector or selector.get('page_type') != page_type:
                    continue
                reliability = SelectorReliability.from_dict(selector.get('reliability'))
                patterns[key] = {
                    'selector': selector.get('selector'),
                    'fallbacks': list(selector.get('fallback_selectors') or []),
                    'reliability': reliability.success_rate,
                }
        return patterns

    # ============================================================
    # PRODUCTS
    # ============================================================

    async def ingest_product_with_siblings(
        self,
        domain: str,
        category_path: str,
        primary_product: Dict[str, Any],
        sibling_products: Optional[List[Dict[str, Any]]] = None,
        page_type: str = 'category',
        total_products_on_page: int = 0,
        nearby_elements: Optional[List[Dict[str, Any]]] = None
    ) -> str:
        """
        Upsert a product plus the products seen alongside it.

        The primary's discovery context lists every sibling; siblings get
        an empty sibling list so contexts stay linear in page size. A
        failing sibling is logged and skipped; a failing primary raises.

        Returns:
            Document id of the primary product
        """
        sibling_products = sibling_products or []
        sibling_context = determine_sibling_context(sibling_products)

        primary_id = await self.upsert_product(
            domain,
            primary_product,
            self._product_context(
                primary_product, category_path, page_type, sibling_context,
                total_products_on_page,
                siblings=self.process_sibling_products(sibling_products),
                nearby_elements=nearby_elements or [],
            ),
        )

        for sibling in sibling_products:
            try:
                await self.upsert_product(
                    domain,
                    sibling,
                    self._product_context(
                        sibling, category_path, page_type, sibling_context, total_products_on_page
                    ),
                )
            except WorldModelError as e:
                self.logger.warning(
                    "Skipping sibling product %r on %s: %s",
                    sibling.get('product_name') or sibling.get('product_id'), domain, e
                )

        return primary_id

    @staticmethod
    def _product_context(product, category_path, page_type, sibling_context,
                         total_products_on_page, siblings=None, nearby_elements=None):
        return ProductDiscoveryContext(
            category_path=category_path,
            page_type=page_type,
            sibling_context=sibling_context,
            position_on_page=product.get('position') or 1,
            total_products_on_page=total_products_on_page,
            discovered_siblings=siblings or [],
            context_specific_data={
                key: product.get(key)
                for key in ('original_price', 'discount_percent', 'search_query', 'filter_applied')
                if product.get(key) is not None
            },
            nearby_elements=nearby_elements or [],
        )

    @staticmethod
    def process_sibling_products(sibling_products: Iterable[Dict[str, Any]]) -> List[SiblingProduct]:
        return [
            SiblingProduct(
                product_id=sibling.get('product_id') or sibling.get('id'),
                product_name=sibling.get('product_name') or sibling.get('name') or sibling.get('title'),
                selector=sibling.get('selector') or '',
                relative_position=sibling.get('relative_position') or 'unknown',
                distance=sibling.get('distance') or 0,
            )
            for sibling in sibling_products
        ]

    async def upsert_product(
        self,
        domain: str,
        product_data: Dict[str, Any],
        discovery_context: Any
    ) -> str:
        """
        Create a product or record another sighting of it.

        On a hit only the volatile current state and ``last_seen`` change,
        and the discovery context is appended.

        Args:
            domain: Hostname
            product_data: Product fields (``product_id`` and/or ``product_name``)
            discovery_context: ProductDiscoveryContext or dict

        Returns:
            Document id
        """
        await self.initialize()
        product_id = product_data.get('product_id')
        entity_key = (domain, product_id or product_data.get('product_name'))
        context = _as_dict(discovery_context)

        try:
            existing = await self.find_existing_product(domain, product_id, product_data.get('product_name'))
            if existing:
                await self._merge_product(existing, product_data, context)
                return existing['_id']

            document = self._new_product_document(domain, product_data, context)
            try:
                document_id = await self.backend.insert_one(self.products, document)
            except DuplicateKeyError:
                winner = await self.backend.find_one(self.products, {'domain': domain, 'product_id': product_id})
                await self._merge_product(winner, product_data, context)
                return winner['_id']

            self.logger.info("Created product %s on %s", product_id or product_data.get('product_name'), domain)
            return document_id
        except WorldModelError:
            raise
        except Exception as e:
            raise PersistenceError('product', entity_key) from e

    @staticmethod
    def _new_product_document(domain: str, product_data: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        availability = product_data.get('availability') or ProductAvailability.AVAILABLE.value
        product = Product(
            domain=domain,
            product_id=product_data.get('product_id'),
            product_name=product_data.get('product_name') or '',
            product_type=product_data.get('product_type') or 'unknown',
            sku=product_data.get('sku'),
            current_state=ProductCurrentState(
                price=product_data.get('price') or 0,
                currency=product_data.get('currency') or 'USD',
                availability=availability,
                in_stock=product_data.get('in_stock') is not False,
            ),
            canonical_url=product_data.get('url') or '',
            primary_image=product_data.get('image') or '',
            gallery=list(product_data.get('images') or []),
            page_selectors=dict(product_data.get('selectors') or {}),
            metadata=dict(product_data.get('metadata') or {}),
        )
        document = product.to_dict()
        document['discovery_contexts'] = [context]
        return document

    async def _merge_product(self, existing: Dict[str, Any], product_data: Dict[str, Any], context: Dict[str, Any]):
        now = now_iso()
        set_fields = {
            'current_state.availability': product_data.get('availability') or ProductAvailability.AVAILABLE.value,
            'current_state.last_price_update': now,
            'reliability.last_seen': now,
            'updated_at': now,
        }
        if product_data.get('price') is not None:
            set_fields['current_state.price'] = product_data['price']

        await self.backend.update_one(
            self.products,
            {'_id': existing['_id']},
            set_fields=set_fields,
            push_fields={'discovery_contexts': [context]},
        )
        self.logger.debug("Merged sighting into product %s on %s", existing.get('product_id'), existing['domain'])

    async def find_existing_product(
        self,
        domain: str,
        product_id: Optional[str],
        product_name: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        if product_id:
            by_id = await self.backend.find_one(self.products, {'domain': domain, 'product_id': product_id})
            if by_id:
                return by_id

        name_key = normalize(product_name)
        if name_key:
            for candidate in await self.backend.find_many(self.products, {'domain': domain}):
                if name_key in normalize(candidate.get('product_name')):
                    return candidate
        return None

    async def get_product(self, domain: str, product_id: str) -> Optional[Dict[str, Any]]:
        return await self.backend.find_one(self.products, {'domain': domain, 'product_id': product_id})

    async def get_products_for_category(self, domain: str, category_path: str) -> List[Dict[str, Any]]:
        return await self.backend.find_many(
            self.products, {'domain': domain, 'discovery_contexts.category_path': category_path}
        )

    # ============================================================
    # VARIANTS & SELECTOR RELIABILITY
    # ============================================================

    async def get_variant_clusters(self, domain: str, product_type: Optional[str] = None) -> List[VariantCluster]:
        """Non-empty variant clusters across a domain's products."""
        filter = {'domain': domain}
        if product_type:
            filter['product_type'] = product_type

        clusters = []
        for product in await self.backend.find_many(self.products, filter):
            variants = product.get('variants') or {}
            for variant_type, key in VARIANT_KEYS.items():
                cluster = VariantCluster.from_dict(variants.get(key), variant_type)
                if cluster.options:
                    clusters.append(cluster)
        return clusters

    async def merge_variant_clusters(
        self,
        domain: str,
        product_id: Optional[str],
        attribute_sightings: List[AttributeData],
        product_name: Optional[str] = None
    ) -> Dict[str, VariantCluster]:
        """
        Grow a product's variant clusters with new attribute sightings.

        The product is resolved the way ``upsert_product`` resolves it, so a
        sighting under a new id whose name matches a stored product lands
        on that product.
        """
        product = await self.find_existing_product(domain, product_id, product_name)
        if not product:
            raise PersistenceError('product', (domain, product_id), f"Product {product_id!r} not found on {domain}")

        variants = product.get('variants') or {}
        existing = {
            variant_type: VariantCluster.from_dict(variants.get(key), variant_type)
            for variant_type, key in VARIANT_KEYS.items()
        }
        clusters = self.variant_extractor.extract(attribute_sightings, existing)

        set_fields = {
            f"variants.{VARIANT_KEYS[variant_type]}": cluster.to_dict()
            for variant_type, cluster in clusters.items()
            if variant_type in VARIANT_KEYS
        }
        set_fields['updated_at'] = now_iso()
        await self.backend.update_one(self.products, {'_id': product['_id']}, set_fields=set_fields)
        return clusters

    async def update_selector_reliability(
        self,
        domain: str,
        product_id: str,
        selector_key: str,
        success: bool
    ) -> SelectorReliability:
        """
        Record one use of a product page selector. Counters only grow.

        The per-key rate under ``reliability.selector_success_rates`` and,
        when the product stores that selector, its ``SelectorInfo``
        reliability are updated together.
        """
        product = await self.get_product(domain, product_id)
        if not product:
            raise PersistenceError('product', (domain, product_id), f"Product {product_id!r} not found on {domain}")

        rates = (product.get('reliability') or {}).get('selector_success_rates') or {}
        reliability = SelectorReliability.from_dict(rates.get(selector_key))
        reliability.record_attempt(success)

        set_fields = {
            f"reliability.selector_success_rates.{selector_key}": reliability.to_dict(),
            'reliability.total_interactions': int(
                (product.get('reliability') or {}).get('total_interactions') or 0) + 1,
        }
        if selector_key in (product.get('page_selectors') or {}):
            set_fields[f"page_selectors.{selector_key}.reliability"] = reliability.to_dict()

        await self.backend.update_one(self.products, {'_id': product['_id']}, set_fields=set_fields)
        return reliability

    # ============================================================
    # EXPORT
    # ============================================================

    async def export_domain(self, domain: str) -> Dict[str, Any]:
        """Snapshot of one domain's world model."""
        return {
            'domain': await self.get_domain(domain),
            'categories': await self.get_categories_for_domain(domain),
            'products': await self.backend.find_many(self.products, {'domain': domain}),
            'exported_at': now_iso(),
        }
