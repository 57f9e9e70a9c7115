"""
Session ingestion pipeline.

Turns one captured session into world model updates:
    parse -> session context -> domain -> classify -> segment
    -> categories -> products (with siblings and variant clusters)
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple

from .config import WorldModelConfig
from .session_context import SessionContextBuilder
from ..classifiers.base_classifier import (
    ClassificationResult, CATEGORY, PRODUCT, PRODUCT_ATTRIBUTE, UI, IGNORE
)
from ..classifiers.intent_classifier import IntentClassifier
from ..classifiers.text_heuristics import looks_like_category_name, is_ui_text
from ..extractors.product_extractor import ExtractedProduct, ProductPageAggregator
from ..extractors.selector_builder import SelectorBuilder
from ..sequences.segmenter import SequenceSegmenter, UniversalSequence
from ..storage.errors import BatchTooLargeError
from ..storage.schema import PageType, SelectorInfo
from ..storage.world_model_store import WorldModelStore
from ..url_intelligence.url_patterns import URLPatternMatcher
from ..utils.interaction import Interaction, SessionContext, parse_interactions
from ..utils.url_utils import URLUtils


@dataclass
class IngestionStats:
    """Counters for one ingestion run."""
    interactions: int = 0
    categories: int = 0
    products: int = 0
    attribute_sightings: int = 0
    skipped_low_confidence: int = 0
    filtered_ui: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def log_summary(self, logger: logging.Logger, domain: Optional[str]):
        logger.info(
            "Ingested session for %s: %d interactions, %d categories, %d products, "
            "%d attribute sightings, %d skipped (low confidence), %d filtered (UI), %d errors",
            domain, self.interactions, self.categories, self.products,
            self.attribute_sightings, self.skipped_low_confidence, self.filtered_ui, self.errors
        )


@dataclass
class IngestionResult:
    """Everything one run produced."""
    domain: Optional[str]
    sequence: UniversalSequence
    classifications: List[ClassificationResult] = field(default_factory=list)
    stats: IngestionStats = field(default_factory=IngestionStats)


class SessionIngester:
    """
    Drive a session through classification, segmentation and storage.

    Args:
        store: World model store (in-memory backend when omitted)
        config: Thresholds and gates
        logger: Injected logger
    """

    def __init__(
        self,
        store: Optional[WorldModelStore] = None,
        config: Optional[WorldModelConfig] = None,
        classifier: Optional[IntentClassifier] = None,
        segmenter: Optional[SequenceSegmenter] = None,
        aggregator: Optional[ProductPageAggregator] = None,
        context_builder: Optional[SessionContextBuilder] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or WorldModelConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.store = store or WorldModelStore(
            backend=self.config.build_backend(),
            logger=self.logger,
            collections=self.config.collections,
        )
        self.url_matcher = URLPatternMatcher()
        self.selector_builder = SelectorBuilder()
        self.classifier = classifier or IntentClassifier.from_config(self.config, logger=self.logger)
        self.segmenter = segmenter or SequenceSegmenter(url_matcher=self.url_matcher)
        self.aggregator = aggregator or ProductPageAggregator(url_matcher=self.url_matcher)
        self.context_builder = context_builder or SessionContextBuilder(url_matcher=self.url_matcher)

    async def ingest_session(
        self,
        interactions: Any,
        session_context: Optional[Any] = None
    ) -> IngestionResult:
        """
        Ingest one session.

        Args:
            interactions: Raw records, a JSON string, a numeric-keyed dict
                or Interaction objects
            session_context: SessionContext, its raw dict form, or None to infer it

        Returns:
            IngestionResult

        Raises:
            BatchTooLargeError: when the session exceeds ``max_batch_size``
            PersistenceError: when a domain, category or primary product write fails
        """
        records = parse_interactions(interactions)
        if len(records) > self.config.max_batch_size:
            raise BatchTooLargeError(len(records), self.config.max_batch_size)

        stats = IngestionStats(interactions=len(records))
        if not records:
            self.logger.info("Empty session, nothing to ingest")
            return IngestionResult(domain=None, sequence=UniversalSequence(), stats=stats)

        context = self.resolve_session_context(records, session_context)
        domain = self.extract_domain(records)

        classifications = self.classifier.classify_session(records, context)
        sequence = self.segmenter.segment(records, classifications)

        for classification in classifications:
            if classification.type in (UI, IGNORE):
                stats.filtered_ui += 1
            elif classification.type == PRODUCT_ATTRIBUTE:
                stats.attribute_sightings += 1

        if domain is None:
            self.logger.warning("No parseable URL in session, skipping persistence")
            return IngestionResult(domain=None, sequence=sequence, classifications=classifications, stats=stats)

        try:
            await self.upsert_domain(domain, records, classifications)
            category_paths = await self.ingest_categories(domain, records, classifications, stats)
            await self.ingest_products(domain, records, classifications, category_paths, stats)
            await self.store.record_domain_interactions(
                domain,
                total=len(records),
                successful=sum(1 for c in classifications if c.type not in (UI, IGNORE)),
            )
        except Exception:
            stats.errors += 1
            stats.log_summary(self.logger, domain)
            raise

        stats.log_summary(self.logger, domain)
        return IngestionResult(domain=domain, sequence=sequence, classifications=classifications, stats=stats)

    # ------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------

    def resolve_session_context(self, records: List[Interaction], session_context: Any) -> SessionContext:
        if isinstance(session_context, SessionContext):
            return session_context
        if isinstance(session_context, dict):
            return SessionContext.from_dict(session_context)
        return self.context_builder.build(records)

    @staticmethod
    def extract_domain(records: List[Interaction]) -> Optional[str]:
        """Hostname of the first interaction with a parseable URL."""
        for record in records:
            if URLUtils.is_valid_url(record.url):
                return URLUtils.extract_domain(record.url)
        return None

    async def upsert_domain(
        self,
        domain: str,
        records: List[Interaction],
        classifications: Optional[List[ClassificationResult]] = None
    ) -> str:
        urls = [r.url for r in records if r.url]
        observed = self.url_matcher.bucket_urls(urls).to_dict()

        existing = await self.store.get_domain(domain)
        url_patterns = dict((existing or {}).get('url_patterns') or {})
        for page_type, page_urls in observed.items():
            merged = list(url_patterns.get(page_type) or [])
            for url in page_urls:
                if url not in merged:
                    merged.append(url)
            url_patterns[page_type] = merged

        # Known roles keep their stored selector and reliability
        global_selectors = dict((existing or {}).get('global_selectors') or {})
        for role, selector in self.global_selectors(records, classifications or []).items():
            global_selectors.setdefault(role, selector)

        return await self.store.upsert_domain({
            'domain': domain,
            'site_name': URLUtils.format_site_name(domain),
            'url_patterns': url_patterns,
            'global_selectors': global_selectors,
        })

    def global_selectors(
        self,
        records: List[Interaction],
        classifications: List[ClassificationResult]
    ) -> Dict[str, Dict[str, Any]]:
        """Site-wide element roles seen in this session: category links and add-to-cart."""
        selectors = {}
        for record, classification in zip(records, classifications):
            if classification.type == CATEGORY:
                role = 'category_link'
            elif (classification.type == PRODUCT_ATTRIBUTE and classification.attribute_data
                  and classification.attribute_data.type == 'action'):
                role = 'add_to_cart'
            else:
                continue
            if role not in selectors:
                selectors[role] = self.selector_info(record)
        return selectors

    def page_type_of(self, url: Optional[str]) -> str:
        analysis = self.url_matcher.analyze(url)
        if analysis.type == PRODUCT:
            return PageType.PRODUCT_DETAIL.value
        if analysis.type == 'navigation':
            return PageType.HOMEPAGE.value
        return self.listing_page_type(url or '')

    def selector_info(self, record: Interaction) -> Dict[str, Any]:
        """Primary selector and fallback chain for an element, tagged with its page type."""
        return SelectorInfo(
            selector=self.selector_builder.best_selector(record),
            fallback_selectors=self.selector_builder.fallback_chain(record),
            page_type=self.page_type_of(record.url),
        ).to_dict()

    async def ingest_categories(
        self,
        domain: str,
        records: List[Interaction],
        classifications: List[ClassificationResult],
        stats: IngestionStats
    ) -> List[Optional[str]]:
        """
        Upsert confident category clicks, once per path per run.

        Returns:
            The most recent category path at each index (None before the first)
        """
        seen = set()
        current_path: Optional[str] = None
        paths: List[Optional[str]] = []

        for record, classification in zip(records, classifications):
            data = classification.extracted_data
            if classification.type == CATEGORY and data and data.category_path:
                if classification.confidence < self.config.min_category_confidence:
                    stats.skipped_low_confidence += 1
                else:
                    current_path = data.category_path
                    key = (classification.domain or domain, data.category_path)
                    if key not in seen:
                        seen.add(key)
                        await self.store.ingest_category_with_siblings(
                            domain_id=key[0],
                            primary_category={
                                'category_path': data.category_path,
                                'category_name': data.name,
                                'canonical_url': data.url,
                                'page_selectors': {'category_link': self.selector_info(record)},
                            },
                            sibling_categories=self.sibling_categories(record),
                            discovered_from=record.url,
                            context_data={
                                'text_category_path': data.text_category_path,
                                'url_category_path': data.url_category_path,
                                'category_path_mismatch': data.category_path_mismatch,
                                'confidence': classification.confidence,
                            },
                        )
                        stats.categories += 1
            elif classification.type == PRODUCT and classification.confidence < self.config.min_product_confidence:
                stats.skipped_low_confidence += 1
            paths.append(current_path)
        return paths

    @staticmethod
    def sibling_categories(record: Interaction) -> List[Dict[str, Any]]:
        siblings = []
        for nearby in record.element.nearby_elements:
            text = (nearby.get('text') or '').strip()
            if not text or text == record.text.strip() or is_ui_text(text):
                continue
            if looks_like_category_name(text):
                siblings.append({
                    'category_name': text,
                    'selector': nearby.get('selector') or '',
                    'relative_position': nearby.get('relationship') or 'unknown',
                    'distance': nearby.get('distance') or 0,
                })
        return siblings

    async def ingest_products(
        self,
        domain: str,
        records: List[Interaction],
        classifications: List[ClassificationResult],
        category_paths: List[Optional[str]],
        stats: IngestionStats
    ):
        index_of = {id(record): index for index, record in enumerate(records)}

        # Product detail pages: one product per page with its attribute sightings
        for pairs in self.aggregator.group_by_product_page(records, classifications).values():
            product = self.aggregator.aggregate(pairs)
            if product is None:
                continue
            if product.confidence < self.config.min_product_confidence:
                stats.skipped_low_confidence += 1
                continue

            session_path = category_paths[index_of[id(pairs[0][0])]]
            category_path = product.category_path
            if category_path == 'general' and session_path:
                category_path = session_path

            await self.store.ingest_product_with_siblings(
                domain,
                category_path,
                self.product_payload(product),
                sibling_products=[],
                page_type=PageType.PRODUCT_DETAIL.value,
                total_products_on_page=1,
                nearby_elements=pairs[0][0].element.nearby_elements,
            )
            stats.products += 1

            if product.variant_sightings:
                await self.store.merge_variant_clusters(
                    domain, product.product_id, product.variant_sightings, product_name=product.product_name
                )

        # Listing pages: product clicks seen together on one page are siblings
        for page_url, listing in self.group_listing_products(records, classifications).items():
            primary, siblings = listing[0], listing[1:]
            record = primary[0]
            category_path = (
                category_paths[index_of[id(record)]]
                or self.url_matcher.category_path_from_url(page_url)
                or self.url_matcher.infer_listing_path(page_url)
            )
            await self.store.ingest_product_with_siblings(
                domain,
                category_path,
                self.listing_payload(*primary, position=1),
                sibling_products=[
                    self.listing_payload(r, c, position=n)
                    for n, (r, c) in enumerate(siblings, start=2)
                ],
                page_type=self.listing_page_type(page_url),
                total_products_on_page=len(listing),
                nearby_elements=record.element.nearby_elements,
            )
            stats.products += len(listing)

    def group_listing_products(
        self,
        records: List[Interaction],
        classifications: List[ClassificationResult]
    ) -> Dict[str, List[Tuple[Interaction, ClassificationResult]]]:
        """Confident product clicks on non-product pages, by page."""
        listings: Dict[str, List[Tuple[Interaction, ClassificationResult]]] = {}
        for record, classification in zip(records, classifications):
            if classification.type != PRODUCT or not classification.extracted_data:
                continue
            if classification.confidence < self.config.min_product_confidence:
                continue
            if self.url_matcher.is_product_page(record.url):
                continue
            listings.setdefault(URLUtils.clean_url(record.url), []).append((record, classification))
        return listings

    def listing_page_type(self, url: str) -> str:
        lower_url = url.lower()
        if '/search' in lower_url or '?q=' in lower_url:
            return PageType.SEARCH_RESULTS.value
        if '/sale' in lower_url:
            return PageType.SALE.value
        return PageType.CATEGORY.value

    def listing_payload(self, record: Interaction, classification: ClassificationResult,
                        position: int) -> Dict[str, Any]:
        data = classification.extracted_data
        return {
            'product_id': data.product_id,
            'product_name': data.name,
            'product_type': self.aggregator.infer_product_type(data.name),
            'price': self.aggregator.extract_price(record.text),
            'selector': self.aggregator.extract_selector(record),
            'position': position,
        }

    @staticmethod
    def product_payload(product: ExtractedProduct) -> Dict[str, Any]:
        return {
            'product_id': product.product_id,
            'product_name': product.product_name,
            'product_type': product.product_type,
            'price': product.price,
            'url': product.url,
            'selectors': {
                'main': SelectorInfo(
                    selector=product.selector,
                    fallback_selectors=product.fallback_selectors,
                    page_type=PageType.PRODUCT_DETAIL.value,
                ).to_dict(),
            },
            'metadata': {
                'confidence': product.confidence,
                'reasoning': product.reasoning,
                'attribute_count': product.attribute_count,
            },
        }
