"""Configuration management for the world model."""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from dotenv import load_dotenv

from ..storage.schema import DOMAINS, CATEGORIES, PRODUCTS

load_dotenv()

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ('memory', 'supabase')


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class WorldModelConfig:
    """Configuration for classification, ingestion and storage."""

    # Cascade thresholds
    attribute_threshold: float = 0.8
    url_threshold: float = 0.8
    navigation_threshold: float = 0.7
    behavior_threshold: float = 0.6

    # Ingestion gates
    min_category_confidence: float = 0.6
    min_product_confidence: float = 0.7
    lookahead_window: int = 4
    max_batch_size: int = 500

    # Storage settings
    storage_backend: str = 'memory'
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    table_names: Dict[str, str] = field(default_factory=lambda: {
        'domains': DOMAINS,
        'categories': CATEGORIES,
        'products': PRODUCTS,
    })

    log_level: str = 'INFO'

    def __post_init__(self):
        """Initialize configuration from environment variables."""
        self.supabase_url = self.supabase_url or os.getenv('SUPABASE_URL')
        self.supabase_key = self.supabase_key or os.getenv('SUPABASE_ANON_KEY')
        self.storage_backend = os.getenv('WORLDMODEL_STORAGE', self.storage_backend).lower()
        self.log_level = os.getenv('WORLDMODEL_LOG_LEVEL', self.log_level).upper()
        self.min_category_confidence = _env_float(
            'WORLDMODEL_MIN_CATEGORY_CONFIDENCE', self.min_category_confidence)
        self.min_product_confidence = _env_float(
            'WORLDMODEL_MIN_PRODUCT_CONFIDENCE', self.min_product_confidence)
        self.max_batch_size = _env_int('WORLDMODEL_MAX_BATCH_SIZE', self.max_batch_size)

    @property
    def collections(self) -> Dict[str, str]:
        """Collection names keyed the way WorldModelStore expects them."""
        return dict(self.table_names)

    def validate(self) -> bool:
        """Validate configuration."""
        if self.storage_backend not in STORAGE_BACKENDS:
            logger.warning("Unknown storage backend %r", self.storage_backend)
            return False
        if self.storage_backend == 'supabase' and not (self.supabase_url and self.supabase_key):
            logger.warning("Supabase storage selected but SUPABASE_URL/SUPABASE_ANON_KEY not set")
            return False
        for name in ('attribute_threshold', 'url_threshold', 'navigation_threshold',
                     'behavior_threshold', 'min_category_confidence', 'min_product_confidence'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                logger.warning("%s must be within [0, 1], got %s", name, value)
                return False
        if self.lookahead_window < 0 or self.max_batch_size <= 0:
            logger.warning("lookahead_window and max_batch_size must be positive")
            return False
        return True

    def build_backend(self):
        """Document backend selected by ``storage_backend``."""
        if self.storage_backend == 'supabase':
            from ..storage.supabase_backend import SupabaseBackend
            return SupabaseBackend(
                url=self.supabase_url,
                key=self.supabase_key,
            )
        from ..storage.backends import InMemoryBackend
        return InMemoryBackend()


def configure_logging(level: Optional[str] = None):
    """Basic handler setup for scripts; library code never calls this."""
    logging.basicConfig(
        level=getattr(logging, (level or os.getenv('WORLDMODEL_LOG_LEVEL', 'INFO')).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
