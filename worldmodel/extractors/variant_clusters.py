"""Group product-attribute sightings into variant clusters."""

import logging
from typing import Dict, Iterable, List, Optional

from .attribute_detector import AttributeDetector
from ..classifiers.base_classifier import AttributeData
from ..storage.schema import (
    VariantCluster, VariantOption, VariantLayout, VariantAvailability, VARIANT_KEYS, now_iso
)

logger = logging.getLogger(__name__)


# Markers on a variant element that mean the option cannot be selected
UNAVAILABLE_MARKERS = ['disabled', 'out-of-stock', 'sold-out', 'unavailable', 'soldout']


class VariantClusterExtractor:
    """
    Accumulate color/size/style options per product.

    Options are keyed by normalised value (lower-case, trimmed). A new
    value appends an option; a known value keeps its first-seen selector.
    Clusters never shrink.
    """

    def __init__(self, refresh_availability: bool = True,
                 attribute_detector: Optional[AttributeDetector] = None):
        self.refresh_availability = refresh_availability
        self.attribute_detector = attribute_detector or AttributeDetector()

    @staticmethod
    def normalize(value: str) -> str:
        return (value or '').strip().lower()

    @staticmethod
    def empty_clusters() -> Dict[str, VariantCluster]:
        return {variant_type: VariantCluster(type=variant_type) for variant_type in VARIANT_KEYS}

    def extract(
        self,
        sightings: Iterable[AttributeData],
        existing: Optional[Dict[str, VariantCluster]] = None
    ) -> Dict[str, VariantCluster]:
        """
        Merge attribute sightings into clusters.

        Args:
            sightings: product_attribute data in capture order
            existing: clusters already stored for the product

        Returns:
            Clusters keyed by variant type ("color", "size", "style")
        """
        clusters = self.empty_clusters()
        clusters.update(existing or {})

        for sighting in sightings:
            variant_type = self.variant_type_of(sighting)
            if variant_type not in clusters:
                # actions and availability are not variant dimensions
                continue
            self.add_option(clusters[variant_type], sighting)

        for cluster in clusters.values():
            cluster.layout = self.infer_layout(cluster.options)
        return clusters

    def variant_type_of(self, sighting: AttributeData) -> Optional[str]:
        if sighting.type:
            return sighting.type
        return self.attribute_detector.classify_value(sighting.value)

    def add_option(self, cluster: VariantCluster, sighting: AttributeData) -> bool:
        """Append the sighting as an option; returns False when the value is known."""
        key = self.normalize(sighting.value)
        if not key:
            return False

        for option in cluster.options:
            if self.normalize(option.value) == key:
                if self.refresh_availability:
                    option.availability = self.availability_of(sighting)
                    option.in_stock = option.availability != VariantAvailability.OUT_OF_STOCK.value
                    option.last_verified = now_iso()
                return False

        availability = self.availability_of(sighting)
        cluster.options.append(VariantOption(
            value=sighting.value.strip(),
            display_name=sighting.value.strip(),
            selector=sighting.selector,
            availability=availability,
            in_stock=availability != VariantAvailability.OUT_OF_STOCK.value,
            position=len(cluster.options),
            bounding_box=dict(sighting.position),
            attributes=dict(sighting.element_details.attributes),
        ))
        logger.debug("Added %s option %r", cluster.type, sighting.value)
        return True

    @staticmethod
    def availability_of(sighting: AttributeData) -> str:
        details = sighting.element_details
        haystack = ' '.join([
            details.class_name or '',
            ' '.join(f"{k}={v}" for k, v in details.attributes.items()),
        ]).lower()
        if any(marker in haystack for marker in UNAVAILABLE_MARKERS):
            return VariantAvailability.OUT_OF_STOCK.value
        return VariantAvailability.IN_STOCK.value

    @staticmethod
    def infer_layout(options: List[VariantOption]) -> str:
        """Arrangement of options from their bounding boxes."""
        boxes = [o.bounding_box for o in options if 'x' in o.bounding_box and 'y' in o.bounding_box]
        if len(boxes) < 2:
            return VariantLayout.HORIZONTAL_ROW.value

        rows = {round(box['y']) for box in boxes}
        columns = {round(box['x']) for box in boxes}
        if len(rows) == 1:
            return VariantLayout.HORIZONTAL_ROW.value
        if len(columns) == 1:
            return VariantLayout.VERTICAL_LIST.value
        return VariantLayout.GRID.value
