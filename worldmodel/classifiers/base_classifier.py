"""Base classifier interface and shared result types.

Interaction classifiers decide what a single captured interaction means:
a product, a category, navigation chrome, a UI control, a product
attribute (variant/action/availability) or noise.

Implementations:
    - IntentClassifier: ordered cascade of signal-specific analyzers
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from ..utils.interaction import Interaction, SessionContext


# Intent vocabulary
PRODUCT = 'product'
CATEGORY = 'category'
NAVIGATION = 'navigation'
UI = 'ui'
PRODUCT_ATTRIBUTE = 'product_attribute'
IGNORE = 'ignore'
UNKNOWN = 'unknown'

INTENT_TYPES = (PRODUCT, CATEGORY, NAVIGATION, UI, PRODUCT_ATTRIBUTE, IGNORE)


@dataclass
class ScoredResult:
    """Intermediate verdict from one analyzer in the cascade."""
    type: str
    confidence: float
    reasoning: str
    attribute_type: Optional[str] = None
    attribute_value: Optional[str] = None

    @classmethod
    def unknown(cls, reasoning: str) -> 'ScoredResult':
        return cls(type=UNKNOWN, confidence=0.0, reasoning=reasoning)


@dataclass
class ExtractedData:
    """Entity data pulled from a product/category classification."""
    name: str
    url: str
    category_path: Optional[str] = None
    product_id: Optional[str] = None
    # Both category signals are kept so consumers can resolve them themselves
    text_category_path: Optional[str] = None
    url_category_path: Optional[str] = None
    category_path_mismatch: bool = False


@dataclass
class ElementDetails:
    """Structural details of the element behind an attribute sighting."""
    tag: str = ''
    class_name: str = ''
    id: str = ''
    attributes: Dict[str, Any] = field(default_factory=dict)
    xpath: str = ''


@dataclass
class AttributeData:
    """A product attribute sighting (color swatch, size button, add-to-cart...)."""
    type: str  # "color", "size", "style", "availability", "action"
    value: str
    selector: str
    parent_product_url: Optional[str] = None
    element_details: ElementDetails = field(default_factory=ElementDetails)
    position: Dict[str, float] = field(default_factory=dict)


@dataclass
class ClassificationResult:
    """Complete classification result for one interaction."""
    type: str
    confidence: float
    reasoning: str
    domain: Optional[str] = None
    analyzer: Optional[str] = None
    extracted_data: Optional[ExtractedData] = None
    attribute_data: Optional[AttributeData] = None

    def to_dict(self) -> Dict:
        """Convert to dictionary for logging."""
        return asdict(self)


class BaseInteractionClassifier(ABC):
    """Abstract base class for interaction classifiers.

    Every call must return exactly one result; malformed input degrades
    to a low-confidence ``ignore`` instead of raising.
    """

    @abstractmethod
    def classify_interaction(
        self,
        interaction: Interaction,
        session_context: Optional[SessionContext] = None,
        subsequent_interactions: Optional[List[Interaction]] = None
    ) -> ClassificationResult:
        """
        Classify a single interaction.

        Args:
            interaction: The interaction to classify
            session_context: Session-level behavioural summary
            subsequent_interactions: Already-captured interactions that follow it

        Returns:
            ClassificationResult
        """
        pass
