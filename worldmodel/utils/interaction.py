"""Interaction records as delivered by the capture/session-storage layer.

Raw records arrive as loosely shaped dicts (field names differ between
capture versions). ``Interaction.from_dict`` normalises them into the
six logical groups the pipeline reads: selectors, visual, element,
context, state and interaction.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


# Interaction types that carry user intent
CLICK = 'CLICK'
NAVIGATION_RESTORED = 'navigation_restored'
CLICK_LIKE_TYPES = {CLICK, NAVIGATION_RESTORED}


@dataclass
class ElementInfo:
    """The element the user interacted with."""
    tag: str = ''
    text: str = ''
    id: str = ''
    class_name: str = ''
    attributes: Dict[str, Any] = field(default_factory=dict)
    nearby_elements: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class PageContext:
    """Page the interaction happened on."""
    page_url: str = ''
    page_title: str = ''
    page_type: str = ''
    dom_snapshot: Any = None


@dataclass
class SessionContext:
    """Session-level summary produced alongside the interaction list."""
    page_type: Optional[str] = None
    user_intent: Optional[str] = None       # browse, search, compare, purchase, research
    shopping_stage: Optional[str] = None    # awareness, consideration, decision
    behavior_type: Optional[str] = None
    quality_score: Optional[float] = None

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> 'SessionContext':
        raw = raw or {}
        return cls(
            page_type=raw.get('pageType') or raw.get('page_type'),
            user_intent=raw.get('userIntent') or raw.get('user_intent'),
            shopping_stage=raw.get('shoppingStage') or raw.get('shopping_stage'),
            behavior_type=raw.get('behaviorType') or raw.get('behavior_type'),
            quality_score=raw.get('qualityScore', raw.get('quality_score')),
        )


@dataclass
class Interaction:
    """One captured user interaction."""
    id: str = 'unknown'
    type: str = 'unknown'
    timestamp: Optional[float] = None
    coordinates: Dict[str, float] = field(default_factory=dict)
    element: ElementInfo = field(default_factory=ElementInfo)
    context: PageContext = field(default_factory=PageContext)
    selectors: Dict[str, Any] = field(default_factory=dict)
    visual: Dict[str, Any] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)

    @property
    def url(self) -> str:
        return self.context.page_url

    @property
    def text(self) -> str:
        return self.element.text

    @property
    def is_click_like(self) -> bool:
        return self.type in CLICK_LIKE_TYPES

    @property
    def bounding_box(self) -> Dict[str, float]:
        return self.visual.get('boundingBox') or {}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> 'Interaction':
        """
        Build an Interaction from a raw capture record.

        Only the clicked element is kept; sibling/parent element dumps are
        dropped because they contaminate text-based classification.
        Nearby elements are kept separately for spatial context.
        """
        element_raw = raw.get('element') or {}
        context_raw = raw.get('context') or {}
        interaction_raw = raw.get('interaction') or {}

        attributes = element_raw.get('attributes') or {}
        if not isinstance(attributes, dict):
            attributes = {}

        class_name = element_raw.get('className') or attributes.get('class') or ''
        if not isinstance(class_name, str):
            class_name = ''

        element = ElementInfo(
            tag=(element_raw.get('tag') or element_raw.get('tagName') or '').lower(),
            text=element_raw.get('text') or '',
            id=element_raw.get('id') or attributes.get('id') or '',
            class_name=class_name,
            attributes=attributes,
            nearby_elements=list(element_raw.get('nearbyElements') or []),
        )

        page_context = context_raw.get('pageContext') or {}
        context = PageContext(
            page_url=context_raw.get('pageUrl') or context_raw.get('url') or '',
            page_title=context_raw.get('pageTitle') or '',
            page_type=context_raw.get('pageType') or '',
            dom_snapshot=(
                context_raw.get('domSnapshot')
                or (page_context.get('domSnapshot') if isinstance(page_context, dict) else None)
            ),
        )

        return cls(
            id=str(raw.get('id') or 'unknown'),
            type=raw.get('type') or interaction_raw.get('type') or 'unknown',
            timestamp=raw.get('timestamp') or interaction_raw.get('timestamp'),
            coordinates=interaction_raw.get('coordinates') or {},
            element=element,
            context=context,
            selectors=raw.get('selectors') or {},
            visual=raw.get('visual') or {},
            state=raw.get('state') or {},
        )


def parse_interactions(payload: Any) -> List[Interaction]:
    """
    Parse a session payload into an ordered list of interactions.

    Accepts a list of dicts, a JSON string, an array-like dict with
    numeric keys, or already-built Interaction objects. Anything else
    yields an empty list.
    """
    if payload is None:
        return []

    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except ValueError:
            return []

    if isinstance(payload, dict):
        numeric_keys = sorted((k for k in payload if str(k).isdigit()), key=int)
        if not numeric_keys:
            return []
        payload = [payload[k] for k in numeric_keys]

    if not isinstance(payload, list):
        return []

    interactions = []
    for item in payload:
        if isinstance(item, Interaction):
            interactions.append(item)
        elif isinstance(item, dict):
            interactions.append(Interaction.from_dict(item))
    return interactions
