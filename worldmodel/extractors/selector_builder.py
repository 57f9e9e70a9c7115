"""Build reusable element-locating strategies from captured interactions."""

from typing import Any, Dict, List

from ..utils.interaction import Interaction


# Attributes specific enough to pin a variant option
VARIANT_ATTRIBUTES = ['data-color', 'data-size', 'data-value']

# Attributes kept when recording element details for replay
REPLAY_ATTRIBUTES = ['id', 'name', 'aria-label', 'data-testid'] + VARIANT_ATTRIBUTES


class SelectorBuilder:
    """Derive CSS selectors, XPath expressions and fallback chains for an element."""

    def best_selector(self, interaction: Interaction) -> str:
        """
        Best available selector for the element.

        Capture-provided selectors win; otherwise one is built from the
        tag, id, classes and variant data attributes.
        """
        selectors = interaction.selectors or {}
        for key in ('css', 'xpath', 'primary'):
            if selectors.get(key):
                return selectors[key]

        return self.build_css(interaction) or 'unknown-selector'

    def build_css(self, interaction: Interaction) -> str:
        element = interaction.element
        selector = element.tag or ''

        if element.id:
            selector += f"#{element.id}"

        classes = [c for c in element.class_name.split(' ') if c.strip()]
        if classes:
            selector += '.' + '.'.join(classes)

        for key, value in element.attributes.items():
            if key in VARIANT_ATTRIBUTES:
                selector += f'[{key}="{value}"]'

        return selector

    def build_xpath(self, interaction: Interaction) -> str:
        element = interaction.element
        if not (element.tag or element.id or element.class_name or element.text):
            return ''

        xpath = f"//{element.tag or '*'}"
        if element.id:
            xpath = f'//*[@id="{element.id}"]'
        elif element.class_name.strip():
            xpath += f'[@class="{element.class_name}"]'

        text = element.text.strip()
        if text and len(text) < 50:
            xpath += f'[text()="{text}"]'

        return xpath

    def fallback_chain(self, interaction: Interaction) -> List[str]:
        """
        Ordered fallback selectors, most specific first, without duplicates.
        """
        selectors = interaction.selectors or {}
        candidates = [
            selectors.get('cssPath'),
            selectors.get('xpath'),
            self.build_css(interaction),
            self.build_xpath(interaction),
        ]
        candidates.extend(selectors.get('alternatives') or [])

        primary = self.best_selector(interaction)
        chain = []
        for candidate in candidates:
            if candidate and candidate != primary and candidate not in chain:
                chain.append(candidate)
        return chain

    def replay_attributes(self, interaction: Interaction) -> Dict[str, Any]:
        """Subset of element attributes worth keeping for replay."""
        return {
            k: v for k, v in interaction.element.attributes.items()
            if k in REPLAY_ATTRIBUTES
        }
