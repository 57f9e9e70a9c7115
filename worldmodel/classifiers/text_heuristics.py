"""Text heuristics for product names, category names and UI boilerplate."""

import re
from typing import Optional


CATEGORY_KEYWORDS = [
    'men', 'women', 'kids', 'boys', 'girls', 'baby',
    'sale', 'new', 'featured', 'trending',
    'shoes', 'clothing', 'accessories', 'bags',
    't-shirts', 'shirts', 'pants', 'dresses', 'jackets',
]

# Material/fit words mark a specific product rather than a listing
NON_GENERIC_MARKERS = ['fit', 'cotton', '-']

PRODUCT_KEYWORDS = [
    'shirt', 'polo', 'tee', 'pants', 'jeans', 'dress', 'shoe', 'sneaker',
    'jacket', 'sweater', 'hoodie', 'blazer', 'coat', 'vest',
]

PRODUCT_DESCRIPTORS = [
    'regular', 'slim', 'loose', 'fitted', 'relaxed',
    'cotton', 'linen', 'wool', 'denim', 'leather',
    'organic', 'premium', 'classic', 'vintage',
]

UI_PHRASES = [
    'add to bag', 'add to cart', 'checkout', 'sign in', 'sign up',
    'search', 'filter', 'sort by', 'view all', 'load more',
    'back', 'next', 'previous', 'continue', 'submit',
    'check out customer reviews', 'finding the best fit',
    'selected size', 'color:', 'size:', '$', 'not saved to favorites',
    'page ',
]

BARE_NUMBER = re.compile(r'^\d+(?:\.\d+)?$')
ALL_CAPS = re.compile(r'^[A-Z\s]+$')


def looks_like_category_name(text: str) -> bool:
    """Short, generic text containing a category keyword."""
    lower_text = text.lower()
    has_category = any(keyword in lower_text for keyword in CATEGORY_KEYWORDS)
    is_short = len(text) < 50
    is_generic = not any(marker in lower_text for marker in NON_GENERIC_MARKERS)
    return has_category and is_short and is_generic


def looks_like_product_name(text: str) -> bool:
    """Descriptive text naming a product type."""
    lower_text = text.lower()
    has_product = any(keyword in lower_text for keyword in PRODUCT_KEYWORDS)
    has_descriptor = any(desc in lower_text for desc in PRODUCT_DESCRIPTORS)
    is_descriptive = 15 < len(text) < 150
    return (has_product and is_descriptive) or (has_descriptor and has_product)


def is_ui_text(text: str) -> bool:
    """
    Interface boilerplate: cart/checkout/sort/pagination labels,
    all-caps labels, bare numbers and long description blobs.
    """
    stripped = text.strip()
    lower_text = stripped.lower()
    return (
        any(phrase in lower_text for phrase in UI_PHRASES)
        or len(stripped) > 100
        or bool(BARE_NUMBER.match(stripped))
        or bool(ALL_CAPS.match(stripped))
    )


def gender_section_from_text(text: str) -> Optional[str]:
    """Audience section implied by text ("Men's Jeans" -> "men")."""
    lower_text = text.lower()
    for section in ('women', 'men', 'boys', 'girls', 'kids', 'baby'):
        if re.search(rf"(?<![a-z]){section}(?:'?s)?(?![a-z])", lower_text):
            return section
    return None
