"""Name normalisation and candidate keys for fuzzy entity dedup.

A stored name matches an incoming one when any candidate key of the
incoming name is a substring of the stored name's normalised key.

>>> normalize("Men's Shirts")
'mens shirts'
>>> candidate_keys("mens shirt")
['mens shirt', 'shirt', 'mens shirts', 'shirts']
"""

import re
from typing import List, Optional

from ..classifiers.text_heuristics import gender_section_from_text


GENDERED_PREFIX = re.compile(r"^(men'?s|women'?s|kids?'?s?|boys'?|girls'?)\s+", re.IGNORECASE)
SEASONAL_SUFFIX = re.compile(r'\s+(sale|clearance|new)$', re.IGNORECASE)


def normalize(name: Optional[str]) -> str:
    """Lower-case, drop apostrophes and punctuation, collapse whitespace."""
    if not name:
        return ''
    key = name.lower().replace("'", '').replace('’', '')
    key = re.sub(r'[^a-z0-9\s&-]', ' ', key)
    return re.sub(r'\s+', ' ', key).strip()


def toggle_plural(key: str) -> str:
    return key[:-1] if key.endswith('s') else key + 's'


def candidate_keys(name: Optional[str]) -> List[str]:
    """
    Ordered lookup keys for a category name.

    The name itself first, then the name without a gendered prefix or
    sale/clearance/new suffix, then singular/plural toggles of both.
    """
    base = normalize(name)
    if not base:
        return []

    stripped = SEASONAL_SUFFIX.sub('', GENDERED_PREFIX.sub('', name.strip()))
    stripped = normalize(stripped)

    keys = [base]
    if stripped and stripped != base:
        keys.append(stripped)
    for key in list(keys):
        keys.append(toggle_plural(key))

    unique = []
    for key in keys:
        if key and key not in unique:
            unique.append(key)
    return unique


def sections_compatible(name: str, other: str) -> bool:
    """False when the two names name different audiences ("Men's" vs "Women's")."""
    section = gender_section_from_text(name)
    other_section = gender_section_from_text(other)
    return section is None or other_section is None or section == other_section


def names_match(incoming: str, stored: str) -> bool:
    """Incoming name matches a stored name under any candidate key."""
    return first_match(incoming, [stored]) is not None


def first_match(incoming: str, stored_names: List[str]) -> Optional[int]:
    """
    Index of the stored name matched by the earliest candidate key.

    Keys are tried in order and each key is tested against every stored
    name, so the exact name beats a looser variation on an earlier entry.
    """
    stored_keys = [
        normalize(stored) if sections_compatible(incoming, stored) else ''
        for stored in stored_names
    ]
    for key in candidate_keys(incoming):
        for index, stored_key in enumerate(stored_keys):
            if stored_key and key in stored_key:
                return index
    return None
