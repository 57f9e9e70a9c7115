"""Utility modules."""

from .url_utils import URLUtils
from .interaction import (
    Interaction,
    ElementInfo,
    PageContext,
    SessionContext,
    parse_interactions,
)

__all__ = [
    'URLUtils',
    'Interaction',
    'ElementInfo',
    'PageContext',
    'SessionContext',
    'parse_interactions',
]
