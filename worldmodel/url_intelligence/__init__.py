"""URL structure analysis."""

from .url_patterns import URLPatternMatcher, URLAnalysis, DomainURLPatterns

__all__ = ['URLPatternMatcher', 'URLAnalysis', 'DomainURLPatterns']
