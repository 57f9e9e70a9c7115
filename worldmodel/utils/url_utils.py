"""URL manipulation utilities."""

import re
from urllib.parse import urlparse, unquote
from typing import List, Optional


class URLUtils:
    """Utilities for URL manipulation shared by the classifiers and the store."""

    HOST_PATTERN = re.compile(r'https?://([^/?#]+)', re.IGNORECASE)

    @staticmethod
    def extract_domain(url: Optional[str], default: str = 'unknown') -> str:
        """
        Extract the hostname from a URL.

        Args:
            url: Full URL (may be None or malformed)
            default: Value returned when no hostname can be found

        Returns:
            Hostname such as "www2.hm.com"
        """
        if not url:
            return default
        match = URLUtils.HOST_PATTERN.match(url.strip())
        return match.group(1).lower() if match else default

    @staticmethod
    def clean_url(url: str) -> str:
        """
        Clean URL by removing fragments and query parameters.

        Args:
            url: The URL to clean

        Returns:
            Cleaned URL
        """
        return url.split('#')[0].split('?')[0]

    @staticmethod
    def is_same_page(url1: str, url2: str) -> bool:
        """Check if two URLs point at the same page, ignoring query and fragment."""
        return URLUtils.clean_url(url1) == URLUtils.clean_url(url2)

    @staticmethod
    def is_valid_url(url: Optional[str]) -> bool:
        """Check that a URL has a scheme and a host."""
        if not url or url.startswith('#') or url.startswith('mailto:'):
            return False
        try:
            parsed = urlparse(url)
        except ValueError:
            return False
        return bool(parsed.scheme and parsed.netloc)

    @staticmethod
    def path_segments(url: str) -> List[str]:
        """Return the non-empty path segments of a URL."""
        try:
            path = urlparse(url).path
        except ValueError:
            return []
        return [unquote(s) for s in path.split('/') if s]

    @staticmethod
    def get_path_segment(url: str, segment: int = -1) -> str:
        """
        Get a specific path segment from URL.

        Args:
            url: The URL
            segment: Which segment to get (default: last)

        Returns:
            Path segment
        """
        segments = URLUtils.path_segments(url)
        if segments:
            return segments[segment]
        return ""

    @staticmethod
    def slugify(text: str) -> str:
        """Lower-case text, drop punctuation, join words with dashes."""
        slug = re.sub(r'[^a-z0-9\s]', '', text.lower())
        return re.sub(r'\s+', '-', slug.strip())

    @staticmethod
    def format_site_name(domain: str) -> str:
        """Turn a hostname into a display name ("www2.hm.com" -> "Hm")."""
        name = re.sub(r'^(www\d*|secure-www)\.', '', domain)
        name = re.sub(r'\.(com|net|org)$', '', name)
        return ' '.join(part[:1].upper() + part[1:] for part in name.split('.') if part)
