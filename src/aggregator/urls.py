#!/usr/bin/env python3
"""
URL validation and canonicalization helpers.
"""

import logging
import urllib.parse
from typing import Optional

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048

ALLOWED_SCHEMES = {'http', 'https'}

TRACKING_PARAMS = {
    'utm_source', 'utm_medium', 'utm_campaign', 'utm_content', 'utm_term',
    'fbclid', 'gclid', 'ref', 'source'
}


def is_valid_url(url: Optional[str]) -> bool:
    """Check that a URL is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str) or len(url) > MAX_URL_LENGTH:
        return False

    try:
        parsed = urllib.parse.urlparse(url.strip())
    except ValueError as e:
        logger.debug(f"Error parsing URL {url}: {e}")
        return False

    return parsed.scheme.lower() in ALLOWED_SCHEMES and bool(parsed.hostname)


def canonicalize_url(url: str) -> str:
    """
    Normalize an article URL so re-fetches of the same page compare equal.

    Drops the fragment and tracking parameters and lowercases scheme and host.
    Path and remaining query are kept as-is since they are case-sensitive on
    most servers.
    """
    url = url.strip()
    parsed = urllib.parse.urlsplit(url)

    params = urllib.parse.parse_qsl(parsed.query, keep_blank_values=True)
    clean_params = [(key, value) for key, value in params if key.lower() not in TRACKING_PARAMS]
    query = urllib.parse.urlencode(clean_params)

    netloc = parsed.netloc.lower()
    path = parsed.path or '/'

    return urllib.parse.urlunsplit((parsed.scheme.lower(), netloc, path, query, ''))


def domain_of(url: str) -> str:
    """Return the lowercase host of a URL (empty string if there is none)."""
    try:
        return (urllib.parse.urlparse(url).hostname or '').lower()
    except ValueError:
        return ''


def resolve_url(base_url: str, href: str) -> str:
    """Resolve a possibly relative link against the page it was found on."""
    return urllib.parse.urljoin(base_url, href.strip())
