"""
URL and hostname utility functions for request analysis.
"""

from __future__ import annotations

from urllib import parse

INVALID_URL_HOSTNAME = "invalid-url"

_ALLOWED_SCHEMES = frozenset(["http", "https"])


def extract_hostname(url: str) -> str:
    """Extract the hostname from a URL string.

    Malformed URLs, and URLs without a host (``about:blank``,
    ``data:`` URIs), map to ``"invalid-url"`` rather than raising.
    """
    try:
        parsed = parse.urlsplit(url)
        hostname = parsed.hostname
    except ValueError:
        return INVALID_URL_HOSTNAME
    if not parsed.scheme or not hostname:
        return INVALID_URL_HOSTNAME
    return hostname


def is_absolute_url(url: object) -> bool:
    """Return whether *url* parses as an absolute URL with a scheme and host."""
    if not isinstance(url, str) or not url.strip():
        return False
    try:
        parsed = parse.urlsplit(url)
        # Accessing .port validates the port component.
        _ = parsed.port
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_http_url(url: object) -> bool:
    """Return whether *url* is an absolute ``http://`` or ``https://`` URL."""
    if not is_absolute_url(url):
        return False
    return parse.urlsplit(str(url)).scheme.lower() in _ALLOWED_SCHEMES


def hostname_matches(url: str, domain: str) -> bool:
    """Return whether the hostname of *url* is exactly *domain*."""
    hostname = extract_hostname(url)
    return hostname != INVALID_URL_HOSTNAME and hostname == domain
