"""
URL validation helpers for bulkshot.

These helpers never raise on malformed input; they answer yes/no questions
that the ingestion layer turns into parse results.
"""

import re
from typing import Optional
from urllib.parse import urlsplit

from bulkshot.core.logging import get_logger

logger = get_logger(__name__)


CAPTURABLE_SCHEMES = ("http", "https")

# "scheme://" at the start of a candidate
EXPLICIT_SCHEME_RE = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*)://")

# Characters that can never appear in a hostname we hand to the browser
_BAD_HOST_CHARS_RE = re.compile(r"[\s/\\?#@<>\"{}|^`%\[\]]")
_IPV6_RE = re.compile(r"^[0-9A-Fa-f:.]+$")


def explicit_scheme(candidate: str) -> Optional[str]:
    """
    Return the lowercased scheme if the candidate starts with "scheme://".

    Example:
        >>> explicit_scheme("HTTPS://example.com")
        'https'
        >>> explicit_scheme("example.com:8080/x") is None
        True
    """
    m = EXPLICIT_SCHEME_RE.match(candidate or "")
    return m.group(1).lower() if m else None


def _valid_host(netloc_host: Optional[str], raw_netloc: str) -> bool:
    if not netloc_host:
        return False
    if raw_netloc.startswith("[") or ":" in netloc_host:
        return bool(_IPV6_RE.match(netloc_host))
    if _BAD_HOST_CHARS_RE.search(netloc_host):
        return False
    labels = netloc_host.split(".")
    # a trailing dot (fully-qualified form) leaves one empty label at the end
    if labels[-1] == "" and len(labels) > 1:
        labels = labels[:-1]
    return all(labels)


def validate_url(url: str) -> bool:
    """
    Check that a string is an absolute http(s) URL with a usable host.

    Args:
        url: Candidate URL (scheme required)

    Returns:
        True if the browser can be pointed at it

    Example:
        >>> validate_url("https://example.com/a/b")
        True
        >>> validate_url("https://not a url")
        False
        >>> validate_url("ftp://example.com")
        False
    """
    if not url or any(c.isspace() for c in url):
        return False

    if explicit_scheme(url) not in CAPTURABLE_SCHEMES:
        return False

    try:
        parts = urlsplit(url)
        # .port raises ValueError for non-numeric or out-of-range ports
        parts.port
    except ValueError:
        return False

    netloc = parts.netloc.rsplit("@", 1)[-1]
    return _valid_host(parts.hostname, netloc)


def hostname_of(url: str) -> str:
    """
    Extract the hostname (no port, no credentials) from a URL.

    Returns an empty string when the URL has no host.

    Example:
        >>> hostname_of("https://Example.COM:8443/jobs")
        'example.com'
    """
    try:
        return urlsplit(url).hostname or ""
    except ValueError:
        return ""


def path_of(url: str) -> str:
    """
    Extract the path component of a URL ("" when absent).

    Example:
        >>> path_of("https://example.com/a/b?x=1")
        '/a/b'
    """
    try:
        return urlsplit(url).path
    except ValueError:
        return ""


def lowercase_scheme(url: str) -> str:
    """
    Lowercase the scheme of an absolute URL, leaving the rest untouched.

    Example:
        >>> lowercase_scheme("HTTPS://Example.com/Path")
        'https://Example.com/Path'
    """
    scheme = explicit_scheme(url)
    if not scheme:
        return url
    return scheme + url[len(scheme):]
