"""URL utility functions for normalization and request-URI metadata.

Provides the single normalization used everywhere a URL is compared,
deduplicated or queued, plus helpers that read the story id, page number
and priority relation from a request URI.
"""

import re
from typing import NamedTuple, Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit


# Query parameters dropped during normalization
DROPPED_QUERY_KEYS = frozenset({"comments_after"})

SUPPORTED_SCHEMES = ("http", "https")

# Request paths whose same-path links are pagination of one thread
THREAD_PATH_PREFIX = "/s/"

_DIGITS_RE = re.compile(r"[0-9]+")


class CandidateLink(NamedTuple):
    url: str
    priority: bool


def normalize_url(url: str, base: Optional[str] = None) -> str:
    """Normalize a URL for consistent comparison and deduplication.

    Steps:
    1. Resolve against ``base`` when given
    2. Lower-case scheme and host, empty path becomes "/"
    3. Remove fragment
    4. Remove every ``comments_after`` query pair; keep all others in order

    Normalizing an already normalized URL returns it unchanged.
    """
    if base is not None:
        url = urljoin(base, url)

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()

    path = parts.path
    if netloc and not path:
        path = "/"

    query = ""
    if parts.query:
        params = parse_qsl(parts.query, keep_blank_values=True)
        query = urlencode([(k, v) for k, v in params if k not in DROPPED_QUERY_KEYS])

    return urlunsplit((scheme, netloc, path, query, ""))


def is_supported_scheme(url: str) -> bool:
    """Check whether URL uses HTTP(S) and names a host."""
    parts = urlsplit(url)
    return parts.scheme in SUPPORTED_SCHEMES and bool(parts.netloc)


def url_host(url: str) -> Optional[str]:
    return urlsplit(url).hostname


def url_path(url: str) -> str:
    return urlsplit(url).path


def page_number(uri: str) -> int:
    """Page number from the ``page`` query parameter; 1 when absent or not a number."""
    pages = [v for k, v in parse_qsl(urlsplit(uri).query, keep_blank_values=True) if k == "page"]
    if not pages:
        return 1
    # repeated keys: the last one wins
    value = pages[-1]
    if not _DIGITS_RE.fullmatch(value):
        return 1
    return int(value)


def is_priority(source: str, target: str) -> bool:
    """True when ``target`` is pagination of the thread being read at ``source``.

    The request path must start with "/s/" and the link path must be
    textually identical to it; query strings are ignored.
    """
    source_path = url_path(source)
    return source_path.startswith(THREAD_PATH_PREFIX) and source_path == url_path(target)
