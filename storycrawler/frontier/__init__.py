"""Frontier queue and URL deduplication."""

from .dedup import ExactKnownUrls, HashedKnownUrls, KnownUrls, build_known_urls
from .frontier import FetchCommand, PriorityFrontier, Steal, StopCommand

__all__ = [
    'ExactKnownUrls',
    'FetchCommand',
    'HashedKnownUrls',
    'KnownUrls',
    'PriorityFrontier',
    'Steal',
    'StopCommand',
    'build_known_urls',
]
