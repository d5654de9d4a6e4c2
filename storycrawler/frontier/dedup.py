"""In-memory URL deduplication.

Two interchangeable strategies behind one interface:
- ExactKnownUrls keeps every normalized URL verbatim (no false positives)
- HashedKnownUrls keeps a 64-bit digest per URL (less memory, a small
  collision risk accepted for long high-volume crawls)

Neither evicts; the set grows for the lifetime of the process. Only the
seed phase and the ingestion loop write to it, so it carries no lock.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Set

from ..errors import ConfigError


class KnownUrls(ABC):
    """Membership over normalized URLs."""

    @abstractmethod
    def mark_known(self, url: str) -> None:
        """Record ``url`` as known."""

    @abstractmethod
    def is_known(self, url: str) -> bool:
        """Return True if ``url`` was marked known before."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.is_known(url)


class ExactKnownUrls(KnownUrls):

    def __init__(self):
        self._known: Set[str] = set()

    def mark_known(self, url: str) -> None:
        self._known.add(url)

    def is_known(self, url: str) -> bool:
        return url in self._known

    def __len__(self) -> int:
        return len(self._known)


class HashedKnownUrls(KnownUrls):

    DIGEST_SIZE = 8

    def __init__(self):
        self._known: Set[int] = set()

    def _url_key(self, url: str) -> int:
        """Compute a 64-bit key for URL."""
        digest = hashlib.blake2b(url.encode("utf-8"), digest_size=self.DIGEST_SIZE).digest()
        return int.from_bytes(digest, "big")

    def mark_known(self, url: str) -> None:
        self._known.add(self._url_key(url))

    def is_known(self, url: str) -> bool:
        return self._url_key(url) in self._known

    def __len__(self) -> int:
        return len(self._known)


STRATEGIES = {
    "exact": ExactKnownUrls,
    "hashed": HashedKnownUrls,
}


def build_known_urls(strategy: str) -> KnownUrls:
    try:
        return STRATEGIES[strategy]()
    except KeyError:
        raise ConfigError(f"Unknown dedup strategy: {strategy!r}") from None
