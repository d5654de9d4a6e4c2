"""Single-consumer ingestion loop.

Drains the completion channel in arrival order, persists each Story and
feeds links that were never seen before back into the frontier. This loop
is the only writer of the dedup set once the seed phase is over.

The known-check and the frontier push are not atomic with a seed submitted
concurrently from outside: two near-simultaneous submissions of one URL can
both be enqueued.
"""

import logging
import threading
from typing import Iterable, List, Optional

from .channel import Completion, CompletionChannel
from .errors import ArchiveError
from .frontier import KnownUrls, PriorityFrontier
from .stats import CrawlStats
from .story import StoryArchive
from .url_tools import CandidateLink

logger = logging.getLogger(__name__)


class IngestionLoop:

    def __init__(
        self,
        channel: CompletionChannel,
        frontier: PriorityFrontier,
        known_urls: KnownUrls,
        archive: StoryArchive,
        stats: Optional[CrawlStats] = None,
    ):
        """Initialize the ingestion loop.

        Args:
            channel: Completion channel to drain
            frontier: Frontier unseen links are pushed onto
            known_urls: Dedup set; written only from this loop after seeding
            archive: Where extracted stories are persisted
            stats: Shared counters
        """
        self.channel = channel
        self.frontier = frontier
        self.known_urls = known_urls
        self.archive = archive
        self.stats = stats or CrawlStats()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> threading.Thread:
        self._thread = threading.Thread(target=self.run, name="ingest", daemon=True)
        self._thread.start()
        return self._thread

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread:
            self._thread.join(timeout)

    def run(self) -> None:
        for completion in self.channel:
            self.ingest(completion)
        logger.info("Ingestion loop completed.")

    def ingest(self, completion: Completion) -> List[CandidateLink]:
        """Persist one completion and enqueue its unseen links.

        Returns:
            The links that were pushed onto the frontier
        """
        story = completion.story
        if story is not None:
            self._persist(story)
            source = story.uri
        else:
            source = "<submitted>"

        enqueued = self.enqueue(completion.links)
        logger.debug(f"{source} => {[link.url for link in enqueued]}")
        return enqueued

    def enqueue(self, links: Iterable[CandidateLink]) -> List[CandidateLink]:
        enqueued = []
        for link in links:
            if self.known_urls.is_known(link.url):
                self.stats.inc("already_known")
                continue
            self.known_urls.mark_known(link.url)
            self.frontier.push(link.url, link.priority)
            enqueued.append(link)
        self.stats.inc("urls_enqueued", len(enqueued))
        return enqueued

    def _persist(self, story) -> None:
        try:
            self.archive.write(story)
        except (ArchiveError, OSError) as e:
            logger.error(f"did not write {story.uri}: {e}")
            self.stats.inc("archive_errors")
            return
        self.stats.inc("stories_written")
