"""Fetch/extract worker thread.

Each worker steals commands from the shared frontier, fetches the page,
runs the extractor and publishes the result on the completion channel.
Per-URL failures are logged and the URL is dropped; a closed channel ends
the worker.
"""

import logging
import threading
import time
from typing import Optional

import httpx

from .channel import Completion, CompletionChannel
from .errors import ChannelClosed, ExtractionError
from .extractor import StoryExtractor
from .fetcher import PageFetcher
from .frontier import FetchCommand, PriorityFrontier, StopCommand
from .stats import CrawlStats

logger = logging.getLogger(__name__)


class Worker(threading.Thread):

    def __init__(
        self,
        index: int,
        frontier: PriorityFrontier,
        channel: CompletionChannel,
        fetcher: PageFetcher,
        extractor: StoryExtractor,
        stats: Optional[CrawlStats] = None,
        idle_sleep_sec: float = 0.05,
    ):
        """Initialize a worker thread.

        Args:
            index: Worker number, used in the thread name
            frontier: Shared frontier to steal commands from
            channel: Completion channel results are published on
            fetcher: HTTP fetcher owned by this worker; closed on exit
            extractor: Extractor shared by all workers
            stats: Shared counters
            idle_sleep_sec: Pause after finding the frontier empty
        """
        super().__init__(name=f"worker-{index}", daemon=True)
        self.frontier = frontier
        self.channel = channel
        self.fetcher = fetcher
        self.extractor = extractor
        self.stats = stats or CrawlStats()
        self.idle_sleep_sec = idle_sleep_sec

    def run(self) -> None:
        try:
            while True:
                steal = self.frontier.steal()
                if steal.is_retry:
                    continue
                if steal.is_empty:
                    time.sleep(self.idle_sleep_sec)
                    continue
                if isinstance(steal.command, StopCommand):
                    break
                if not self.process(steal.command):
                    return
        finally:
            self.fetcher.close()
        logger.info(f"{self.name}: done")

    def process(self, command: FetchCommand) -> bool:
        """Fetch, extract and publish one URL.

        Returns:
            False when the completion channel is closed and the worker must exit
        """
        url = command.url
        logger.debug(f"{self.name}: received {url}")

        try:
            response = self.fetcher.fetch(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"{url} => {e}")
            self.stats.inc("fetch_errors")
            return True
        self.stats.inc("urls_fetched")

        try:
            story, links = self.extractor.extract(url, response.content)
        except ExtractionError as e:
            logger.error(f"{url} => {e}")
            self.stats.inc("extract_errors")
            return True
        self.stats.inc("links_extracted", len(links))

        try:
            self.channel.send(Completion(story, links))
        except ChannelClosed:
            logger.error(f"{self.name}: completion channel closed, dropping {url} and exiting")
            return False
        return True
