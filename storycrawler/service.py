import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .channel import Completion, CompletionChannel
from .config import CrawlConfig
from .extractor import StoryExtractor
from .fetcher import PageFetcher
from .frontier import KnownUrls, PriorityFrontier, build_known_urls
from .ingest import IngestionLoop
from .policy import PermissionEngine
from .stats import CrawlStats
from .story import StoryArchive
from .url_tools import CandidateLink, normalize_url
from .worker import Worker

logger = logging.getLogger(__name__)


class CrawlerService:
    """Wires the frontier, worker pool and ingestion loop together."""

    def __init__(
        self,
        config: CrawlConfig,
        start_time: Optional[datetime] = None,
        fetcher_factory: Optional[Callable[[CrawlConfig], PageFetcher]] = None,
    ):
        self.config = config
        self.start_time = start_time or datetime.now()
        self._fetcher_factory = fetcher_factory or PageFetcher.from_config

        self.stats = CrawlStats()
        self.frontier = PriorityFrontier()
        self.known_urls: KnownUrls = build_known_urls(config.dedup.strategy)
        self.channel = CompletionChannel()
        self.policy = PermissionEngine.from_config(config)
        self.extractor = StoryExtractor(config.rules, self.policy)
        self.archive = StoryArchive(config.archive.root, self.start_time)
        self.ingestion = IngestionLoop(
            self.channel, self.frontier, self.known_urls, self.archive, self.stats
        )
        self.workers: List[Worker] = []

        self._running = False

    def seed(self, seeds: List[str]) -> int:
        """Mark seeds known and queue them as priority work.

        Must run before ``start``: it writes the dedup set from the calling
        thread.
        """
        if self._running:
            raise RuntimeError("seed() must be called before start()")

        added = 0
        for seed in seeds:
            url = normalize_url(seed)
            if self.known_urls.is_known(url):
                logger.info(f"Duplicate seed skipped: {url}")
                continue
            self.known_urls.mark_known(url)
            self.frontier.push(url, True)
            added += 1
            logger.info(f"Added seed: {url}")
        return added

    def start(self) -> None:
        """Seed the frontier, then start the ingestion loop and worker pool.

        Each worker gets its own fetcher from the fetcher factory.
        """
        if self._running:
            logger.warning("Crawler already running")
            return

        logger.info(f"Seeding frontier with {len(self.config.seeds)} URLs...")
        self.seed(self.config.seeds)

        self._running = True
        self.ingestion.start()
        for index in range(self.config.workers):
            worker = Worker(
                index,
                self.frontier,
                self.channel,
                self._fetcher_factory(self.config),
                self.extractor,
                self.stats,
                self.config.idle_sleep_sec,
            )
            worker.start()
            self.workers.append(worker)

        logger.info(
            f"Crawler started: {len(self.workers)} workers, "
            f"frontier size {self.frontier.size()}, archive {self.archive.root}"
        )

    def submit(self, url: str) -> None:
        """Inject a seed as a priority link, bypassing the worker pool.

        Raises:
            ChannelClosed: the crawler is shutting down
        """
        link = CandidateLink(normalize_url(url), True)
        self.channel.send(Completion(None, frozenset({link})))
        self.stats.inc("seeds_submitted")
        logger.info(f"Submitted seed: {link.url}")

    def stats_snapshot(self) -> Dict[str, Any]:
        """Get crawl counters plus current queue and pool sizes.

        Returns:
            Dictionary of counters, frontier tier sizes, known URL count,
            pending completions and live workers
        """
        snapshot = self.stats.get_stats()
        snapshot.update({
            "frontier_priority": self.frontier.priority_size(),
            "frontier_normal": self.frontier.normal_size(),
            "known_urls": len(self.known_urls),
            "completions_pending": self.channel.pending(),
            "workers_alive": self.workers_alive(),
        })
        return snapshot

    def is_running(self) -> bool:
        return self._running

    def workers_alive(self) -> int:
        return sum(1 for w in self.workers if w.is_alive())

    def wait(self, timeout: Optional[float] = None) -> None:
        """Join the worker pool; a short timeout keeps Ctrl-C responsive."""
        for worker in self.workers:
            worker.join(timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Cooperative shutdown.

        Queues one stop command per worker, waits for the workers, then
        closes the completion channel and lets the ingestion loop drain it.
        A worker blocked in a fetch is only waited for up to ``timeout``.
        """
        if not self._running:
            return
        logger.info("Stopping crawler...")

        for _ in self.workers:
            self.frontier.push_stop()
        for worker in self.workers:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning(f"{worker.name} still busy after {timeout}s")

        self.channel.close()
        self.ingestion.join(timeout)
        self._running = False

        logger.info(self.stats.get_summary())
        logger.info("Crawler stopped successfully")
