import time
import unittest
from datetime import datetime
from pathlib import Path
from tempfile import TemporaryDirectory

import httpx

from storycrawler.config import ArchiveConfig, CrawlConfig, DedupConfig, ParseRule, ParseRules
from storycrawler.errors import ChannelClosed
from storycrawler.fetcher import PageFetcher
from storycrawler.service import CrawlerService


FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "html"
STORY_HTML = (FIXTURE_ROOT / "story_page.html").read_text(encoding="utf-8")


def make_config(archive_root: str, **overrides) -> CrawlConfig:
    values = dict(
        workers=2,
        seeds=["https://a.com/s/1"],
        user_agent="TestAgent/1.0",
        idle_sleep_sec=0.001,
        rules=ParseRules(
            author=[ParseRule("span", "author")],
            story=[ParseRule("div", "b-story-body")],
        ),
        hosts={"a.com": True},
        dedup=DedupConfig(strategy="hashed"),
        archive=ArchiveConfig(root=archive_root),
    )
    values.update(overrides)
    return CrawlConfig(**values)


class FakeSite:
    def __init__(self):
        self.requested = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requested.append(str(request.url))
        if request.url.path == "/s/1" and not request.url.query:
            return httpx.Response(200, text=STORY_HTML)
        return httpx.Response(404, text="")

    def fetcher_factory(self, config: CrawlConfig) -> PageFetcher:
        return PageFetcher.from_config(config, transport=httpx.MockTransport(self))


def wait_for(predicate, timeout: float = 10.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class CrawlerServiceTests(unittest.TestCase):
    def test_crawl_persists_story_and_follows_thread_links(self) -> None:
        with TemporaryDirectory() as tmpdir:
            site = FakeSite()
            service = CrawlerService(
                make_config(tmpdir),
                start_time=datetime(2024, 3, 9),
                fetcher_factory=site.fetcher_factory,
            )
            service.start()
            try:
                self.assertTrue(wait_for(lambda: service.stats.get("urls_fetched") >= 3))
                self.assertTrue(wait_for(lambda: service.stats.get("archive_errors") >= 2))
            finally:
                service.stop(timeout=5)

            self.assertEqual(
                sorted([
                    "https://a.com/s/1",
                    "https://a.com/s/1?page=2",
                    "https://a.com/s/1?page=3",
                ]),
                sorted(site.requested),
            )
            written = list((Path(tmpdir) / "archive.2024.03.09").rglob("*.json"))
            self.assertEqual(1, len(written))
            self.assertEqual(1, service.stats.get("stories_written"))
            self.assertEqual(2, service.stats.get("urls_enqueued"))
            self.assertFalse(service.is_running())

    def test_submit_injects_priority_seed(self) -> None:
        with TemporaryDirectory() as tmpdir:
            site = FakeSite()
            service = CrawlerService(
                make_config(tmpdir, seeds=[]),
                fetcher_factory=site.fetcher_factory,
            )
            service.start()
            try:
                service.submit("https://a.com/s/1#top")
                self.assertTrue(wait_for(lambda: service.stats.get("stories_written") == 1))
                snapshot = service.stats_snapshot()
            finally:
                service.stop(timeout=5)

            self.assertEqual(1, snapshot["seeds_submitted"])
            self.assertEqual(2, snapshot["workers_alive"])
            self.assertIn("https://a.com/s/1", site.requested)

            with self.assertRaises(ChannelClosed):
                service.submit("https://a.com/s/2")

    def test_seed_skips_duplicates(self) -> None:
        with TemporaryDirectory() as tmpdir:
            service = CrawlerService(make_config(tmpdir))

            added = service.seed(["https://a.com/s/1", "https://A.com/s/1#x", "https://a.com/s/2"])

            self.assertEqual(2, added)
            self.assertEqual(2, service.frontier.priority_size())
            self.assertEqual(2, len(service.known_urls))

    def test_stop_before_start_is_noop(self) -> None:
        with TemporaryDirectory() as tmpdir:
            service = CrawlerService(make_config(tmpdir))
            service.stop()
            self.assertFalse(service.is_running())


if __name__ == "__main__":
    unittest.main()
