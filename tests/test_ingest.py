import unittest
from datetime import datetime
from pathlib import Path
from tempfile import TemporaryDirectory

from storycrawler.channel import Completion, CompletionChannel
from storycrawler.config import ParseRule, ParseRules
from storycrawler.extractor import StoryExtractor
from storycrawler.frontier import ExactKnownUrls, HashedKnownUrls, PriorityFrontier
from storycrawler.ingest import IngestionLoop
from storycrawler.policy import PermissionEngine
from storycrawler.story import Story, StoryArchive
from storycrawler.url_tools import CandidateLink


FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "html"
START = datetime(2024, 3, 9)


def drain(frontier: PriorityFrontier):
    commands = []
    while True:
        steal = frontier.steal()
        if steal.is_empty:
            return commands
        if steal.is_success:
            commands.append(steal.command)


class IngestionLoopTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.channel = CompletionChannel()
        self.frontier = PriorityFrontier()
        self.known = ExactKnownUrls()
        self.archive = StoryArchive(self._tmp.name, START)
        self.loop = IngestionLoop(self.channel, self.frontier, self.known, self.archive)

    def test_end_to_end_single_thread_page(self) -> None:
        extractor = StoryExtractor(
            ParseRules(
                author=[ParseRule("span", "author")],
                story=[ParseRule("div", "b-story-body")],
            ),
            PermissionEngine({"a.com": True}, []),
        )
        html = (FIXTURE_ROOT / "story_page.html").read_text(encoding="utf-8")
        seed = "https://a.com/s/1"
        self.known.mark_known(seed)

        story, links = extractor.extract(seed, html)
        self.assertEqual(2, len(links))
        first = self.loop.ingest(Completion(story, links))
        second = self.loop.ingest(Completion(*extractor.extract(seed, html)))

        self.assertEqual(2, len(first))
        self.assertEqual([], second)
        written = list(self.archive.root.rglob("*.json"))
        self.assertEqual(1, len(written))
        self.assertEqual(self.archive.root / "a.com" / "Jane Doe" / "s" / "1.json", written[0])
        self.assertEqual(
            {
                ("https://a.com/s/1?page=2", True),
                ("https://a.com/s/1?page=3", True),
            },
            {(c.url, c.priority) for c in drain(self.frontier)},
        )
        self.assertNotIn("https://b.com/elsewhere", self.known)

    def test_archive_failure_does_not_drop_links(self) -> None:
        empty = Story(id="https://a.com/s/1", story_id="/s/1", page=1, uri="https://a.com/s/1")
        links = frozenset({CandidateLink("https://a.com/s/2", False)})

        enqueued = self.loop.ingest(Completion(empty, links))

        self.assertEqual(list(links), enqueued)
        self.assertEqual(1, self.loop.stats.get("archive_errors"))
        self.assertEqual(0, self.loop.stats.get("stories_written"))
        self.assertEqual(["https://a.com/s/2"], [c.url for c in drain(self.frontier)])

    def test_unarchivable_author_keeps_loop_running(self) -> None:
        extractor = StoryExtractor(
            ParseRules(
                author=[ParseRule("span", "author")],
                story=[ParseRule("div", "b-story-body")],
            ),
            PermissionEngine({"a.com": True}, []),
        )
        html = (
            "<html><body><span class='author'>Jane\x00Doe</span>"
            "<div class='b-story-body'><p>text</p></div>"
            "<a href='/s/1?page=2'>2</a></body></html>"
        )
        story, links = extractor.extract("https://a.com/s/1", html)
        self.assertIn("\x00", story.author)

        self.channel.send(Completion(story, links))
        self.channel.send(Completion(None, frozenset({CandidateLink("https://a.com/s/5", True)})))
        self.channel.close()
        self.loop.start()
        self.loop.join(timeout=5)

        self.assertEqual(1, self.loop.stats.get("archive_errors"))
        self.assertEqual(2, self.loop.stats.get("urls_enqueued"))
        self.assertEqual(
            {"https://a.com/s/1?page=2", "https://a.com/s/5"},
            {c.url for c in drain(self.frontier)},
        )

    def test_injected_seed_has_no_story(self) -> None:
        links = frozenset({CandidateLink("https://a.com/s/9", True)})

        self.loop.ingest(Completion(None, links))

        self.assertEqual(0, self.loop.stats.get("archive_errors"))
        commands = drain(self.frontier)
        self.assertEqual(1, len(commands))
        self.assertTrue(commands[0].priority)

    def test_known_links_are_not_requeued(self) -> None:
        self.known.mark_known("https://a.com/s/1")
        links = frozenset({
            CandidateLink("https://a.com/s/1", True),
            CandidateLink("https://a.com/s/2", False),
        })

        self.loop.ingest(Completion(None, links))

        self.assertEqual(["https://a.com/s/2"], [c.url for c in drain(self.frontier)])
        self.assertEqual(1, self.loop.stats.get("already_known"))
        self.assertIn("https://a.com/s/2", self.known)

    def test_run_drains_channel_until_closed(self) -> None:
        loop = IngestionLoop(self.channel, self.frontier, HashedKnownUrls(), self.archive)
        for i in range(5):
            self.channel.send(Completion(None, frozenset({CandidateLink(f"https://a.com/s/{i}", False)})))
        self.channel.send(Completion(None, frozenset({CandidateLink("https://a.com/s/0", True)})))
        self.channel.close()

        loop.start()
        loop.join(timeout=5)

        self.assertEqual(5, self.frontier.size())
        self.assertEqual(5, loop.stats.get("urls_enqueued"))
        self.assertEqual(1, loop.stats.get("already_known"))


if __name__ == "__main__":
    unittest.main()
