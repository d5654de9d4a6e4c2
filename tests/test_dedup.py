import unittest

from storycrawler.errors import ConfigError
from storycrawler.frontier import ExactKnownUrls, HashedKnownUrls, build_known_urls


CORPUS = [
    "https://a.com/",
    "https://a.com/s/1",
    "https://a.com/s/1?page=2",
    "https://a.com/s/1?page=3",
    "https://a.com/s/2",
    "https://b.com/s/1",
    "http://a.com/s/1",
    "https://a.com/S/1",
    "https://a.com/s/1/",
    "https://a.com/c/sea?page=10",
]


class KnownUrlsTests(unittest.TestCase):
    def _check_strategy(self, known) -> None:
        marked = CORPUS[::2]
        unmarked = CORPUS[1::2]
        for url in marked:
            known.mark_known(url)

        for _ in range(3):
            for url in marked:
                self.assertTrue(known.is_known(url), url)
                self.assertIn(url, known)
        for url in unmarked:
            self.assertFalse(known.is_known(url), url)
            self.assertNotIn(url, known)
        self.assertEqual(len(marked), len(known))

    def test_exact_strategy(self) -> None:
        self._check_strategy(ExactKnownUrls())

    def test_hashed_strategy_has_no_false_positives_on_corpus(self) -> None:
        self._check_strategy(HashedKnownUrls())

    def test_marking_twice_is_harmless(self) -> None:
        for known in (ExactKnownUrls(), HashedKnownUrls()):
            known.mark_known("https://a.com/s/1")
            known.mark_known("https://a.com/s/1")
            self.assertEqual(1, len(known))

    def test_build_known_urls_selects_strategy(self) -> None:
        self.assertIsInstance(build_known_urls("exact"), ExactKnownUrls)
        self.assertIsInstance(build_known_urls("hashed"), HashedKnownUrls)
        with self.assertRaises(ConfigError):
            build_known_urls("bloom")


if __name__ == "__main__":
    unittest.main()
