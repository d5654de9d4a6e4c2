"""Rule-driven story and link extraction.

Parses one fetched HTML document into a Story plus the permitted,
normalized outbound links, each tagged with whether it continues the
thread being read.
"""

import logging
from typing import Any, FrozenSet, List, Tuple, Union

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import Tag

from .config import ParseRule, ParseRules
from .errors import ExtractionError
from .policy import PermissionEngine
from .story import Story
from .url_tools import (
    CandidateLink,
    is_priority,
    is_supported_scheme,
    normalize_url,
    page_number,
    url_path,
)

logger = logging.getLogger(__name__)

Document = Union[str, bytes, Any]


class StoryExtractor:
    """Extract a Story and candidate links from HTML using configured rules."""

    PARAGRAPH_TAG = "p"

    def __init__(self, rules: ParseRules, policy: PermissionEngine):
        self.rules = rules
        self.policy = policy

    def extract(self, uri: str, document: Document) -> Tuple[Story, FrozenSet[CandidateLink]]:
        """Parse ``document`` fetched from ``uri``.

        Args:
            uri: Request URI the document was fetched from
            document: HTML as str/bytes, or a readable object

        Returns:
            (story, links) where links are permitted CandidateLinks

        Raises:
            ExtractionError: document could not be read or parsed
        """
        soup = self._parse(uri, document)

        heads = soup.find_all("head")
        base = self._base(heads, uri)
        logger.debug(f"base: {base}")

        title = self._title(heads)
        author = self._author(soup)
        logger.debug(f"author: {author}")
        keywords = self._keywords(heads)
        logger.debug(f"keywords: {keywords}")

        links = self._links(soup, base)

        story = Story(
            id=uri,
            story_id=url_path(uri),
            page=page_number(uri),
            uri=uri,
            story=tuple(self._story(soup)),
            keywords=tuple(keywords),
            title=title,
            author=author,
        )

        logger.info(f"SUCCESS {uri}")

        return story, frozenset(CandidateLink(link, is_priority(uri, link)) for link in links)

    def _parse(self, uri: str, document: Document) -> BeautifulSoup:
        try:
            if hasattr(document, "read"):
                document = document.read()
            return BeautifulSoup(document, "html.parser")
        except (OSError, UnicodeDecodeError, TypeError, ParserRejectedMarkup) as e:
            raise ExtractionError(f"cannot read document from {uri}: {e}") from e

    @staticmethod
    def _find_by_rule(soup: BeautifulSoup, rule: ParseRule) -> List[Tag]:
        return soup.find_all(rule.name, class_=rule.class_)

    def _base(self, heads: List[Tag], uri: str) -> str:
        for head in heads:
            base = head.find("base", href=True)
            if base is not None:
                try:
                    return normalize_url(base["href"].strip(), uri)
                except ValueError:
                    logger.debug(f"unparseable base {base['href']!r} on {uri}")
                    return uri
        return uri

    def _title(self, heads: List[Tag]) -> str:
        texts = [title.get_text() for head in heads for title in head.find_all("title")]
        return " ".join(texts).strip()

    def _author(self, soup: BeautifulSoup) -> str:
        seen = set()
        names = []
        for rule in self.rules.author:
            for node in self._find_by_rule(soup, rule):
                text = node.get_text()
                if text not in seen:
                    seen.add(text)
                    names.append(text)
        return " ".join(names).strip()

    def _keywords(self, heads: List[Tag]) -> List[str]:
        # malformed content keeps its empty pieces
        content = " ".join(
            " ".join(meta.get("content", "") for meta in head.find_all("meta", attrs={"name": "keywords"}))
            for head in heads
        )
        return [piece.strip() for piece in content.split(",")]

    def _story(self, soup: BeautifulSoup) -> List[str]:
        lines: List[str] = []
        for rule in self.rules.story:
            for node in self._find_by_rule(soup, rule):
                for paragraph in node.find_all(self.PARAGRAPH_TAG):
                    # only "\n" separates lines; a trailing "\r" is dropped
                    for line in paragraph.get_text().split("\n"):
                        if line.endswith("\r"):
                            line = line[:-1]
                        if line:
                            lines.append(line)
        return lines

    def _links(self, soup: BeautifulSoup, base: str) -> FrozenSet[str]:
        links = set()
        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            try:
                link = normalize_url(href, base)
            except ValueError:
                logger.debug(f"unparseable link {href!r} on {base}")
                continue
            if not is_supported_scheme(link):
                continue
            if self.policy.permitted(link):
                links.add(link)
        return frozenset(links)

