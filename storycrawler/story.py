"""Story records and the dated on-disk archive.

Each successfully extracted page becomes one JSON file under
``<root>/archive.<YYYY.MM.DD>/<host>[/<author>]<path>[?<query>].json``.
"""

import json
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlsplit

from .errors import ArchiveError

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".json"


@dataclass(frozen=True)
class Story:
    """Content extracted from one fetched page."""
    id: str
    story_id: str
    page: int
    uri: str
    story: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    title: str = ""
    author: str = ""

    def is_empty(self) -> bool:
        return not self.story

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record['story'] = list(self.story)
        record['keywords'] = list(self.keywords)
        return record

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Story':
        return cls(
            id=data.get('id', data.get('_id', '')),
            story_id=data['story_id'],
            page=int(data['page']),
            uri=data['uri'],
            story=tuple(data.get('story', ())),
            keywords=tuple(data.get('keywords', ())),
            title=data.get('title', ''),
            author=data.get('author', ''),
        )


def archive_stamp(start_time: datetime) -> str:
    return f"archive.{start_time:%Y.%m.%d}"


class StoryArchive:
    """Writes Story records below a root stamped with the crawl start date."""

    def __init__(self, root: str, start_time: Optional[datetime] = None):
        """Initialize story archive.

        Args:
            root: Base directory of the archive
            start_time: Crawl start; its date names the archive directory
        """
        self.start_time = start_time or datetime.now()
        self.root = Path(root).resolve() / archive_stamp(self.start_time)

        # Statistics
        self.stories_written = 0

        logger.info(f"Story archive initialized: {self.root}")

    def relative_name(self, story: Story) -> str:
        """Archive name of ``story`` relative to the root, without extension."""
        parts = urlsplit(story.uri)
        name = parts.hostname or "unknown"
        if story.author:
            name += "/" + story.author
        name += parts.path
        if parts.query:
            name += "?" + parts.query
        return name

    def path_for(self, story: Story) -> Path:
        """Get file path for a story.

        Raises:
            ArchiveError: if the name is not a valid path, resolves to a
                directory or leaves the root
        """
        name = self.relative_name(story)
        if name.endswith("/"):
            raise ArchiveError(f"unwritable URI {story.uri}")

        try:
            path = (self.root / (name + ARCHIVE_EXTENSION)).resolve()
        except ValueError as e:
            # e.g. a NUL byte in the extracted author
            raise ArchiveError(f"invalid archive name for {story.uri}: {e}") from e
        if self.root not in path.parents:
            raise ArchiveError(f"archive path escapes root for {story.uri}")
        return path

    def write(self, story: Story) -> Path:
        """Persist ``story`` as JSON and return the written path.

        Raises:
            ArchiveError: empty story or invalid path
            OSError: filesystem failure
        """
        if story.is_empty():
            raise ArchiveError(f"empty story {story.uri}")

        path = self.path_for(story)
        logger.debug(f"{story.uri} => {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(story.to_json(), encoding="utf-8")
        self.stories_written += 1
        return path
