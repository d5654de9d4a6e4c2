"""
Thread-safe crawl counters
"""

import threading
import time
from collections import Counter
from typing import Any, Dict


class CrawlStats:
    """
    Counters shared by workers and the ingestion loop.
    """

    KEYS = (
        "urls_fetched",
        "fetch_errors",
        "extract_errors",
        "links_extracted",
        "stories_written",
        "archive_errors",
        "urls_enqueued",
        "already_known",
        "seeds_submitted",
    )

    def __init__(self):
        self._lock = threading.Lock()
        self.counters = Counter({key: 0 for key in self.KEYS})
        self.start_time = time.time()

    def inc(self, key: str, n: int = 1):
        with self._lock:
            self.counters[key] += n

    def get(self, key: str) -> int:
        with self._lock:
            return self.counters[key]

    def get_stats(self) -> Dict[str, Any]:
        """Get current counters plus runtime"""
        with self._lock:
            stats = dict(self.counters)
        stats['runtime_seconds'] = int(time.time() - self.start_time)
        return stats

    def get_summary(self) -> str:
        """Get formatted summary of counters"""
        lines = ["=== Crawler Statistics ==="]
        for key, value in sorted(self.get_stats().items()):
            lines.append(f"  {key}: {value:,}")
        return "\n".join(lines)
