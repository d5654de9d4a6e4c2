"""Completion channel between workers and the ingestion loop."""

import queue
import threading
from dataclasses import dataclass
from typing import FrozenSet, Iterator, Optional

from .errors import ChannelClosed
from .story import Story
from .url_tools import CandidateLink


@dataclass(frozen=True)
class Completion:
    """One extracted page, or an injected seed when ``story`` is None."""
    story: Optional[Story]
    links: FrozenSet[CandidateLink]


_CLOSED = object()


class CompletionChannel:
    """Unbounded multi-producer, single-consumer channel.

    ``send`` never blocks. After ``close`` it raises ChannelClosed; the
    receiver still drains everything sent before the close.
    """

    def __init__(self):
        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    def send(self, completion: Completion) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosed("completion channel is closed")
            self._queue.put_nowait(completion)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def recv(self, timeout: Optional[float] = None) -> Completion:
        """Block for the next completion.

        Raises ChannelClosed once the channel is closed and drained, and
        queue.Empty when ``timeout`` expires first.
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # leave the marker for any later recv
            self._queue.put_nowait(_CLOSED)
            raise ChannelClosed("completion channel is closed")
        return item

    def __iter__(self) -> Iterator[Completion]:
        while True:
            try:
                yield self.recv()
            except ChannelClosed:
                return

    def pending(self) -> int:
        return self._queue.qsize()
