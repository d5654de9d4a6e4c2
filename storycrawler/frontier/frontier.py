"""Two-tier in-memory frontier shared by all workers.

Holds tagged commands in a priority tier and a normal tier. Workers steal
from the priority tier first and only fall back to the normal tier when the
priority tier is empty. Normal items get no fairness guarantee under a
sustained stream of priority pushes.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchCommand:
    """Fetch ``url``; ``priority`` is fixed when the command is queued."""
    url: str
    priority: bool = False


@dataclass(frozen=True)
class StopCommand:
    """Tells the worker that steals it to exit."""


Command = Union[FetchCommand, StopCommand]


@dataclass(frozen=True)
class Steal:
    """Outcome of a single steal attempt."""
    status: str
    command: Optional[Command] = None

    SUCCESS = "success"
    EMPTY = "empty"
    RETRY = "retry"

    @classmethod
    def success(cls, command: Command) -> 'Steal':
        return cls(cls.SUCCESS, command)

    @classmethod
    def empty(cls) -> 'Steal':
        return cls(cls.EMPTY)

    @classmethod
    def retry(cls) -> 'Steal':
        return cls(cls.RETRY)

    @property
    def is_success(self) -> bool:
        return self.status == self.SUCCESS

    @property
    def is_empty(self) -> bool:
        return self.status == self.EMPTY

    @property
    def is_retry(self) -> bool:
        return self.status == self.RETRY


class PriorityFrontier:
    """Priority and normal deques behind one lock.

    ``steal`` never blocks on the lock: when another thread holds it the
    caller gets ``Steal.retry()`` and is expected to poll again straight away
    without treating the frontier as empty.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._priority: Deque[Command] = deque()
        self._normal: Deque[Command] = deque()

        # Statistics
        self.urls_added = 0
        self.urls_stolen = 0

    def push(self, url: str, priority: bool) -> None:
        command = FetchCommand(url, priority)
        with self._lock:
            if priority:
                self._priority.append(command)
            else:
                self._normal.append(command)
            self.urls_added += 1

    def push_stop(self) -> None:
        """Queue one stop command on the priority tier."""
        with self._lock:
            self._priority.append(StopCommand())

    def steal(self) -> Steal:
        if not self._lock.acquire(blocking=False):
            return Steal.retry()
        try:
            if self._priority:
                command = self._priority.popleft()
            elif self._normal:
                logger.debug("claim from normal queue")
                command = self._normal.popleft()
            else:
                return Steal.empty()
            if isinstance(command, FetchCommand):
                self.urls_stolen += 1
            return Steal.success(command)
        finally:
            self._lock.release()

    def priority_size(self) -> int:
        with self._lock:
            return len(self._priority)

    def normal_size(self) -> int:
        with self._lock:
            return len(self._normal)

    def size(self) -> int:
        with self._lock:
            return len(self._priority) + len(self._normal)

    def is_empty(self) -> bool:
        return self.size() == 0
