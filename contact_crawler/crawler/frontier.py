"""Breadth-first frontier and visited-set tracking."""

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CrawlTask:
    """A URL waiting to be fetched, with its link distance from the seed."""

    url: str
    depth: int


class Frontier:
    """FIFO work queue plus the set of URLs already handed out.

    Children are appended to the tail and batches are taken from the head, so
    every depth-``d`` task is drained before any depth-``d + 1`` task.
    """

    def __init__(
        self,
        max_depth: int,
        is_allowed: Callable[[str], bool] | None = None,
        max_pages: int | None = None,
    ):
        self.max_depth = max_depth
        self.max_pages = max_pages
        self._is_allowed = is_allowed or (lambda url: True)
        self._queue: deque[CrawlTask] = deque()
        self._visited: set[str] = set()
        self.skipped = 0

    def __len__(self) -> int:
        return len(self._queue)

    def __bool__(self) -> bool:
        return bool(self._queue)

    @property
    def visited(self) -> frozenset[str]:
        """URLs already dispatched."""
        return frozenset(self._visited)

    @property
    def dispatched(self) -> int:
        return len(self._visited)

    @property
    def budget_left(self) -> int | None:
        if self.max_pages is None:
            return None
        return max(0, self.max_pages - len(self._visited))

    def is_visited(self, url: str) -> bool:
        return url in self._visited

    def push(self, task: CrawlTask) -> bool:
        """Append a task to the tail. Returns False if it was already visited."""
        if task.url in self._visited:
            return False
        self._queue.append(task)
        return True

    def drain(self, batch_size: int) -> list[CrawlTask]:
        """
        Take up to ``batch_size`` entries from the head and return the ones
        to dispatch.

        Entries deeper than ``max_depth``, already visited, or denied by
        robots.txt are dropped. Survivors are marked visited as they are
        accepted, so a URL queued twice within one window is dispatched once.

        Args:
            batch_size: Maximum number of entries to remove from the queue

        Returns:
            Tasks to dispatch (possibly fewer than ``batch_size``)
        """
        if self.budget_left == 0:
            if self._queue:
                logger.info("page_budget_exhausted", max_pages=self.max_pages, dropped=len(self._queue))
                self._queue.clear()
            return []

        tasks: list[CrawlTask] = []
        for _ in range(min(batch_size, len(self._queue))):
            task = self._queue.popleft()

            if task.depth > self.max_depth or task.url in self._visited:
                self.skipped += 1
                continue

            if not self._is_allowed(task.url):
                logger.debug("robots_disallowed", url=task.url)
                self.skipped += 1
                continue

            if self.budget_left == 0:
                self.skipped += 1
                continue

            self._visited.add(task.url)
            tasks.append(task)

        return tasks
