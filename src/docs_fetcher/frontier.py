"""Crawl frontier: discovered-but-unfetched URLs and the visited set.

Both structures only ever hold normalized URLs, so two spellings of the
same page can neither be queued twice nor fetched twice. A URL lives in at
most one of them: queued URLs are discovered, visited URLs are done.
"""

import bisect

from loguru import logger

from docs_fetcher.scope import ScopeFilter
from docs_fetcher.urls import normalize_url, url_path


class VisitedSet:
    """URLs already dequeued and processed during this run.

    Grows monotonically; marking is idempotent.
    """

    def __init__(self, base_url: str = ""):
        self._base_url = base_url
        self._urls: set[str] = set()

    def mark_visited(self, url: str) -> str:
        """Mark *url* visited. Returns the normalized URL, or "" if dropped."""
        normalized = normalize_url(url, self._base_url)
        if normalized:
            self._urls.add(normalized)
        return normalized

    def is_visited(self, url: str) -> bool:
        normalized = normalize_url(url, self._base_url)
        return bool(normalized) and normalized in self._urls

    def __contains__(self, url: str) -> bool:
        return self.is_visited(url)

    def __len__(self) -> int:
        return len(self._urls)

    def __iter__(self):
        return iter(sorted(self._urls))


class Frontier:
    """Deduplicated queue of URLs waiting to be fetched.

    Entries are kept ordered by URL path (ties broken by the full URL) so
    that pages come out roughly in documentation-hierarchy order. The
    ordering is a heuristic, not the site's table of contents.

    Each entry remembers the link depth it was discovered at; entries
    deeper than ``max_depth`` are refused.
    """

    def __init__(self, scope: ScopeFilter, max_depth: int | None = None):
        self.scope = scope
        self.max_depth = max_depth
        self.visited = VisitedSet(scope.base_url)
        # (path, url, depth), kept sorted
        self._entries: list[tuple[str, str, int]] = []
        self._queued: set[str] = set()

    def enqueue(self, url: str, depth: int = 0) -> bool:
        """Queue *url* if it is new, in scope and not too deep.

        Returns True if the URL was added.
        """
        normalized = normalize_url(url, self.scope.base_url)
        if not normalized:
            return False
        if normalized in self._queued or self.visited.is_visited(normalized):
            return False
        if self.max_depth is not None and depth > self.max_depth:
            logger.debug(f"Too deep ({depth} > {self.max_depth}): {normalized}")
            return False
        if not self.scope.is_allowed_url(normalized):
            logger.debug(f"Out of scope: {normalized}")
            return False

        bisect.insort(self._entries, (url_path(normalized), normalized, depth))
        self._queued.add(normalized)
        logger.debug(f"Queued: {normalized} (depth={depth})")
        return True

    def dequeue_entry(self) -> tuple[str, int] | None:
        """Remove and return the first ``(url, depth)`` entry, or None."""
        if not self._entries:
            return None
        _, url, depth = self._entries.pop(0)
        self._queued.discard(url)
        return url, depth

    def dequeue_next(self) -> str | None:
        entry = self.dequeue_entry()
        return entry[0] if entry else None

    def mark_visited(self, url: str) -> None:
        normalized = self.visited.mark_visited(url)
        if normalized in self._queued:
            self._queued.discard(normalized)
            self._entries = [e for e in self._entries if e[1] != normalized]

    def has_pending(self) -> bool:
        return bool(self._entries)

    def size(self) -> int:
        return len(self._entries)

    def visited_count(self) -> int:
        return len(self.visited)

    def pending(self) -> list[str]:
        """Queued URLs in dequeue order."""
        return [url for _, url, _ in self._entries]

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, url: str) -> bool:
        return normalize_url(url, self.scope.base_url) in self._queued
