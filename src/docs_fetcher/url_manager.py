"""Frontier-facing API used by the fetch loop.

:class:`UrlManager` bundles the scope filter, the frontier with its visited
set, and the section/page numbering for one crawl run. One instance is
owned by one crawl loop; it is not shared between tasks.
"""

from urllib.parse import urljoin

from loguru import logger

from docs_fetcher.config import FetchConfig
from docs_fetcher.frontier import Frontier
from docs_fetcher.ordering import OrderAssigner
from docs_fetcher.scope import ScopeFilter
from docs_fetcher.urls import normalize_url


class UrlManager:
    """Manages URL normalization, the crawl queue and output numbering.

    Args:
        base_url: Documentation root; relative links resolve against it.
        allowed_domains: Hosts to stay on (subdomains included). Defaults
            to the base URL's host.
        start_paths: Paths resolved against ``base_url`` to seed the queue.
            Defaults to the base URL itself.
        max_depth: Maximum link depth; None disables the check.
    """

    def __init__(
        self,
        base_url: str,
        allowed_domains=None,
        start_paths=None,
        max_depth: int | None = None,
    ):
        self.scope = ScopeFilter(base_url, allowed_domains)
        self.base_url = self.scope.base_url
        if not self.base_url:
            logger.warning(f"Unusable base URL {base_url!r}; nothing will be queued")

        self.frontier = Frontier(self.scope, max_depth=max_depth)
        self.order = OrderAssigner()

        for path in start_paths or [""]:
            self.enqueue(self._resolve_start_path(path))

    @classmethod
    def from_config(cls, config: FetchConfig, base_url: str | None = None):
        """Create a manager for *base_url* (default ``config.base_url``)."""
        return cls(
            base_url or config.base_url,
            allowed_domains=list(config.allowed_domains) or None,
            start_paths=list(config.start_paths) or None,
            max_depth=config.max_depth,
        )

    def _resolve_start_path(self, path: str) -> str:
        if not self.base_url:
            return ""
        return urljoin(self.base_url, path)

    def normalize_url(self, url: str) -> str:
        return normalize_url(url, self.base_url)

    # --- Queue ---

    def enqueue(self, url: str, depth: int = 0) -> bool:
        return self.frontier.enqueue(url, depth)

    def dequeue_next(self) -> str | None:
        return self.frontier.dequeue_next()

    def dequeue_entry(self) -> tuple[str, int] | None:
        return self.frontier.dequeue_entry()

    def has_pending(self) -> bool:
        return self.frontier.has_pending()

    def size(self) -> int:
        return self.frontier.size()

    def pending(self) -> list[str]:
        return self.frontier.pending()

    # --- Visited ---

    def mark_visited(self, url: str) -> None:
        self.frontier.mark_visited(url)

    def is_visited(self, url: str) -> bool:
        return self.frontier.visited.is_visited(url)

    def visited_count(self) -> int:
        return self.frontier.visited_count()

    def visited_urls(self) -> list[str]:
        return list(self.frontier.visited)

    # --- Scope ---

    def is_allowed_domain(self, url: str) -> bool:
        return self.scope.is_allowed_domain(url)

    def is_documentation_path(self, url: str) -> bool:
        return self.scope.is_documentation_path(url)

    def is_allowed_url(self, url: str) -> bool:
        return self.scope.is_allowed_url(url)

    # --- Numbering ---

    def section_number(self, section: str) -> int:
        return self.order.section_number(section)

    def page_number(self, section: str, url: str) -> int:
        return self.order.page_number(section, self.normalize_url(url) or url)
