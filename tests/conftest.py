"""Pytest configuration and fixtures."""

from unittest.mock import patch

import httpx
import pytest

from docs_fetcher.config import FetchConfig
from docs_fetcher.storage import DocsStore
from docs_fetcher.url_manager import UrlManager


@pytest.fixture
def base_url():
    """Documentation root used across tests."""
    return "https://example.com/docs"


@pytest.fixture
def manager(base_url):
    """UrlManager seeded with the base URL only."""
    return UrlManager(base_url, allowed_domains=["example.com"])


@pytest.fixture
def store(tmp_path):
    """Fresh snapshot store in a temporary cache directory."""
    return DocsStore(tmp_path / "cache")


@pytest.fixture
def fetch_config(tmp_path, base_url):
    """Crawl config with no politeness delay."""
    return FetchConfig(
        base_url=base_url,
        limit=20,
        max_depth=3,
        delay=0,
        cache_dir=str(tmp_path / "cache"),
        root_dir=str(tmp_path),
    )


@pytest.fixture
def allow_all_hosts():
    """Skip DNS-based SSRF checks for mocked sites."""
    with patch("docs_fetcher.sources.fetcher.is_safe_url", return_value=True) as m:
        yield m


def _page(title: str, links: list[str]) -> str:
    anchors = "\n".join(f'<a href="{href}">{href}</a>' for href in links)
    return (
        f"<html><head><title>{title}</title></head>"
        f"<body><main><h1>{title}</h1>{anchors}</main></body></html>"
    )


# path -> (title, links)
DOCS_SITE: dict[str, tuple[str, list[str]]] = {
    "/docs": (
        "Introduction",
        [
            "/docs/guide",
            "/docs/api/",
            "/blog/news",
            "https://other.com/docs/x",
            "/docs/logo.png",
            "#top",
            "mailto:team@example.com",
        ],
    ),
    "/docs/guide": ("Guide", ["/docs/guide/install", "/docs", "/docs/api#usage"]),
    "/docs/api": ("API Reference", ["/docs/api/client"]),
    "/docs/guide/install": ("Installation", []),
    "/docs/api/client": ("Client", ["/docs/guide/install?ref=api"]),
}


class MockSite:
    """In-memory documentation site served through httpx.MockTransport.

    ``failures`` maps a path to an HTTP status to return instead of the
    page; ``redirects`` maps a path to a ``Location`` value.
    """

    def __init__(self, pages=None, failures=None, redirects=None):
        self.pages = dict(DOCS_SITE if pages is None else pages)
        self.failures = dict(failures or {})
        self.redirects = dict(redirects or {})
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if request.url.host != "example.com":
            return httpx.Response(404)

        path = request.url.path.rstrip("/") or "/"
        if path in self.redirects:
            return httpx.Response(301, headers={"location": self.redirects[path]})
        if path in self.failures:
            return httpx.Response(self.failures[path])
        if path not in self.pages:
            return httpx.Response(404, text="not found")

        title, links = self.pages[path]
        return httpx.Response(200, html=_page(title, links))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def site():
    return MockSite()


@pytest.fixture
def make_site():
    """Factory for sites with custom pages, failures or redirects."""
    return MockSite
