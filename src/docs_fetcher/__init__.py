"""docs-fetcher - mirror third-party package documentation into a local cache."""

from importlib.metadata import version

from docs_fetcher.__main__ import _cli as main
from docs_fetcher.config import FetchConfig
from docs_fetcher.url_manager import UrlManager
from docs_fetcher.urls import normalize_url

__version__ = version("docs-fetcher")
__all__ = ["FetchConfig", "UrlManager", "normalize_url", "main", "__version__"]
