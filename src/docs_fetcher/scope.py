"""Decide whether a URL belongs to the documentation being mirrored."""

import re
from urllib.parse import urlsplit

from docs_fetcher.urls import normalize_url

# Assets and data files that are never documentation pages
_NON_DOC_EXTENSION_RE = re.compile(
    r"\.(png|jpe?g|gif|svg|ico|webp|avif|bmp"
    r"|css|js|mjs|map"
    r"|json|xml|ya?ml|csv"
    r"|woff2?|ttf|otf|eot"
    r"|zip|gz|tgz|tar|pdf|mp4|webm|mp3)$",
    re.IGNORECASE,
)

NON_DOC_PREFIXES = ("/blog", "/news", "/community", "/download", "/changelog")


class ScopeFilter:
    """Domain and path admissibility checks for one crawl.

    All predicates are total: malformed input yields ``False`` rather than
    an exception.
    """

    def __init__(self, base_url: str, allowed_domains=None):
        self.base_url = normalize_url(base_url)
        if allowed_domains is None:
            host = urlsplit(self.base_url).hostname if self.base_url else None
            allowed_domains = [host] if host else []
        self.allowed_domains = tuple(
            d.strip().lower().lstrip(".") for d in allowed_domains if d and d.strip()
        )

    def is_allowed_domain(self, url: str) -> bool:
        """True if the host is an allowed domain or one of its subdomains."""
        if not isinstance(url, str):
            return False
        try:
            hostname = urlsplit(url).hostname
        except (AttributeError, TypeError, ValueError):
            return False
        if not hostname:
            return False
        return any(
            hostname == domain or hostname.endswith(f".{domain}")
            for domain in self.allowed_domains
        )

    def is_documentation_path(self, url: str) -> bool:
        """False for asset files and known non-documentation sections.

        Accepts a full URL or a bare path such as ``/docs/intro``.
        """
        if not isinstance(url, str):
            return False
        try:
            path = urlsplit(url).path
        except (AttributeError, TypeError, ValueError):
            return False

        if _NON_DOC_EXTENSION_RE.search(path):
            return False
        if path.startswith(NON_DOC_PREFIXES):
            return False
        return True

    def is_allowed_url(self, url: str) -> bool:
        normalized = normalize_url(url, self.base_url)
        return (
            normalized != ""
            and self.is_allowed_domain(normalized)
            and self.is_documentation_path(normalized)
        )
