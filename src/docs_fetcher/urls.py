"""URL canonicalization and URL-derived names.

Every URL that enters the frontier goes through :func:`normalize_url`
first. An empty string is the "drop this URL" sentinel: callers must never
treat it as a valid URL.
"""

import re
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from loguru import logger

_DEFAULT_PORTS = {"http": 80, "https": 443}

# Characters left untouched when re-quoting a path. "%" is included so
# already-encoded sequences survive a second pass.
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"

_SLUG_RE = re.compile(r"[^a-z0-9-]+")
_DASHES_RE = re.compile(r"-+")


def normalize_url(url: str, base: str = "") -> str:
    """Return the canonical form of *url*, or ``""`` if it cannot be used.

    Relative URLs are resolved against *base*. The result is absolute
    http(s), has no query string or fragment, no trailing slash, a
    lowercase scheme and host, and no default port.
    """
    try:
        candidate = url.strip()
        if not candidate:
            return ""
        if not urlsplit(candidate).scheme:
            candidate = urljoin(base, candidate)

        parts = urlsplit(candidate)
        scheme = parts.scheme.lower()
        host = (parts.hostname or "").lower()
        port = parts.port
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning(f"Invalid URL: {url!r} ({e})")
        return ""

    if not scheme:
        logger.warning(f"Invalid URL: {url!r} (not absolute and no base)")
        return ""
    if scheme not in _DEFAULT_PORTS:
        logger.debug(f"Dropping non-http URL: {url!r}")
        return ""
    if not host:
        logger.warning(f"Invalid URL: {url!r} (no host)")
        return ""

    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    userinfo, sep, _ = parts.netloc.rpartition("@")
    if sep:
        netloc = f"{userinfo}@{netloc}"

    path = quote(parts.path, safe=_PATH_SAFE).rstrip("/")
    return urlunsplit((scheme, netloc, path, "", ""))


def url_path(url: str) -> str:
    """Path component of *url* without trailing slashes.

    Used as the frontier's ordering key.
    """
    try:
        return urlsplit(url).path.rstrip("/")
    except (AttributeError, TypeError, ValueError) as e:
        logger.error(f"Failed to parse URL: {url!r} ({e})")
        return ""


def _segments(path: str) -> list[str]:
    return [s for s in path.split("/") if s]


def section_for_url(url: str, base_url: str) -> str:
    """Classify a page into a documentation section.

    The section is the first path segment below the base URL's path, so
    with base ``https://x.dev/docs`` the page ``/docs/guide/install`` is in
    section ``guide``. The base page itself is ``overview``. Pages outside
    the base path fall back to their own first segment.
    """
    page = _segments(url_path(url))
    base = _segments(url_path(base_url))

    if page[: len(base)] == base:
        rest = page[len(base) :]
    else:
        rest = page

    if not rest:
        return "overview"
    return rest[0]


def slugify(text: str) -> str:
    """Lowercase *text* and reduce it to ``[a-z0-9-]``."""
    slug = _SLUG_RE.sub("-", text.lower())
    return _DASHES_RE.sub("-", slug).strip("-")
