"""Sequential documentation crawler.

Drives a :class:`UrlManager` over httpx: pop the next URL, mark it
visited, fetch it, save it under its section/page numbers, and queue the
links it contains one level deeper. A page that fails is logged and
recorded; it never aborts the crawl.

Fetches happen one at a time. ``FetchConfig.delay`` milliseconds are kept
between two requests to the same host.
"""

import asyncio
import time
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from docs_fetcher.config import FetchConfig
from docs_fetcher.errors import DocsFetcherError, ErrorCode
from docs_fetcher.packages import discover_packages
from docs_fetcher.security import is_safe_url
from docs_fetcher.sources.registry import search_docs_url
from docs_fetcher.storage import DocsStore
from docs_fetcher.url_manager import UrlManager
from docs_fetcher.urls import section_for_url, url_path

USER_AGENT = "DocsFetcher/1.0"

_HTML_TYPES = ("text/html", "application/xhtml+xml")

_MAX_REDIRECTS = 5

_SKIP_HREF_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")

# Errors that mean the cache itself is broken; every later package would
# fail the same way.
_FATAL_CODES = (ErrorCode.DIRECTORY_ERROR, ErrorCode.FILE_WRITE_ERROR)


def _make_client(config: FetchConfig) -> httpx.AsyncClient:
    transport = httpx.AsyncHTTPTransport(retries=3)
    return httpx.AsyncClient(
        timeout=config.timeout,
        transport=transport,
        headers={"User-Agent": USER_AGENT},
        follow_redirects=True,
    )


# ---------------------------------------------------------------------------
# Page parsing
# ---------------------------------------------------------------------------


def extract_page(html: str, page_url: str) -> dict:
    """Pull the title and absolute link targets out of an HTML page.

    Relative links resolve against ``<base href>`` when present, otherwise
    against *page_url*. Fragment-only, ``javascript:`` and ``mailto:``
    links are ignored. Links keep document order without duplicates.
    """
    soup = BeautifulSoup(html, "html.parser")

    base = page_url
    base_tag = soup.find("base", href=True)
    if base_tag is not None:
        try:
            base = urljoin(page_url, base_tag["href"].strip())
        except ValueError:
            logger.debug(f"Ignoring malformed <base href> on {page_url}")

    title = ""
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
    if not title:
        h1 = soup.find("h1")
        if h1 is not None:
            title = h1.get_text(" ", strip=True)

    links: list[str] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.lower().startswith(_SKIP_HREF_PREFIXES):
            continue
        try:
            absolute = urljoin(base, href)
        except ValueError:
            logger.debug(f"Skipping malformed link {href!r} on {page_url}")
            continue
        if absolute not in seen:
            seen.add(absolute)
            links.append(absolute)

    return {"title": title, "links": links}


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------


async def fetch_page(client: httpx.AsyncClient, url: str) -> dict:
    """GET an HTML page, following redirects only to safe hosts.

    Returns ``{"url": final_url, "html": text}``.

    Raises:
        DocsFetcherError: on unsafe targets, transport errors, HTTP errors
            and non-HTML responses.
    """
    target = url
    for _ in range(_MAX_REDIRECTS + 1):
        if not is_safe_url(target):
            raise DocsFetcherError(
                ErrorCode.INVALID_URL, f"Unsafe URL blocked: {target}"
            )
        try:
            resp = await client.get(target, follow_redirects=False)
        except httpx.HTTPError as e:
            raise DocsFetcherError(
                ErrorCode.DOCUMENTATION_FETCH_ERROR, f"Failed to fetch {target}: {e}"
            ) from e

        location = resp.headers.get("location")
        if resp.is_redirect and location:
            target = urljoin(str(resp.url), location)
            continue
        break
    else:
        raise DocsFetcherError(
            ErrorCode.DOCUMENTATION_FETCH_ERROR, f"Too many redirects: {url}"
        )

    if resp.status_code >= 400:
        raise DocsFetcherError(
            ErrorCode.DOCUMENTATION_FETCH_ERROR,
            f"Failed to load {target}: {resp.status_code} {resp.reason_phrase}",
        )

    content_type = resp.headers.get("content-type", "").lower()
    if content_type and not any(t in content_type for t in _HTML_TYPES):
        raise DocsFetcherError(
            ErrorCode.INVALID_CONTENT_TYPE,
            f"Not an HTML page ({content_type}): {target}",
        )

    return {"url": str(resp.url), "html": resp.text}


async def _polite_wait(url: str, last_fetch: dict[str, float], delay_ms: int) -> None:
    """Sleep until *delay_ms* have passed since the last request to this host."""
    host = urlsplit(url).hostname or ""
    previous = last_fetch.get(host)
    if previous is not None and delay_ms > 0:
        remaining = delay_ms / 1000 - (time.monotonic() - previous)
        if remaining > 0:
            await asyncio.sleep(remaining)
    last_fetch[host] = time.monotonic()


def _fallback_title(url: str, section: str) -> str:
    segments = [s for s in url_path(url).split("/") if s]
    return segments[-1] if segments else section


# ---------------------------------------------------------------------------
# Crawl loop
# ---------------------------------------------------------------------------


async def crawl_package(
    name: str,
    docs_url: str,
    config: FetchConfig,
    store: DocsStore,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """Crawl one documentation site into the store.

    Args:
        name: Package name, used for the snapshot directory.
        docs_url: Documentation root; the crawl's base URL.
        config: Limits, delay, allowed domains and start paths.
        store: Destination for pages.
        client: Optional shared httpx client.

    Returns:
        ``{name, docsUrl, pages, errors, visited}`` where each page is
        ``{url, title, section, sectionNumber, pageNumber, depth, path}``.
    """
    manager = UrlManager.from_config(config, base_url=docs_url)
    logger.info(
        f"Crawling {name} from {manager.base_url} "
        f"(limit={config.limit}, max_depth={config.max_depth})"
    )

    pages: list[dict] = []
    errors: list[dict] = []
    last_fetch: dict[str, float] = {}
    # Failed fetches count against the limit too
    attempts = 0

    own_client = client is None
    if client is None:
        client = _make_client(config)

    try:
        while manager.has_pending() and attempts < config.limit:
            entry = manager.dequeue_entry()
            if entry is None:
                break
            url, depth = entry
            manager.mark_visited(url)
            attempts += 1

            await _polite_wait(url, last_fetch, config.delay)
            try:
                fetched = await fetch_page(client, url)
            except DocsFetcherError as e:
                logger.warning(f"Skipping {url}: {e}")
                errors.append({"url": url, "error": str(e)})
                continue

            final_url = manager.normalize_url(fetched["url"]) or url
            if final_url != url:
                if manager.is_visited(final_url):
                    logger.debug(f"{url} redirects to already fetched {final_url}")
                    continue
                if not manager.is_allowed_url(final_url):
                    logger.warning(f"Skipping {url}: redirected out of scope")
                    errors.append(
                        {"url": url, "error": f"Redirected out of scope: {final_url}"}
                    )
                    continue
                manager.mark_visited(final_url)

            parsed = extract_page(fetched["html"], fetched["url"])
            section = section_for_url(final_url, manager.base_url)
            section_number = manager.section_number(section)
            page_number = manager.page_number(section, final_url)
            title = parsed["title"] or _fallback_title(final_url, section)

            path = store.save_document(
                name,
                section,
                title,
                fetched["html"],
                {"url": final_url, "depth": depth},
                section_number,
                page_number,
            )
            pages.append(
                {
                    "url": final_url,
                    "title": title,
                    "section": section,
                    "sectionNumber": section_number,
                    "pageNumber": page_number,
                    "depth": depth,
                    "path": str(path),
                }
            )
            logger.info(f"[{len(pages)}/{config.limit}] {final_url}")

            queued = sum(manager.enqueue(link, depth + 1) for link in parsed["links"])
            if queued:
                logger.debug(f"Queued {queued} new links from {final_url}")
    finally:
        if own_client:
            await client.aclose()

    logger.info(
        f"Crawled {len(pages)} pages for {name} "
        f"({len(errors)} errors, {manager.size()} left in queue)"
    )
    return {
        "name": name,
        "docsUrl": manager.base_url,
        "pages": pages,
        "errors": errors,
        "visited": manager.visited_count(),
    }


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------


def _apply_overrides(config: FetchConfig, overrides: dict) -> FetchConfig:
    """Per-package crawl settings stored in the catalog entry's ``config``."""
    update = {}
    if overrides.get("allowedDomains"):
        update["allowed_domains"] = tuple(overrides["allowedDomains"])
    if overrides.get("startPaths"):
        update["start_paths"] = tuple(overrides["startPaths"])
    return config.model_copy(update=update) if update else config


async def fetch_package(
    name: str,
    config: FetchConfig,
    docs_url: str | None = None,
    force: bool = False,
    store: DocsStore | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict:
    """Resolve, crawl and catalog the documentation of one package.

    A fresh snapshot (younger than ``cache_max_age_days``) is kept unless
    *force* or ``config.force_refresh`` is set; the result then has
    ``skipped`` set.

    Raises:
        DocsFetcherError: DOCUMENTATION_NOT_FOUND when no docs URL can be
            resolved, or a storage error.
    """
    if store is None:
        store = DocsStore(config.get_cache_dir(), config.package_docs_file)

    catalog = store.load_catalog()
    entry = dict(catalog.get(name, {}))
    overrides = entry.get("config") or {}

    if overrides.get("fetchDocs") is False and not force:
        logger.info(f"{name}: fetching disabled in catalog")
        return {"name": name, "docsUrl": entry.get("docsUrl"), "skipped": True}

    docs_url = docs_url or overrides.get("docsUrl") or entry.get("docsUrl")

    # Freshness is checked before any registry lookup
    if not (force or config.force_refresh):
        needs_update, reason = store.needs_update(name, config.cache_max_age_days)
        logger.info(f"{name}: {reason}")
        if not needs_update:
            meta = store.read_meta(name) or {}
            return {
                "name": name,
                "docsUrl": docs_url or meta.get("baseUrl"),
                "skipped": True,
            }

    if not docs_url:
        docs_url = await search_docs_url(name, client)
    entry.update({"name": name, "searchAttempted": True})

    if not docs_url:
        entry["fetch"] = False
        catalog[name] = entry
        store.save_catalog(catalog)
        raise DocsFetcherError(
            ErrorCode.DOCUMENTATION_NOT_FOUND,
            f"No documentation URL found for {name}",
        )

    store.clear_package(name)
    result = await crawl_package(
        name, docs_url, _apply_overrides(config, overrides), store, client
    )
    meta = store.write_meta(name, result["docsUrl"], len(result["pages"]))

    catalog = store.load_catalog()
    catalog[name] = {
        **entry,
        "docsUrl": docs_url,
        "path": str(store.package_dir(name)),
        "fetch": True,
        "lastFetched": meta["lastFetched"],
        "pages": len(result["pages"]),
    }
    store.save_catalog(catalog)
    return result


async def fetch_all_packages(config: FetchConfig, force: bool = False) -> list[dict]:
    """Mirror documentation for every package discovered under ``root_dir``.

    Packages are processed one after another. A package that cannot be
    resolved or crawled is logged and reported with an ``error`` key;
    storage failures stop the run.
    """
    packages = discover_packages(config)
    if not packages:
        logger.warning(f"No packages found under {config.root_dir}")
        return []

    store = DocsStore(config.get_cache_dir(), config.package_docs_file)
    results: list[dict] = []

    async with _make_client(config) as client:
        for pkg in packages:
            try:
                result = await fetch_package(
                    pkg["name"], config, force=force, store=store, client=client
                )
            except DocsFetcherError as e:
                if e.code in _FATAL_CODES:
                    raise
                logger.error(f"Skipping {pkg['name']}: {e}")
                results.append({"name": pkg["name"], "error": str(e)})
                continue
            results.append(result)

    fetched = sum(1 for r in results if r.get("pages"))
    logger.info(f"Fetched documentation for {fetched}/{len(packages)} packages")
    return results
