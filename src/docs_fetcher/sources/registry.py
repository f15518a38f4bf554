"""Resolve a package name to its documentation URL.

Resolution order:
1. Built-in table of well-known documentation sites
2. npm registry metadata (homepage, repository, bugs)
"""

from urllib.parse import quote, urlparse

import httpx
from loguru import logger

NPM_REGISTRY = "https://registry.npmjs.org"

KNOWN_DOCS: dict[str, str] = {
    "next": "https://nextjs.org/docs",
    "react": "https://react.dev/reference/react",
    "vue": "https://vuejs.org/guide/introduction.html",
    "angular": "https://angular.io/docs",
    "svelte": "https://svelte.dev/docs",
    "typescript": "https://www.typescriptlang.org/docs/",
}

# Hostname fragments typical of documentation sites
_DOC_HOSTS = (
    "docs.",
    "documentation.",
    "developer.",
    "developers.",
    "wiki.",
    "github.io",
    "readthedocs.io",
    "gitbook.io",
)

_DOC_PATH_TERMS = ("/docs/", "/documentation/", "/wiki/", "/guide/", "/manual/")


def is_valid_docs_url(url: str) -> bool:
    """Heuristic: does *url* look like a documentation site?"""
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError, AttributeError):
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    path = parsed.path if parsed.path.endswith("/") else f"{parsed.path}/"
    return any(h in hostname for h in _DOC_HOSTS) or any(
        term in path for term in _DOC_PATH_TERMS
    )


def normalize_repository_url(url: str) -> str:
    """Turn npm ``repository`` values into browsable https URLs.

    ``git+https://github.com/o/r.git`` -> ``https://github.com/o/r``;
    the ``owner/repo`` shorthand maps to GitHub.
    """
    url = (url or "").strip()
    if not url:
        return ""
    if url.startswith("git+"):
        url = url[len("git+") :]
    if url.startswith("git://"):
        url = "https://" + url[len("git://") :]
    if url.startswith("git@github.com:"):
        url = "https://github.com/" + url[len("git@github.com:") :]
    if "://" not in url and "/" in url and not url.startswith("github:"):
        url = f"https://github.com/{url}"
    if url.startswith("github:"):
        url = f"https://github.com/{url[len('github:') :]}"
    if url.endswith(".git"):
        url = url[: -len(".git")]
    return url


def _npm_candidates(data: dict) -> list[str]:
    repository = data.get("repository")
    repo_url = (
        repository.get("url", "") if isinstance(repository, dict) else repository or ""
    )
    bugs = data.get("bugs")
    bugs_url = bugs.get("url", "") if isinstance(bugs, dict) else ""

    candidates = [
        data.get("homepage") or "",
        normalize_repository_url(repo_url),
        bugs_url,
    ]
    return [c for c in candidates if isinstance(c, str) and c]


async def _fetch_npm_metadata(name: str, client: httpx.AsyncClient) -> dict | None:
    resp = await client.get(f"{NPM_REGISTRY}/{quote(name, safe='@')}")
    if resp.status_code != 200:
        logger.debug(f"npm registry returned {resp.status_code} for {name}")
        return None
    data = resp.json()
    return data if isinstance(data, dict) else None


async def search_docs_url(
    name: str, client: httpx.AsyncClient | None = None
) -> str | None:
    """Find a documentation URL for an npm package.

    Returns None when nothing usable is found or the registry is
    unreachable.
    """
    if name in KNOWN_DOCS:
        return KNOWN_DOCS[name]

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=15, follow_redirects=True) as own:
                data = await _fetch_npm_metadata(name, own)
        else:
            data = await _fetch_npm_metadata(name, client)
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Error searching docs URL for {name}: {e}")
        return None

    if not data:
        return None

    candidates = _npm_candidates(data)
    for url in candidates:
        if is_valid_docs_url(url):
            logger.info(f"Docs URL for {name}: {url}")
            return url

    # Fall back to the homepage even if it does not look like docs
    homepage = data.get("homepage")
    if isinstance(homepage, str) and homepage.startswith(("http://", "https://")):
        logger.info(f"Using homepage as docs URL for {name}: {homepage}")
        return homepage
    return None
