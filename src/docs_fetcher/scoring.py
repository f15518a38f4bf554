"""Quality scores for stored documentation snapshots.

Each saved page gets a score between 0 and 1 from five weighted signals:
freshness (the live page's ``Last-Modified``), size, language,
readability and completeness (code blocks, headings, lists). The live URL
is checked with a HEAD request first; a page whose link cannot be checked
is still scored, with neutral freshness.
"""

import asyncio
import re
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from docs_fetcher.errors import DocsFetcherError, ErrorCode
from docs_fetcher.security import is_safe_url
from docs_fetcher.sources.fetcher import USER_AGENT
from docs_fetcher.storage import DocsStore

DEFAULT_CONTENT_TYPES = ("text/html", "text/plain", "application/json")

_MAX_REDIRECTS = 5

_WORD_RE = re.compile(r"\w+")
_SENTENCE_END_RE = re.compile(r"[.!?]+")
_HEADING_RE = re.compile(r"^h[1-6]$")

_COMMON_ENGLISH = frozenset(
    "the be to of and a in that have i it for not on with he as you do at "
    "this but his by from they we say her she or an will my one all would "
    "there their what so up out if about who get which go me when make can "
    "like no just him know take into your some could them see other than "
    "then now only its over also use how our".split()
)


class ScoringWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    freshness: float = 0.2
    size: float = 0.1
    language: float = 0.2
    readability: float = 0.3
    completeness: float = 0.2


class ScoringOptions(BaseModel):
    """Thresholds for the size, length and age signals."""

    model_config = ConfigDict(frozen=True)

    min_size: int = 1000  # bytes
    max_size: int = 1_000_000
    min_word_count: int = 100
    max_age_days: int = 365
    weights: ScoringWeights = Field(default_factory=ScoringWeights)


# ---------------------------------------------------------------------------
# Link validation
# ---------------------------------------------------------------------------


def _parse_http_date(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring malformed Last-Modified: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def validate_link(
    client: httpx.AsyncClient,
    url: str,
    allowed_content_types: tuple[str, ...] = DEFAULT_CONTENT_TYPES,
) -> dict:
    """HEAD *url* and report whether it still serves documentation.

    Returns ``{url, isValid, statusCode, contentType, responseTimeMs,
    lastModified, error}``. Failures are reported in ``error``, never
    raised. Redirects are followed only to safe hosts.
    """
    result = {
        "url": url,
        "isValid": False,
        "statusCode": None,
        "contentType": None,
        "responseTimeMs": 0,
        "lastModified": None,
        "error": None,
    }

    start = time.monotonic()
    target = url
    try:
        for _ in range(_MAX_REDIRECTS + 1):
            if not is_safe_url(target):
                result["error"] = f"Unsafe URL blocked: {target}"
                return result
            resp = await client.head(target, follow_redirects=False)
            location = resp.headers.get("location")
            if resp.is_redirect and location:
                target = urljoin(str(resp.url), location)
                continue
            break
        else:
            result["error"] = "Too many redirects"
            return result
    except httpx.TimeoutException:
        result["error"] = "Request timed out"
        return result
    except httpx.HTTPError as e:
        logger.warning(f"Link check failed for {url}: {e}")
        result["error"] = str(e) or type(e).__name__
        return result
    finally:
        result["responseTimeMs"] = round((time.monotonic() - start) * 1000)

    content_type = resp.headers.get("content-type", "")
    result["statusCode"] = resp.status_code
    result["contentType"] = content_type or None
    result["lastModified"] = _parse_http_date(resp.headers.get("last-modified"))

    if resp.status_code >= 400:
        result["error"] = f"HTTP error: {resp.status_code}"
    elif allowed_content_types and not any(
        t in content_type.lower() for t in allowed_content_types
    ):
        result["error"] = "Invalid content type"
    else:
        result["isValid"] = True
    return result


async def validate_links(client: httpx.AsyncClient, urls: list[str]) -> list[dict]:
    """Check several links concurrently; results keep the order of *urls*."""
    return list(await asyncio.gather(*(validate_link(client, u) for u in urls)))


# ---------------------------------------------------------------------------
# Content signals
# ---------------------------------------------------------------------------


def analyze_html(html: str) -> dict:
    """Word, sentence and structure counts of an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()

    text = soup.get_text(" ", strip=True)
    words = _WORD_RE.findall(text)
    sentences = [s for s in _SENTENCE_END_RE.split(text) if s.strip()]
    return {
        "size": len(html.encode("utf-8")),
        "words": words,
        "sentenceCount": len(sentences),
        "codeBlockCount": len(soup.find_all("pre")),
        "headingCount": len(soup.find_all(_HEADING_RE)),
        "listItemCount": len(soup.find_all("li")),
        "paragraphCount": len(soup.find_all("p")),
    }


def freshness_score(
    last_modified: datetime | None, max_age_days: int, now: datetime | None = None
) -> float:
    # Unknown age is neither fresh nor stale
    if last_modified is None:
        return 0.5
    now = now or datetime.now(timezone.utc)
    age_days = (now - last_modified).total_seconds() / 86400
    return min(1.0, max(0.0, 1 - age_days / max_age_days))


def size_score(size: int, options: ScoringOptions) -> float:
    if size == 0:
        return 0.0
    if size < options.min_size:
        return 0.3
    if size > options.max_size:
        return 0.5
    return 1 - abs(size - options.min_size * 2) / options.max_size


def detect_language(words: list[str]) -> str:
    """``"en"`` when common English words make up over 5% of the text."""
    if not words:
        return "unknown"
    common = sum(1 for w in words if w.lower() in _COMMON_ENGLISH)
    return "en" if common / len(words) > 0.05 else "unknown"


def readability_score(stats: dict) -> float:
    words = stats["words"]
    if not words or not stats["sentenceCount"]:
        return 0.0

    avg_sentence = len(words) / stats["sentenceCount"]
    avg_word = sum(len(w) for w in words) / len(words)

    # Ideal ranges are 15-20 words per sentence and 4-7 letters per word
    score = max(0.4, 1 - abs(avg_sentence - 17.5) / 35)
    score *= max(0.4, 1 - abs(avg_word - 5.5) / 11)

    if stats["headingCount"]:
        score *= 1.4
    if stats["listItemCount"]:
        score *= 1.3
    if stats["paragraphCount"] > 1:
        score *= 1.2
    score *= max(0.5, min(1.0, len(words) / 200))
    return min(1.0, max(0.0, score))


def completeness_score(stats: dict, options: ScoringOptions) -> float:
    word_count = len(stats["words"])
    code = stats["codeBlockCount"]
    headings = stats["headingCount"]

    score = min(1.0, code / 2) * 0.25
    score += (
        min(1.0, headings / 3) * 0.5
        + min(1.0, stats["paragraphCount"] / 4) * 0.3
        + min(1.0, stats["listItemCount"] / 2) * 0.2
    ) * 0.35
    score += min(1.0, word_count / (options.min_word_count * 0.75)) * 0.25
    score += min(1.0, (word_count / max(1, headings)) / 50) * 0.15

    if code >= 3 and headings >= 4 and word_count >= 150:
        score *= 1.5
    elif code >= 2 and headings >= 3 and word_count >= 100:
        score *= 1.3

    if word_count < 50 or code == 0 or headings == 0:
        score *= 0.1
    return min(1.0, max(0.0, score))


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_document(
    url: str,
    html: str,
    validation: dict | None = None,
    options: ScoringOptions | None = None,
    now: datetime | None = None,
) -> dict:
    """Score one stored page.

    *validation* is the :func:`validate_link` result for *url*, if the
    live page was checked. Returns ``{url, score, details}``.
    """
    options = options or ScoringOptions()
    stats = analyze_html(html)
    last_modified = (validation or {}).get("lastModified")
    word_count = len(stats["words"])

    details = {
        "freshness": freshness_score(last_modified, options.max_age_days, now),
        "size": size_score(stats["size"], options),
        "language": detect_language(stats["words"]),
        "readability": readability_score(stats),
        "completeness": completeness_score(stats, options),
        "lastModified": last_modified,
        "wordCount": word_count,
        "codeBlockCount": stats["codeBlockCount"],
        "headingCount": stats["headingCount"],
    }
    return {"url": url, "score": _total_score(details, options.weights), "details": details}


def _total_score(details: dict, weights: ScoringWeights) -> float:
    if details["wordCount"] == 0:
        return 0.0

    score = (
        details["freshness"] * weights.freshness
        + details["size"] * weights.size
        + (1.0 if details["language"] == "en" else 0.3) * weights.language
        + details["readability"] * weights.readability
        + details["completeness"] * weights.completeness
    )
    # Lifts mid-range scores
    score **= 0.7

    if (
        details["wordCount"] < 50
        or details["codeBlockCount"] == 0
        or details["headingCount"] == 0
    ):
        score *= 0.3
    return min(1.0, max(0.0, score))


async def score_package(
    name: str,
    store: DocsStore,
    client: httpx.AsyncClient | None = None,
    validate: bool = True,
    options: ScoringOptions | None = None,
) -> list[dict]:
    """Score every stored page of *name*, in snapshot order.

    Each result carries the page's ``title``, ``section`` and ``path`` and,
    when *validate* is set, the ``validation`` of its live URL.

    Raises:
        DocsFetcherError: DOCUMENTATION_NOT_FOUND when nothing is stored.
    """
    documents = store.list_documents(name)
    if not documents:
        raise DocsFetcherError(
            ErrorCode.DOCUMENTATION_NOT_FOUND,
            f"No stored documentation for {name}; fetch it first",
        )

    urls = list(dict.fromkeys(d["url"] for d in documents if d.get("url")))
    validations: dict[str, dict] = {}
    if validate and urls:
        owns_client = client is None
        if owns_client:
            client = httpx.AsyncClient(
                timeout=10.0,
                transport=httpx.AsyncHTTPTransport(retries=3),
                headers={"User-Agent": USER_AGENT},
            )
        try:
            logger.info(f"Validating {len(urls)} links for {name}...")
            for result in await validate_links(client, urls):
                validations[result["url"]] = result
                if not result["isValid"]:
                    logger.warning(f"Invalid link {result['url']}: {result['error']}")
        finally:
            if owns_client:
                await client.aclose()

    scores = []
    for doc in documents:
        url = doc.get("url") or doc["path"]
        scored = score_document(url, doc["html"], validations.get(url), options)
        scored.update(
            {
                "title": doc.get("title", ""),
                "section": doc.get("section", ""),
                "path": doc["path"],
            }
        )
        if url in validations:
            scored["validation"] = validations[url]
        scores.append(scored)

    logger.info(f"Scored {len(scores)} pages for {name}")
    return scores
