"""On-disk documentation snapshots and the package-docs catalog.

Layout under the cache directory::

    <cache_dir>/
        package-docs.json                   catalog of all packages
        <package>/
            meta.json                       lastFetched, baseUrl, pages
            001-overview/
                001-introduction.html
                001-introduction.meta.json
            002-guide/
                001-installation.html
                ...

Section and page prefixes come from the crawl's ``OrderAssigner`` so the
tree sorts in first-observation order regardless of fetch order.
"""

import json
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from docs_fetcher.errors import DocsFetcherError, ErrorCode
from docs_fetcher.urls import slugify

_META_FILE = "meta.json"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _format_number(number: int) -> str:
    return f"{number:03d}"


def _write_json_atomic(path: Path, data) -> None:
    """Write JSON via a temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class DocsStore:
    """Filesystem store for one cache directory."""

    def __init__(self, cache_dir: Path | str, catalog_file: str = "package-docs.json"):
        self.cache_dir = Path(cache_dir).expanduser()
        self.catalog_path = self.cache_dir / catalog_file
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DocsFetcherError(
                ErrorCode.DIRECTORY_ERROR,
                f"Cannot create cache directory {self.cache_dir}: {e}",
            ) from e
        if not os.access(self.cache_dir, os.W_OK):
            raise DocsFetcherError(
                ErrorCode.DIRECTORY_ERROR,
                f"Cache directory is not writable: {self.cache_dir}",
            )
        logger.debug(f"DocsStore initialized at {self.cache_dir}")

    # --- Package snapshots ---

    def package_dir(self, name: str) -> Path:
        return self.cache_dir / (slugify(name) or "package")

    def section_dir(self, name: str, section: str, section_number: int) -> Path:
        dirname = f"{_format_number(section_number)}-{slugify(section) or 'section'}"
        return self.package_dir(name) / dirname

    def save_document(
        self,
        name: str,
        section: str,
        title: str,
        content: str,
        metadata: dict,
        section_number: int,
        page_number: int,
    ) -> Path:
        """Write one page and its ``.meta.json``. Returns the HTML path."""
        directory = self.section_dir(name, section, section_number)
        stem = f"{_format_number(page_number)}-{slugify(title) or 'page'}"
        html_path = directory / f"{stem}.html"
        meta_path = directory / f"{stem}.meta.json"

        try:
            directory.mkdir(parents=True, exist_ok=True)
            html_path.write_text(content, encoding="utf-8")
            meta = {**metadata, "title": title, "section": section}
            meta["savedAt"] = _now_iso()
            meta_path.write_text(
                json.dumps(meta, ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as e:
            raise DocsFetcherError(
                ErrorCode.FILE_WRITE_ERROR, f"Failed to save {html_path}: {e}"
            ) from e

        logger.debug(f"Saved {html_path}")
        return html_path

    def clear_package(self, name: str) -> None:
        """Remove a package snapshot so a fresh crawl starts clean."""
        directory = self.package_dir(name)
        if directory.exists():
            logger.info(f"Clearing existing documentation for {name}...")
            shutil.rmtree(directory)

    def list_documents(self, name: str) -> list[dict]:
        """Stored pages of a package in snapshot order.

        Each entry is the page's ``.meta.json`` content plus ``path`` and
        ``html``. A page with a missing or corrupt sidecar is still listed.
        """
        directory = self.package_dir(name)
        if not directory.is_dir():
            return []

        documents = []
        for html_path in sorted(directory.glob("*/*.html")):
            try:
                html = html_path.read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Skipping unreadable page {html_path}: {e}")
                continue

            meta_path = html_path.with_suffix(".meta.json")
            try:
                meta = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"Unreadable page metadata {meta_path}: {e}")
                meta = {}
            if not isinstance(meta, dict):
                meta = {}

            documents.append({**meta, "path": str(html_path), "html": html})
        return documents

    def write_meta(self, name: str, base_url: str, pages: int) -> dict:
        meta = {
            "projectName": name,
            "baseUrl": base_url,
            "pages": pages,
            "lastFetched": _now_iso(),
        }
        _write_json_atomic(self.package_dir(name) / _META_FILE, meta)
        return meta

    def read_meta(self, name: str) -> dict | None:
        path = self.package_dir(name) / _META_FILE
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable snapshot metadata {path}: {e}")
            return None

    def needs_update(self, name: str, max_age_days: int) -> tuple[bool, str]:
        """Whether the package snapshot is missing or older than the limit."""
        meta = self.read_meta(name)
        if meta is None:
            return True, "No cache exists"

        try:
            last = datetime.fromisoformat(meta["lastFetched"])
        except (KeyError, TypeError, ValueError):
            return True, "Error checking cache status"
        if last.tzinfo is None:
            last = last.replace(tzinfo=timezone.utc)

        age = datetime.now(timezone.utc) - last
        if age.total_seconds() > max_age_days * 86400:
            return True, f"Cache is older than {max_age_days} days"
        return False, "Cache is up to date"

    # --- Catalog ---

    def load_catalog(self) -> dict[str, dict]:
        """Read the catalog; a missing or corrupt file yields an empty one."""
        try:
            data = json.loads(self.catalog_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable catalog {self.catalog_path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed catalog {self.catalog_path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, dict)}

    def save_catalog(self, catalog: dict[str, dict]) -> None:
        try:
            _write_json_atomic(self.catalog_path, catalog)
        except OSError as e:
            raise DocsFetcherError(
                ErrorCode.FILE_WRITE_ERROR,
                f"Failed to write catalog {self.catalog_path}: {e}",
            ) from e
        logger.debug(f"Catalog saved ({len(catalog)} packages)")
