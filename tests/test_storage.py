"""Tests for docs_fetcher.storage."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from docs_fetcher.errors import DocsFetcherError, ErrorCode
from docs_fetcher.storage import DocsStore


class TestInit:
    def test_creates_cache_dir(self, tmp_path):
        store = DocsStore(tmp_path / "a" / "b")
        assert store.cache_dir.is_dir()
        assert store.catalog_path == tmp_path / "a" / "b" / "package-docs.json"

    def test_cache_dir_is_a_file(self, tmp_path):
        blocker = tmp_path / "cache"
        blocker.write_text("x")
        with pytest.raises(DocsFetcherError) as exc_info:
            DocsStore(blocker)
        assert exc_info.value.code == ErrorCode.DIRECTORY_ERROR


class TestSaveDocument:
    def test_numbered_layout(self, store):
        path = store.save_document(
            "@scope/Pkg",
            "guide",
            "Getting Started",
            "<html>hi</html>",
            {"url": "https://example.com/docs/guide/start"},
            section_number=2,
            page_number=3,
        )

        assert path == store.cache_dir / "scope-pkg" / "002-guide" / "003-getting-started.html"
        assert path.read_text() == "<html>hi</html>"

        meta = json.loads(path.with_name("003-getting-started.meta.json").read_text())
        assert meta["url"] == "https://example.com/docs/guide/start"
        assert meta["title"] == "Getting Started"
        assert meta["section"] == "guide"
        assert "savedAt" in meta

    def test_untitled_page(self, store):
        path = store.save_document("pkg", "api", "???", "x", {}, 1, 1)
        assert path.name == "001-page.html"

    def test_write_failure(self, store):
        store.package_dir("pkg").parent.mkdir(parents=True, exist_ok=True)
        store.package_dir("pkg").write_text("not a directory")
        with pytest.raises(DocsFetcherError) as exc_info:
            store.save_document("pkg", "api", "Intro", "x", {}, 1, 1)
        assert exc_info.value.code == ErrorCode.FILE_WRITE_ERROR

    def test_clear_package(self, store):
        store.save_document("pkg", "api", "Intro", "x", {}, 1, 1)
        store.clear_package("pkg")
        assert not store.package_dir("pkg").exists()
        # Clearing a package that was never fetched is a no-op
        store.clear_package("other")


class TestListDocuments:
    def test_snapshot_order_with_metadata(self, store):
        store.save_document("pkg", "guide", "Install", "<p>b</p>", {"url": "u2"}, 2, 1)
        store.save_document("pkg", "overview", "Intro", "<p>a</p>", {"url": "u1"}, 1, 1)
        store.write_meta("pkg", "https://pkg.dev", 2)

        docs = store.list_documents("pkg")
        assert [d["url"] for d in docs] == ["u1", "u2"]
        assert docs[0]["title"] == "Intro"
        assert docs[0]["html"] == "<p>a</p>"
        assert docs[0]["path"].endswith("001-overview/001-intro.html")

    def test_corrupt_sidecar_still_listed(self, store):
        path = store.save_document("pkg", "api", "Intro", "x", {"url": "u"}, 1, 1)
        path.with_suffix(".meta.json").write_text("{broken")
        docs = store.list_documents("pkg")
        assert docs == [{"path": str(path), "html": "x"}]

    def test_unknown_package(self, store):
        assert store.list_documents("never-fetched") == []


class TestFreshness:
    def _write_last_fetched(self, store, name, value):
        directory = store.package_dir(name)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "meta.json").write_text(json.dumps({"lastFetched": value}))

    def test_no_cache(self, store):
        assert store.needs_update("pkg", 7) == (True, "No cache exists")

    def test_fresh(self, store):
        meta = store.write_meta("pkg", "https://example.com/docs", 4)
        assert meta["pages"] == 4
        assert store.read_meta("pkg")["baseUrl"] == "https://example.com/docs"
        assert store.needs_update("pkg", 7) == (False, "Cache is up to date")

    def test_stale(self, store):
        old = datetime.now(timezone.utc) - timedelta(days=10)
        self._write_last_fetched(store, "pkg", old.isoformat())
        assert store.needs_update("pkg", 7) == (True, "Cache is older than 7 days")

    def test_naive_timestamp_treated_as_utc(self, store):
        recent = datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=1)
        self._write_last_fetched(store, "pkg", recent.isoformat())
        assert store.needs_update("pkg", 7)[0] is False

    def test_bad_timestamp(self, store):
        self._write_last_fetched(store, "pkg", "yesterday-ish")
        assert store.needs_update("pkg", 7) == (True, "Error checking cache status")

    def test_corrupt_meta(self, store):
        directory = store.package_dir("pkg")
        directory.mkdir(parents=True)
        (directory / "meta.json").write_text("{")
        assert store.read_meta("pkg") is None
        assert store.needs_update("pkg", 7) == (True, "No cache exists")


class TestCatalog:
    def test_missing_catalog(self, store):
        assert store.load_catalog() == {}

    def test_round_trip(self, store):
        catalog = {"react": {"docsUrl": "https://react.dev", "fetch": True}}
        store.save_catalog(catalog)
        assert store.load_catalog() == catalog
        # No temp files left behind
        assert [p.name for p in store.cache_dir.iterdir()] == ["package-docs.json"]

    @pytest.mark.parametrize("content", ["{broken", "[]", '"text"'])
    def test_unreadable_catalog(self, store, content):
        store.catalog_path.write_text(content)
        assert store.load_catalog() == {}

    def test_non_dict_entries_dropped(self, store):
        store.catalog_path.write_text(json.dumps({"a": {"fetch": True}, "b": 3}))
        assert store.load_catalog() == {"a": {"fetch": True}}
