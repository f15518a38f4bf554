"""Package-level smoke tests."""

import docs_fetcher


def test_version():
    assert isinstance(docs_fetcher.__version__, str)
    assert docs_fetcher.__version__


def test_public_api():
    assert callable(docs_fetcher.main)
    manager = docs_fetcher.UrlManager("https://example.com/docs/")
    assert manager.base_url == docs_fetcher.normalize_url("https://example.com/docs")
    assert docs_fetcher.FetchConfig().limit == 15
