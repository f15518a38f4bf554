import json
import os
from pathlib import Path
from unittest import mock

import pytest
from pydantic import ValidationError

from docs_fetcher.config import FetchConfig, Settings, load_fetch_config
from docs_fetcher.errors import DocsFetcherError, ErrorCode


@pytest.fixture
def isolated_settings(tmp_path):
    """Settings pointing at a temp cache and a config file that does not exist."""
    test_settings = Settings(
        cache_dir=str(tmp_path / "cache"),
        config_file=str(tmp_path / "docs-fetcher.config.json"),
    )
    with mock.patch("docs_fetcher.config.settings", test_settings):
        yield test_settings


# -----------------------------------------------------------------------
# Settings
# -----------------------------------------------------------------------


def test_settings_defaults():
    """Defaults match the documented crawl limits."""
    with mock.patch.dict(os.environ, {}, clear=True):
        s = Settings()
    assert s.limit == 15
    assert s.max_depth == 3
    assert s.delay == 1000
    assert s.log_level == "INFO"


def test_settings_from_env():
    """DOCS_FETCHER_* environment variables override defaults."""
    env = {"DOCS_FETCHER_LIMIT": "40", "DOCS_FETCHER_LOG_LEVEL": "DEBUG"}
    with mock.patch.dict(os.environ, env, clear=True):
        s = Settings()
    assert s.limit == 40
    assert s.log_level == "DEBUG"


def test_settings_cache_dir(tmp_path):
    """CACHE_DIR wins over the default data directory."""
    assert Settings(cache_dir=str(tmp_path)).get_cache_dir() == tmp_path
    assert Settings(cache_dir="").get_cache_dir() == (
        Path.home() / ".docs-fetcher" / "cache"
    )


# -----------------------------------------------------------------------
# FetchConfig
# -----------------------------------------------------------------------


def test_fetch_config_defaults():
    config = FetchConfig()
    assert config.limit == 15
    assert config.max_depth == 3
    assert config.delay == 1000
    assert config.package_docs_file == "package-docs.json"
    assert config.cache_max_age_days == 7
    assert "**/node_modules/**" in config.exclude_paths
    assert config.root_dir == str(Path.cwd())


def test_fetch_config_accepts_camel_case():
    config = FetchConfig.model_validate(
        {"baseUrl": "https://example.com", "maxDepth": 1, "packageDocsFile": "d.json"}
    )
    assert config.base_url == "https://example.com"
    assert config.max_depth == 1
    assert config.package_docs_file == "d.json"


def test_fetch_config_is_frozen():
    config = FetchConfig()
    with pytest.raises(ValidationError):
        config.limit = 99


@pytest.mark.parametrize(
    "field, value",
    [("limit", 0), ("max_depth", -1), ("delay", -5), ("timeout", 0)],
)
def test_fetch_config_rejects_bad_values(field, value):
    with pytest.raises(ValidationError):
        FetchConfig(**{field: value})


def test_fetch_config_catalog_path(tmp_path):
    config = FetchConfig(cache_dir=str(tmp_path), package_docs_file="docs.json")
    assert config.get_catalog_path() == tmp_path / "docs.json"


# -----------------------------------------------------------------------
# load_fetch_config
# -----------------------------------------------------------------------


def test_load_uses_settings_when_no_file(isolated_settings, tmp_path):
    config = load_fetch_config()
    assert config.limit == isolated_settings.limit
    assert config.get_cache_dir() == tmp_path / "cache"


def test_load_picks_up_default_config_file(isolated_settings):
    Path(isolated_settings.config_file).write_text(json.dumps({"limit": 4}))
    assert load_fetch_config().limit == 4


def test_load_merges_file_and_overrides(isolated_settings, tmp_path):
    path = tmp_path / "custom.json"
    path.write_text(
        json.dumps(
            {
                "baseUrl": "https://example.com/docs",
                "limit": 25,
                "maxDepth": 2,
                "excludePackages": ["left-pad"],
                "unknownKey": True,
            }
        )
    )

    config = load_fetch_config(path, limit=5, delay=None)

    assert config.base_url == "https://example.com/docs"
    assert config.limit == 5
    assert config.max_depth == 2
    assert config.delay == isolated_settings.delay
    assert config.exclude_packages == ("left-pad",)


def test_load_missing_explicit_file(isolated_settings, tmp_path):
    with pytest.raises(DocsFetcherError) as exc_info:
        load_fetch_config(tmp_path / "nope.json")
    assert exc_info.value.code == ErrorCode.CONFIG_LOAD_ERROR


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"limit": 0}'])
def test_load_bad_file(isolated_settings, tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(DocsFetcherError) as exc_info:
        load_fetch_config(path)
    assert exc_info.value.code == ErrorCode.CONFIG_LOAD_ERROR
    assert "CONFIG_LOAD_ERROR" in str(exc_info.value)
