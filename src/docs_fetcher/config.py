"""Configuration settings for the docs fetcher."""

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings

from docs_fetcher.errors import DocsFetcherError, ErrorCode


def _default_data_dir() -> Path:
    """Get default data directory (~/.docs-fetcher/)."""
    return Path.home() / ".docs-fetcher"


_DEFAULT_SCAN_PATHS = ("package.json", "**/package.json")

_DEFAULT_EXCLUDE_PATHS = (
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/coverage/**",
    "**/.git/**",
)


class Settings(BaseSettings):
    """Process-wide defaults.

    Environment variables (prefix ``DOCS_FETCHER_``):
    - CACHE_DIR: Snapshot root (default: ~/.docs-fetcher/cache)
    - CONFIG_FILE: JSON config merged over these defaults
        (default: docs-fetcher.config.json in the working directory)
    - LOG_LEVEL: loguru level (default: INFO)
    - LIMIT: Maximum pages per crawl (default: 15)
    - MAX_DEPTH: Maximum link-following depth (default: 3)
    - DELAY: Milliseconds between fetches of the same host (default: 1000)
    - TIMEOUT: Per-request timeout in seconds (default: 30)
    """

    cache_dir: str = ""
    config_file: str = "docs-fetcher.config.json"

    # Crawl
    limit: int = 15
    max_depth: int = 3
    delay: int = 1000
    timeout: int = 30

    # Logging
    log_level: str = "INFO"

    model_config = {"env_prefix": "DOCS_FETCHER_", "case_sensitive": False}

    def get_data_dir(self) -> Path:
        return _default_data_dir()

    def get_cache_dir(self) -> Path:
        """Get snapshot root.

        Uses CACHE_DIR if set, otherwise ~/.docs-fetcher/cache.
        """
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return self.get_data_dir() / "cache"

    def get_config_path(self) -> Path:
        return Path(self.config_file).expanduser()


settings = Settings()


class FetchConfig(BaseModel):
    """Immutable configuration for one fetch run.

    The crawl fields (``base_url`` through ``timeout``) drive the frontier
    and the fetch loop. The remaining fields select which packages to
    crawl and where snapshots go. JSON config files may use either
    snake_case or the camelCase names (``maxDepth``, ``packageDocsFile``).
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    # Crawl
    base_url: str = ""
    allowed_domains: tuple[str, ...] = ()
    start_paths: tuple[str, ...] = ()
    limit: int = Field(default=15, ge=1)
    max_depth: int = Field(default=3, ge=0)
    delay: int = Field(default=1000, ge=0)  # milliseconds
    timeout: int = Field(default=30, gt=0)  # seconds

    # Package discovery
    root_dir: str = Field(default_factory=lambda: str(Path.cwd()))
    scan_paths: tuple[str, ...] = _DEFAULT_SCAN_PATHS
    exclude_paths: tuple[str, ...] = _DEFAULT_EXCLUDE_PATHS
    exclude_packages: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()
    include_packages: tuple[str, ...] = ()

    # Output
    cache_dir: str = ""
    package_docs_file: str = "package-docs.json"
    cache_max_age_days: int = 7
    force_refresh: bool = False

    def get_cache_dir(self) -> Path:
        if self.cache_dir:
            return Path(self.cache_dir).expanduser()
        return settings.get_cache_dir()

    def get_catalog_path(self) -> Path:
        return self.get_cache_dir() / self.package_docs_file


# camelCase alias -> field name, for merging config files with defaults
_FIELD_NAMES: dict[str, str] = {
    (info.alias or name): name for name, info in FetchConfig.model_fields.items()
}


def _read_config_file(path: Path) -> dict:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise DocsFetcherError(
            ErrorCode.CONFIG_LOAD_ERROR, f"Failed to read config {path}: {e}"
        ) from e

    if not isinstance(raw, dict):
        raise DocsFetcherError(
            ErrorCode.CONFIG_LOAD_ERROR,
            f"Config {path} must contain a JSON object",
        )
    return {_FIELD_NAMES.get(key, key): value for key, value in raw.items()}


def load_fetch_config(path: str | Path | None = None, **overrides) -> FetchConfig:
    """Build a FetchConfig from settings, an optional JSON file and overrides.

    Precedence (lowest first): environment settings, the config file (if it
    exists), keyword overrides whose value is not None.

    Raises:
        DocsFetcherError: CONFIG_LOAD_ERROR if the file is unreadable or
            the merged values do not validate.
    """
    merged: dict = {
        "limit": settings.limit,
        "max_depth": settings.max_depth,
        "delay": settings.delay,
        "timeout": settings.timeout,
        "cache_dir": str(settings.get_cache_dir()),
    }

    config_path = Path(path).expanduser() if path else settings.get_config_path()
    if config_path.is_file():
        merged.update(_read_config_file(config_path))
    elif path:
        raise DocsFetcherError(
            ErrorCode.CONFIG_LOAD_ERROR, f"Config file not found: {config_path}"
        )

    merged.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return FetchConfig(**merged)
    except ValidationError as e:
        raise DocsFetcherError(
            ErrorCode.CONFIG_LOAD_ERROR, f"Invalid configuration: {e}"
        ) from e
