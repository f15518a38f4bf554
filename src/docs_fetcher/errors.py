"""Error types for the docs fetcher.

Only conditions that should stop a run are raised to the caller. Problems
with a single URL or page are logged and skipped by the crawl loop.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Category of a :class:`DocsFetcherError`."""

    CONFIG_LOAD_ERROR = "CONFIG_LOAD_ERROR"
    DIRECTORY_ERROR = "DIRECTORY_ERROR"
    FILE_WRITE_ERROR = "FILE_WRITE_ERROR"
    DOCUMENTATION_FETCH_ERROR = "DOCUMENTATION_FETCH_ERROR"
    DOCUMENTATION_NOT_FOUND = "DOCUMENTATION_NOT_FOUND"
    INVALID_CONTENT_TYPE = "INVALID_CONTENT_TYPE"
    INVALID_URL = "INVALID_URL"


class DocsFetcherError(Exception):
    """Raised for failures that carry an :class:`ErrorCode`."""

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"
