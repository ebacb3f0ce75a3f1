"""
Custom error classes for Sales Arena.
Structured error handling with error codes across the pipeline.

Hierarchy:
    ArenaError
    ├── APIError
    │   └── APITimeoutError
    └── DataError
        ├── ConfigError
        ├── SchemaValidationError
        └── DataFetchError

Transport and document errors (APIError, SchemaValidationError,
DataFetchError) are recovered by the snapshot poller. ConfigError is a
wiring bug and is always raised to the caller.
"""


class ArenaError(Exception):
    """Base exception for all Sales Arena errors."""

    def __init__(self, message: str, code: str = "UNKNOWN", details: dict = None):
        self.code = code
        self.details = details or {}
        super().__init__(f"[{code}] {message}")


# --- API Errors ---

class APIError(ArenaError):
    """The sheet export endpoint answered with a failure."""

    def __init__(self, message: str, code: str = "API_ERROR",
                 status_code: int = None, url: str = None, **kwargs):
        self.status_code = status_code
        self.url = url
        details = {"status_code": status_code, "url": url, **kwargs}
        super().__init__(message, code=code, details=details)


class APITimeoutError(APIError):
    """Request timed out."""

    def __init__(self, url: str, timeout: float):
        super().__init__(
            f"Request timed out after {timeout}s: {url}",
            code="API_TIMEOUT", url=url, timeout=timeout,
        )


# --- Data Errors ---

class DataError(ArenaError):
    """Base class for data processing errors."""
    pass


class ConfigError(DataError):
    """Invalid configuration or filter parameters."""

    def __init__(self, message: str, setting: str = None):
        super().__init__(
            message, code="CONFIG_ERROR",
            details={"setting": setting},
        )


class SchemaValidationError(DataError):
    """The fetched document doesn't have a usable tabular shape."""

    def __init__(self, message: str, field: str = None):
        super().__init__(
            message, code="SCHEMA_INVALID", details={"field": field},
        )


class DataFetchError(DataError):
    """Failed to retrieve the sheet export."""

    def __init__(self, message: str, source: str = None):
        super().__init__(
            message, code="DATA_FETCH_FAILED", details={"source": source},
        )
