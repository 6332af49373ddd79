"""Custom exceptions for the seasonal ingestion engine.

Fetch-layer and storage-layer exceptions live here to avoid circular
imports between the exchange client, the store and the orchestrator.
"No rows found" is never an exception: readers return empty lists or None.
"""


class SeasonalError(Exception):
    """Base exception for all ingestion engine errors."""


class FetchError(SeasonalError):
    """Base for failures talking to the external market-data API."""


class RateLimited(FetchError):
    """Upstream kept answering HTTP 429 after all retries were spent."""

    def __init__(self, url: str, attempts: int) -> None:
        super().__init__(f"Rate limit exceeded after {attempts} attempts: {url}")
        self.url = url
        self.attempts = attempts


class ServerError(FetchError):
    """Upstream kept answering HTTP 5xx after all retries were spent."""

    def __init__(self, url: str, status: int, attempts: int) -> None:
        super().__init__(f"Server error {status} after {attempts} attempts: {url}")
        self.url = url
        self.status = status
        self.attempts = attempts


class HttpError(FetchError):
    """Non-retryable non-2xx response (4xx other than 429)."""

    def __init__(self, status: int, body_excerpt: str) -> None:
        super().__init__(f"HTTP error {status}: {body_excerpt}")
        self.status = status
        self.body_excerpt = body_excerpt


class UnexpectedContentType(FetchError):
    """A 2xx response whose body is not JSON (e.g. an HTML error page)."""

    def __init__(self, content_type: str | None, body_excerpt: str) -> None:
        super().__init__(
            f"Expected JSON response but got {content_type!r}: {body_excerpt}"
        )
        self.content_type = content_type
        self.body_excerpt = body_excerpt


class StorageError(SeasonalError):
    """A query against the candle database failed.

    rate_limited is set when the store itself signalled throttling or
    contention; callers wait the storage cooldown before retrying.
    """

    def __init__(self, message: str, rate_limited: bool = False) -> None:
        super().__init__(message)
        self.rate_limited = rate_limited
