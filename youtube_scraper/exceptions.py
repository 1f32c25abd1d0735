"""Exception hierarchy for the YouTube comment scraper."""

from typing import Optional


class ScraperError(Exception):
    """Base class for all scraper errors."""


class FetchAttemptError(ScraperError):
    """A single request attempt failed; retried by the backoff decorator."""

    def __init__(self, reason: str, status: Optional[int] = None):
        self.reason = reason
        self.status = status
        super().__init__(reason)


class FetchExhausted(ScraperError):
    """Every attempt of a request failed."""

    def __init__(self, url: str, attempts: int, last_reason: str):
        self.url = url
        self.attempts = attempts
        self.last_reason = last_reason
        super().__init__(f"Failed fetching {url} after {attempts} attempts: {last_reason}")


class PageWalkFailed(ScraperError):
    """The outer pagination could not fetch a page."""

    def __init__(self, seed_id: str, cause: Exception):
        self.seed_id = seed_id
        self.cause = cause
        super().__init__(f"Pagination for {seed_id} aborted: {cause}")


class MissingIdentifier(ScraperError):
    """No video id was supplied and none could be derived from the active context."""

    def __init__(self, message: str = "Video ID not provided."):
        super().__init__(message)


class MissingCredential(ScraperError):
    """The API key is absent from the credential store."""

    def __init__(self, message: str = "YouTube API key not set."):
        super().__init__(message)


class IngestionFailed(ScraperError):
    """An ingestion run terminated without producing records."""

    def __init__(self, identifier: Optional[str], cause: Exception):
        self.identifier = identifier
        self.cause = cause
        super().__init__(str(cause))


class AnalysisServiceError(ScraperError):
    """The downstream classification service rejected or failed a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class StorageError(ScraperError):
    """The key-value store could not be read or written."""
