from typing import Optional


class StyleSyncError(Exception):
    """Base class for failures surfaced by providers and the pipeline."""


class UnexpectedStatus(StyleSyncError):
    """A provider call returned a status other than the expected one.

    The response body is kept as the message so that it ends up in the logs.
    """

    def __init__(self, status: Optional[int], body: str, url: Optional[str] = None) -> None:
        super().__init__(body or f"Unexpected status {status}")
        self.status = status
        self.body = body
        self.url = url


class DecodeError(StyleSyncError):
    """Response body could not be decoded."""


class AlbumDropped(StyleSyncError):
    """All attempts to resolve and append an album failed."""

    def __init__(self, title: str, attempts: int, last_error: Exception) -> None:
        super().__init__(f"Giving up on {title} after {attempts} attempts: {last_error}")
        self.title = title
        self.attempts = attempts
        self.last_error = last_error


class TransportError(StyleSyncError):
    """The request never produced a response (connection reset, timeout, DNS)."""
