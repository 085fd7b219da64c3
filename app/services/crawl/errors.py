"""Error taxonomy for the fetch -> extract -> feed pipeline.

Every failure that can end a request is one of these kinds. Each carries
structured context plus the HTTP status the boundary should answer with.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class FeedError(Exception):
    """Base class for all pipeline errors."""

    http_status: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class TransportError(FeedError):
    """Network failure, non-success status or an unreadable body."""

    http_status = 502

    def __init__(self, message: str, *, url: str, status_code: Optional[int] = None) -> None:
        details: Dict[str, Any] = {"url": url}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)
        self.url = url
        self.status_code = status_code
        # A missing work upstream is a missing work for our caller too
        if status_code == 404:
            self.http_status = 404


class ExtractionError(FeedError):
    """The document was fetched but does not project onto a Work."""

    http_status = 502

    def __init__(self, message: str, *, field: str, chapter: Optional[int] = None, **extra: Any) -> None:
        details: Dict[str, Any] = {"field": field}
        if chapter is not None:
            details["chapter"] = chapter
        details.update(extra)
        super().__init__(message, details)
        self.field = field
        self.chapter = chapter


class MissingFieldError(ExtractionError):
    def __init__(self, field: str, *, chapter: Optional[int] = None) -> None:
        super().__init__(f"Missing {field}", field=field, chapter=chapter)


class FormatError(ExtractionError):
    def __init__(self, field: str, value: str, *, chapter: Optional[int] = None) -> None:
        super().__init__(f"Malformed {field}: {value!r}", field=field, chapter=chapter, value=value)
        self.value = value


class SerializationInvariantError(FeedError):
    """A complete Work failed to serialize. Indicates a bug, not bad input."""

    http_status = 500


class ConfigError(FeedError):
    """Invalid startup configuration."""


class CredentialConfigError(ConfigError):
    """Only one half of the username/password pair was provided."""
