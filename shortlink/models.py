"""Domain records and errors for the URL shortener."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

SHORT_CODE_MAX_LENGTH = 10


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Link:
    """A shortened link: a unique short code pointing at a long URL."""

    short_code: str
    long_url: str
    created_at: datetime = field(default_factory=_now)
    id: int | None = None

    def __post_init__(self) -> None:
        if not self.short_code:
            raise ValueError("short code must not be empty")
        if len(self.short_code) > SHORT_CODE_MAX_LENGTH:
            raise ValueError(
                f"short code must be at most {SHORT_CODE_MAX_LENGTH} characters"
            )
        if not self.long_url:
            raise ValueError("long URL must not be empty")


@dataclass
class Click:
    """A recorded visit of a short link."""

    link_id: int
    timestamp: datetime = field(default_factory=_now)
    user_agent: str = ""
    ip_address: str = ""
    id: int | None = None
    link: Link | None = None


@dataclass(frozen=True)
class ClickEvent:
    """A click waiting to be persisted by a worker."""

    link_id: int
    timestamp: datetime
    user_agent: str
    ip_address: str


class ShortenerError(Exception):
    """Base class for all errors raised by the shortener."""

    default_message = "URL shortener error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class LinkNotFoundError(ShortenerError):
    default_message = "link not found"


class InvalidURLError(ShortenerError):
    default_message = "invalid URL format"


class DuplicateShortCodeError(ShortenerError):
    default_message = "short code already exists"


class ShortCodeGenerationError(ShortenerError):
    default_message = "failed to generate unique short code after maximum retries"


class DatabaseConnectionError(ShortenerError):
    default_message = "database connection error"


class ConfigurationLoadError(ShortenerError):
    default_message = "failed to load configuration"