"""Business logic for links and clicks."""

from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timezone

from shortlink.models import (
    Click,
    ClickEvent,
    Link,
    LinkNotFoundError,
    ShortCodeGenerationError,
)
from shortlink.repository import (
    ClickRepository,
    LinkRepository,
    RecordNotFoundError,
    RepositoryError,
)

logger = logging.getLogger(__name__)

CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits
SHORT_CODE_LENGTH = 6
MAX_RETRIES = 5


class LinkService:
    """Creates short links and looks them up with their statistics."""

    def __init__(self, link_repo: LinkRepository, click_repo: ClickRepository) -> None:
        self._link_repo = link_repo
        self._click_repo = click_repo

    def generate_short_code(self, length: int = SHORT_CODE_LENGTH) -> str:
        """Return a random code of ``length`` characters drawn from CHARSET."""
        if length < 0:
            raise ValueError("short code length must not be negative")
        return "".join(secrets.choice(CHARSET) for _ in range(length))

    def _unique_short_code(self) -> str:
        for attempt in range(1, MAX_RETRIES + 1):
            code = self.generate_short_code(SHORT_CODE_LENGTH)
            try:
                self._link_repo.get_link_by_short_code(code)
            except RecordNotFoundError:
                return code
            except RepositoryError as exc:
                raise RepositoryError(
                    f"database error checking short code uniqueness: {exc}"
                ) from exc
            logger.info(
                "Short code '%s' already exists, retrying generation (%d/%d)...",
                code,
                attempt,
                MAX_RETRIES,
            )
        raise ShortCodeGenerationError()

    def create_link(self, long_url: str) -> Link:
        """Store a new link for ``long_url`` under a fresh unique short code."""
        link = Link(
            short_code=self._unique_short_code(),
            long_url=long_url,
            created_at=datetime.now(timezone.utc),
        )
        try:
            self._link_repo.create_link(link)
        except RepositoryError as exc:
            raise RepositoryError(f"failed to create link in database: {exc}") from exc
        return link

    def get_link_by_short_code(self, short_code: str) -> Link:
        """Return the link for ``short_code`` or raise LinkNotFoundError."""
        try:
            return self._link_repo.get_link_by_short_code(short_code)
        except RecordNotFoundError as exc:
            raise LinkNotFoundError() from exc
        except RepositoryError as exc:
            raise RepositoryError(f"database error retrieving link: {exc}") from exc

    def get_link_stats(self, short_code: str) -> tuple[Link, int]:
        """Return the link for ``short_code`` and its total number of clicks."""
        link = self.get_link_by_short_code(short_code)
        try:
            total = self._click_repo.count_clicks_by_link_id(link.id)
        except RepositoryError as exc:
            raise RepositoryError(f"failed to count clicks: {exc}") from exc
        return link, total


class ClickService:
    """Persists and queries clicks."""

    def __init__(self, click_repo: ClickRepository) -> None:
        self._click_repo = click_repo

    def process_click_event(self, event: ClickEvent) -> Click:
        """Turn ``event`` into a stored click and return it."""
        click = Click(
            link_id=event.link_id,
            timestamp=event.timestamp,
            user_agent=event.user_agent,
            ip_address=event.ip_address,
        )
        try:
            self._click_repo.create_click(click)
        except RepositoryError as exc:
            raise RepositoryError(f"failed to create click: {exc}") from exc
        return click

    def get_clicks_by_link_id(self, link_id: int) -> list[Click]:
        try:
            return self._click_repo.get_clicks_by_link_id(link_id)
        except RepositoryError as exc:
            raise RepositoryError(f"failed to get clicks: {exc}") from exc

    def count_clicks_by_link_id(self, link_id: int) -> int:
        try:
            return self._click_repo.count_clicks_by_link_id(link_id)
        except RepositoryError as exc:
            raise RepositoryError(f"failed to count clicks: {exc}") from exc