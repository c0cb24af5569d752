"""Periodic reachability checks of the long URLs behind short links."""

from __future__ import annotations

import http.client
import logging
import threading
import urllib.error
import urllib.request
from datetime import timedelta

from shortlink.models import Link
from shortlink.repository import LinkRepository, RepositoryError

logger = logging.getLogger(__name__)

_STATE_NAMES = {True: "ACCESSIBLE", False: "INACCESSIBLE"}


def format_state(accessible: bool) -> str:
    return _STATE_NAMES[bool(accessible)]


class UrlMonitor:
    """Checks every stored link at a fixed interval and reports state changes."""

    def __init__(
        self, link_repo: LinkRepository, interval: timedelta | float, timeout: float = 5.0
    ) -> None:
        if isinstance(interval, timedelta):
            interval = interval.total_seconds()
        if interval <= 0:
            raise ValueError("monitor interval must be positive")
        self._link_repo = link_repo
        self.interval = float(interval)
        self.timeout = timeout
        self._known_states: dict[int, bool] = {}
        self._lock = threading.Lock()
        self._stopped = threading.Event()

    @property
    def known_states(self) -> dict[int, bool]:
        """Last observed accessibility per link id."""
        with self._lock:
            return dict(self._known_states)

    def start(self) -> None:
        """Check now, then every interval, until stop() is called. Blocks."""
        logger.info("[MONITOR] Starting URL monitor with an interval of %ss...", self.interval)
        self.check_urls()
        while not self._stopped.wait(self.interval):
            self.check_urls()

    def stop(self) -> None:
        self._stopped.set()

    def check_urls(self) -> list[tuple[Link, bool, bool]]:
        """Check every link once; return (link, previous, current) for each change."""
        try:
            links = self._link_repo.get_all_links()
        except RepositoryError as exc:
            logger.error("[MONITOR] Error retrieving links for monitoring: %s", exc)
            return []

        changes = []
        for link in links:
            current = self.is_url_accessible(link.long_url)
            with self._lock:
                previous = self._known_states.get(link.id)
                self._known_states[link.id] = current
            if previous is None:
                logger.info(
                    "[MONITOR] Initial state for link %s (%s): %s",
                    link.short_code, link.long_url, format_state(current),
                )
            elif previous != current:
                logger.warning(
                    "[NOTIFICATION] Link %s (%s) went from %s to %s!",
                    link.short_code, link.long_url,
                    format_state(previous), format_state(current),
                )
                changes.append((link, previous, current))
        return changes

    def is_url_accessible(self, url: str) -> bool:
        """True when a HEAD request to ``url`` answers with a 2xx or 3xx status."""
        request = urllib.request.Request(url, method="HEAD")
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                status = response.status
        except urllib.error.HTTPError as exc:
            status = exc.code
        except (http.client.HTTPException, OSError, ValueError) as exc:
            logger.warning("[MONITOR] Error accessing URL '%s': %s", url, exc)
            return False
        return 200 <= status < 400