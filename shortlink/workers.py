"""Background threads that persist click events."""

from __future__ import annotations

import logging
import queue
import threading

from shortlink.models import Click
from shortlink.repository import ClickRepository

logger = logging.getLogger(__name__)


def _click_worker(events: queue.Queue, click_repo: ClickRepository) -> None:
    for event in iter(events.get, None):
        try:
            click_repo.create_click(
                Click(
                    link_id=event.link_id,
                    timestamp=event.timestamp,
                    user_agent=event.user_agent,
                    ip_address=event.ip_address,
                )
            )
        except Exception as exc:
            logger.error(
                "Failed to save click for LinkID %s (UserAgent: %s, IP: %s): %s",
                event.link_id, event.user_agent, event.ip_address, exc,
            )
        else:
            logger.info("Click recorded successfully for LinkID %s", event.link_id)
        finally:
            events.task_done()
    events.task_done()


def start_click_workers(
    worker_count: int, events: queue.Queue, click_repo: ClickRepository
) -> list[threading.Thread]:
    """Start ``worker_count`` daemon threads draining ``events`` into ``click_repo``.

    A worker stops when it takes ``None`` from the queue.
    """
    logger.info("Starting %d click worker(s)...", max(worker_count, 0))
    threads = [
        threading.Thread(target=_click_worker, args=(events, click_repo), daemon=True)
        for _ in range(worker_count)
    ]
    for thread in threads:
        thread.start()
    return threads