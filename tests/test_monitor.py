import socket
import threading
import time
from datetime import timedelta
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest

from shortlink.models import Link
from shortlink.monitor import UrlMonitor, format_state
from shortlink.repository import (
    RepositoryError,
    SqliteLinkRepository,
    migrate,
    open_database,
)


@pytest.fixture
def server():
    statuses = {}

    class Handler(BaseHTTPRequestHandler):
        def do_HEAD(self):
            self.send_response(statuses.get(self.path, 404))
            self.end_headers()

        def log_message(self, *args):
            pass

    httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    base = f"http://127.0.0.1:{httpd.server_address[1]}"
    yield base, statuses
    httpd.shutdown()
    httpd.server_close()


@pytest.fixture
def link_repo():
    connection = open_database(":memory:")
    migrate(connection)
    yield SqliteLinkRepository(connection)
    connection.close()


class _BrokenLinkRepository:
    def get_all_links(self):
        raise RepositoryError("failed to get all links")


def _closed_port():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def test_format_state():
    assert format_state(True) == "ACCESSIBLE"
    assert format_state(False) == "INACCESSIBLE"


@pytest.mark.parametrize("interval", [0, -1, timedelta(0)])
def test_non_positive_interval_rejected(link_repo, interval):
    with pytest.raises(ValueError):
        UrlMonitor(link_repo, interval)


def test_interval_from_timedelta(link_repo):
    assert UrlMonitor(link_repo, timedelta(minutes=5)).interval == 300.0


@pytest.mark.parametrize(
    "status, expected",
    [(200, True), (204, True), (404, False), (500, False)],
)
def test_is_url_accessible_by_status(server, link_repo, status, expected):
    base, statuses = server
    statuses["/page"] = status
    monitor = UrlMonitor(link_repo, 60)
    assert monitor.is_url_accessible(base + "/page") is expected


def test_unreachable_url_is_inaccessible(link_repo):
    monitor = UrlMonitor(link_repo, 60, timeout=1)
    assert monitor.is_url_accessible(f"http://127.0.0.1:{_closed_port()}/") is False


def test_malformed_url_is_inaccessible(link_repo):
    assert UrlMonitor(link_repo, 60).is_url_accessible("not-a-url") is False


def test_check_urls_records_initial_state_and_changes(server, link_repo):
    base, statuses = server
    statuses["/up"] = 200
    statuses["/flaky"] = 200
    steady = link_repo.create_link(Link(short_code="steady", long_url=base + "/up"))
    flaky = link_repo.create_link(Link(short_code="flaky", long_url=base + "/flaky"))
    monitor = UrlMonitor(link_repo, 60)

    assert monitor.check_urls() == []
    assert monitor.known_states == {steady.id: True, flaky.id: True}

    statuses["/flaky"] = 503
    changes = monitor.check_urls()
    assert [(link.id, before, after) for link, before, after in changes] == [
        (flaky.id, True, False)
    ]
    assert monitor.known_states == {steady.id: True, flaky.id: False}

    assert monitor.check_urls() == []


def test_check_urls_survives_repository_error():
    monitor = UrlMonitor(_BrokenLinkRepository(), 60)
    assert monitor.check_urls() == []
    assert monitor.known_states == {}


def test_start_runs_until_stopped(server, link_repo):
    base, statuses = server
    statuses["/up"] = 200
    link = link_repo.create_link(Link(short_code="loop", long_url=base + "/up"))
    monitor = UrlMonitor(link_repo, 0.05)
    thread = threading.Thread(target=monitor.start, daemon=True)
    thread.start()
    deadline = time.monotonic() + 5
    while not monitor.known_states and time.monotonic() < deadline:
        time.sleep(0.01)
    monitor.stop()
    thread.join(timeout=5)
    assert not thread.is_alive()
    assert monitor.known_states == {link.id: True}