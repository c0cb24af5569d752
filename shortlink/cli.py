"""Command line interface: migrations, link creation, statistics and the API server."""

from __future__ import annotations

import argparse
import contextlib
import logging
import queue
import signal
import sys
import threading
import time
from collections.abc import Iterator, Sequence
from contextlib import closing
from datetime import timedelta
from urllib.parse import urlsplit

from shortlink.api import create_app
from shortlink.config import Config, load_config
from shortlink.models import InvalidURLError, LinkNotFoundError, ShortenerError
from shortlink.monitor import UrlMonitor
from shortlink.repository import (
    RepositoryError,
    SqliteClickRepository,
    SqliteLinkRepository,
    migrate,
    open_database,
)
from shortlink.services import ClickService, LinkService
from shortlink.workers import start_click_workers

logger = logging.getLogger(__name__)

PROG = "url-shortener"
SHUTDOWN_GRACE_SECONDS = 5.0

_DESCRIPTION = (
    "A URL shortening service with a REST API and a command line interface. "
    "It includes an API server for shortening and redirection, and commands "
    "for administration. Use 'url-shortener <command> --help' for details "
    "on a command."
)


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit status 1."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for the ``url-shortener`` command and its subcommands."""
    parser = _ArgumentParser(prog=PROG, description=_DESCRIPTION)
    parser.add_argument(
        "--config",
        metavar="PATH",
        default=None,
        help="configuration file or directory (default: ./configs/config.yaml)",
    )
    commands = parser.add_subparsers(dest="command", metavar="command")

    create = commands.add_parser(
        "create",
        help="Create a short URL from a long URL.",
        description=(
            "Shorten the given long URL and print the generated short code. "
            'Example: url-shortener create --url="https://www.google.com/search?q=go+lang"'
        ),
    )
    create.add_argument("--url", required=True, help="long URL to shorten")

    commands.add_parser(
        "migrate",
        help="Create or update the database tables.",
        description=(
            "Connect to the configured SQLite database and create the "
            "'links' and 'clicks' tables."
        ),
    )

    stats = commands.add_parser(
        "stats",
        help="Show statistics (number of clicks) for a short link.",
        description=(
            "Print the total number of clicks for a short code. "
            'Example: url-shortener stats --code="xyz123"'
        ),
    )
    stats.add_argument("--code", required=True, help="short code to show statistics for")

    commands.add_parser(
        "run-server",
        help="Start the URL shortening API server and background workers.",
        description=(
            "Open the database, start the click workers and the URL monitor, "
            "then serve the HTTP API."
        ),
    )
    return parser


def _contains_control(text: str) -> bool:
    return any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in text)


def _split_scheme(raw: str) -> tuple[str, str]:
    for index, ch in enumerate(raw):
        if ch.isascii() and ch.isalpha():
            continue
        if ch.isascii() and (ch.isdigit() or ch in "+-."):
            if index == 0:
                return "", raw
            continue
        if ch == ":":
            if index == 0:
                raise InvalidURLError(f'parse "{raw}": missing protocol scheme')
            return raw[:index], raw[index + 1:]
        return "", raw
    return "", raw


def _parse_request_uri(raw: str) -> None:
    """Validate ``raw`` as an absolute URI or an absolute path, as in an HTTP request line."""
    if raw == "":
        raise InvalidURLError('parse "": empty url')
    if _contains_control(raw):
        raise InvalidURLError(f'parse "{raw}": net/url: invalid control character in URL')
    if raw == "*":
        return
    scheme, rest = _split_scheme(raw)
    rest = rest.split("?", 1)[0]
    if not rest.startswith("/"):
        if scheme:
            return
        raise InvalidURLError(f'parse "{raw}": invalid URI for request')
    if scheme and rest.startswith("//"):
        try:
            urlsplit(raw).port
        except ValueError as exc:
            raise InvalidURLError(f'parse "{raw}": {exc}') from exc


def _load(path: str | None) -> Config | None:
    try:
        return load_config(path)
    except ShortenerError as exc:
        logger.warning(
            "Problem loading the configuration: %s. Using default values.", exc
        )
        return None


def _fatal(message: str) -> int:
    logger.critical("FATAL: %s", message)
    print(f"FATAL: {message}", file=sys.stderr)
    return 1


def _services(connection) -> tuple[LinkService, SqliteLinkRepository, SqliteClickRepository]:
    link_repo = SqliteLinkRepository(connection)
    click_repo = SqliteClickRepository(connection)
    return LinkService(link_repo, click_repo), link_repo, click_repo


def _run_create(args: argparse.Namespace, cfg: Config | None) -> int:
    if not args.url:
        print("Error: the --url flag is required", file=sys.stderr)
        return 1
    try:
        _parse_request_uri(args.url)
    except InvalidURLError as exc:
        print(f"Error: invalid URL: {exc}", file=sys.stderr)
        return 1
    if cfg is None:
        return _fatal("configuration not loaded")

    try:
        connection = open_database(cfg.database.name)
    except ShortenerError as exc:
        return _fatal(f"failed to connect to the database: {exc}")
    with closing(connection):
        link_service, _, _ = _services(connection)
        try:
            link = link_service.create_link(args.url)
        except (ShortenerError, RepositoryError, ValueError) as exc:
            logger.error("Error creating the link: %s", exc)
            print(f"Error creating the link: {exc}", file=sys.stderr)
            return 1

    print("Short URL created successfully:")
    print(f"Code: {link.short_code}")
    print(f"Full URL: {cfg.server.base_url}/{link.short_code}")
    return 0


def _run_migrate(cfg: Config | None) -> int:
    if cfg is None:
        return _fatal("configuration not loaded")
    try:
        connection = open_database(cfg.database.name)
    except ShortenerError as exc:
        return _fatal(f"failed to connect to the database: {exc}")
    with closing(connection):
        try:
            migrate(connection)
        except RepositoryError as exc:
            return _fatal(f"migrations failed: {exc}")
    print("Database migrations completed successfully.")
    return 0


def _run_stats(args: argparse.Namespace, cfg: Config | None) -> int:
    if not args.code:
        print("Error: the --code flag is required", file=sys.stderr)
        return 1
    if cfg is None:
        return _fatal("configuration not loaded")
    try:
        connection = open_database(cfg.database.name)
    except ShortenerError as exc:
        return _fatal(f"failed to connect to the database: {exc}")
    with closing(connection):
        link_service, _, _ = _services(connection)
        try:
            link, total_clicks = link_service.get_link_stats(args.code)
        except LinkNotFoundError:
            print(f"Error: no link found with code '{args.code}'", file=sys.stderr)
            return 1
        except (ShortenerError, RepositoryError) as exc:
            logger.error("Error retrieving statistics: %s", exc)
            print(f"Error retrieving statistics: {exc}", file=sys.stderr)
            return 1

    print(f"Statistics for short code: {link.short_code}")
    print(f"Long URL: {link.long_url}")
    print(f"Total clicks: {total_clicks}")
    return 0


@contextlib.contextmanager
def _interrupt_on_sigterm() -> Iterator[None]:
    """Turn SIGTERM into KeyboardInterrupt while the server runs in the main thread."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum, frame):
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def _stop_workers(events: queue.Queue, workers: list[threading.Thread]) -> None:
    deadline = time.monotonic() + SHUTDOWN_GRACE_SECONDS
    for _ in workers:
        try:
            events.put(None, timeout=max(deadline - time.monotonic(), 0.01))
        except queue.Full:
            break
    for worker in workers:
        worker.join(timeout=max(deadline - time.monotonic(), 0))


def _run_server(cfg: Config | None) -> int:
    if cfg is None:
        return _fatal("configuration not loaded")
    try:
        connection = open_database(cfg.database.name)
    except ShortenerError as exc:
        return _fatal(f"failed to connect to the database: {exc}")

    with closing(connection):
        link_service, link_repo, click_repo = _services(connection)
        logger.info("Repositories initialised.")
        ClickService(click_repo)
        logger.info("Services initialised.")

        interval = timedelta(minutes=cfg.monitor.interval_minutes)
        try:
            url_monitor = UrlMonitor(link_repo, interval)
        except ValueError as exc:
            return _fatal(f"invalid monitor interval: {exc}")

        buffer_size = max(cfg.analytics.buffer_size, 0)
        events: queue.Queue = queue.Queue(maxsize=buffer_size)
        workers = start_click_workers(cfg.analytics.worker_count, events, click_repo)
        logger.info(
            "Click event queue initialised with a buffer of %d. %d click worker(s) started.",
            buffer_size,
            len(workers),
        )

        threading.Thread(target=url_monitor.start, name="url-monitor", daemon=True).start()
        logger.info("URL monitor started with an interval of %s.", interval)

        app = create_app(link_service, buffer_size, cfg.server.base_url, events)
        logger.info("API routes configured.")
        logger.info("HTTP server starting on port %d", cfg.server.port)
        logger.info("Base URL: %s", cfg.server.base_url)

        status = 0
        with _interrupt_on_sigterm():
            try:
                app.run(
                    host="0.0.0.0",
                    port=cfg.server.port,
                    threaded=True,
                    use_reloader=False,
                )
            except KeyboardInterrupt:
                logger.info("Shutdown signal received. Stopping the server...")
            except OSError as exc:
                status = _fatal(f"failed to start the HTTP server: {exc}")

        url_monitor.stop()
        logger.info("Shutting down... giving the workers time to finish.")
        _stop_workers(events, workers)
        logger.info("Server stopped cleanly.")
        return status


def _exit_status(code: object) -> int:
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    print(code, file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface and return the exit status."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return _exit_status(exc.code)

    if args.command is None:
        parser.print_help()
        return 0

    cfg = _load(args.config)
    if args.command == "create":
        return _run_create(args, cfg)
    if args.command == "migrate":
        return _run_migrate(cfg)
    if args.command == "stats":
        return _run_stats(args, cfg)
    return _run_server(cfg)


if __name__ == "__main__":
    sys.exit(main())