"""HTTP API: link creation, statistics, health check and redirection."""

from __future__ import annotations

import logging
import queue
from datetime import datetime, timezone
from urllib.parse import urlsplit

from flask import Flask, jsonify, redirect, request

from shortlink.models import ClickEvent, LinkNotFoundError, ShortenerError
from shortlink.repository import RepositoryError
from shortlink.services import LinkService

logger = logging.getLogger(__name__)

CLICK_EVENTS_KEY = "CLICK_EVENTS"


def is_valid_url(value: object) -> bool:
    """True when ``value`` is an absolute URL with a scheme and a host, fragment or opaque part."""
    if not isinstance(value, str):
        return False
    text = value.strip().lower()
    if text.startswith("file:/"):
        return True
    if not text or any(ch.isspace() or ord(ch) < 0x20 or ord(ch) == 0x7F for ch in text):
        return False
    try:
        parts = urlsplit(text)
    except ValueError:
        return False
    if not parts.scheme:
        return False
    rest = text[len(parts.scheme) + 1:]
    return bool(parts.netloc or parts.fragment or (rest and not rest.startswith("/")))


def _client_ip() -> str:
    forwarded = [ip.strip() for ip in request.headers.get("X-Forwarded-For", "").split(",")]
    real_ip = request.headers.get("X-Real-Ip", "").strip()
    return next((ip for ip in forwarded if ip), None) or real_ip or request.remote_addr or ""


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def create_app(
    link_service: LinkService,
    buffer_size: int = 1000,
    base_url: str = "http://localhost:8080",
    click_events: queue.Queue | None = None,
) -> Flask:
    """Build the Flask application serving the shortener's routes.

    Redirects put click events on ``click_events`` without blocking; a queue of
    ``buffer_size`` is created when none is given, kept in ``app.config["CLICK_EVENTS"]``.
    """
    if click_events is None:
        click_events = queue.Queue(maxsize=max(buffer_size, 0))

    app = Flask(__name__)
    app.config[CLICK_EVENTS_KEY] = click_events

    @app.get("/health")
    def health_check():
        return jsonify({"status": "ok"}), 200

    @app.post("/api/v1/links")
    def create_short_link():
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            return _error("invalid JSON request body", 400)
        long_url = payload.get("long_url")
        if long_url is None or long_url == "":
            return _error("long_url is required", 400)
        if not is_valid_url(long_url):
            return _error("long_url must be a valid URL", 400)
        try:
            link = link_service.create_link(long_url)
        except (ShortenerError, RepositoryError, ValueError) as exc:
            return _error(str(exc), 500)
        return jsonify(
            {
                "short_code": link.short_code,
                "long_url": link.long_url,
                "full_short_url": f"{base_url}/{link.short_code}",
            }
        ), 201

    @app.get("/api/v1/links/<short_code>/stats")
    def link_stats(short_code: str):
        try:
            link, total_clicks = link_service.get_link_stats(short_code)
        except LinkNotFoundError:
            return _error("Link not found", 404)
        except (ShortenerError, RepositoryError) as exc:
            logger.error("Error retrieving stats for %s: %s", short_code, exc)
            return _error("Internal server error", 500)
        return jsonify(
            {"short_code": link.short_code, "long_url": link.long_url, "total_clicks": total_clicks}
        ), 200

    @app.get("/<short_code>")
    def redirect_short_code(short_code: str):
        try:
            link = link_service.get_link_by_short_code(short_code)
        except LinkNotFoundError:
            return _error("Link not found", 404)
        except (ShortenerError, RepositoryError) as exc:
            logger.error("Error retrieving link for %s: %s", short_code, exc)
            return _error("Internal server error", 500)

        event = ClickEvent(
            link_id=link.id,
            timestamp=datetime.now(timezone.utc),
            user_agent=request.headers.get("User-Agent", ""),
            ip_address=_client_ip(),
        )
        try:
            click_events.put_nowait(event)
        except queue.Full:
            logger.warning("Click events queue is full, dropping click event for %s.", short_code)
        return redirect(link.long_url, code=302)

    return app