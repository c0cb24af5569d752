"""SQLite storage for links and clicks."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import Protocol

from shortlink.models import Click, DatabaseConnectionError, Link

_SCHEMA = """
CREATE TABLE IF NOT EXISTS links (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    short_code VARCHAR(10) NOT NULL,
    long_url TEXT NOT NULL,
    created_at DATETIME
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_links_short_code ON links (short_code);
CREATE TABLE IF NOT EXISTS clicks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    link_id INTEGER REFERENCES links (id),
    timestamp DATETIME,
    user_agent VARCHAR(255),
    ip_address VARCHAR(50)
);
CREATE INDEX IF NOT EXISTS idx_clicks_link_id ON clicks (link_id);
"""

_LINK_COLUMNS = "id, short_code, long_url, created_at"
_CLICK_COLUMNS = "id, link_id, timestamp, user_agent, ip_address"


class RecordNotFoundError(LookupError):
    """No row matched the query."""

    def __init__(self, message: str = "record not found") -> None:
        super().__init__(message)


class RepositoryError(Exception):
    """A storage operation failed."""


class LinkRepository(Protocol):
    def create_link(self, link: Link) -> Link: ...
    def get_link_by_short_code(self, short_code: str) -> Link: ...
    def get_all_links(self) -> list[Link]: ...
    def count_clicks_by_link_id(self, link_id: int) -> int: ...


class ClickRepository(Protocol):
    def create_click(self, click: Click) -> Click: ...
    def get_clicks_by_link_id(self, link_id: int) -> list[Click]: ...
    def count_clicks_by_link_id(self, link_id: int) -> int: ...


def open_database(name: str) -> sqlite3.Connection:
    """Open the SQLite database file ``name``, usable from several threads."""
    try:
        return sqlite3.connect(name, check_same_thread=False)
    except sqlite3.Error as exc:
        raise DatabaseConnectionError(f"database connection error: {exc}") from exc


def migrate(connection: sqlite3.Connection) -> None:
    """Create the links and clicks tables and their indexes if missing."""
    try:
        connection.executescript(_SCHEMA)
    except sqlite3.Error as exc:
        raise RepositoryError(f"migration failed: {exc}") from exc


def _execute(
    connection: sqlite3.Connection, action: str, sql: str, params: tuple = (), write: bool = False
) -> sqlite3.Cursor:
    try:
        if write:
            with connection:
                return connection.execute(sql, params)
        return connection.execute(sql, params)
    except sqlite3.Error as exc:
        raise RepositoryError(f"failed to {action}: {exc}") from exc


def _count_clicks(connection: sqlite3.Connection, link_id: int) -> int:
    sql = "SELECT COUNT(*) FROM clicks WHERE link_id = ?"
    return int(_execute(connection, "count clicks", sql, (link_id,)).fetchone()[0])


def _link_from_row(row: tuple) -> Link:
    link_id, short_code, long_url, created_at = row
    return Link(
        id=link_id,
        short_code=short_code,
        long_url=long_url,
        created_at=datetime.fromisoformat(created_at),
    )


def _click_from_row(row: tuple) -> Click:
    click_id, link_id, timestamp, user_agent, ip_address = row
    return Click(
        id=click_id,
        link_id=link_id,
        timestamp=datetime.fromisoformat(timestamp),
        user_agent=user_agent or "",
        ip_address=ip_address or "",
    )


class SqliteLinkRepository:
    """Links stored in the ``links`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_link(self, link: Link) -> Link:
        """Insert ``link``, set its id and return it."""
        cursor = _execute(
            self._connection,
            "create link",
            "INSERT INTO links (short_code, long_url, created_at) VALUES (?, ?, ?)",
            (link.short_code, link.long_url, link.created_at.isoformat()),
            write=True,
        )
        link.id = cursor.lastrowid
        return link

    def get_link_by_short_code(self, short_code: str) -> Link:
        """Return the link with ``short_code`` or raise RecordNotFoundError."""
        sql = f"SELECT {_LINK_COLUMNS} FROM links WHERE short_code = ? ORDER BY id LIMIT 1"
        row = _execute(self._connection, "get link", sql, (short_code,)).fetchone()
        if row is None:
            raise RecordNotFoundError()
        return _link_from_row(row)

    def get_all_links(self) -> list[Link]:
        sql = f"SELECT {_LINK_COLUMNS} FROM links ORDER BY id"
        return [_link_from_row(row) for row in _execute(self._connection, "get all links", sql)]

    def count_clicks_by_link_id(self, link_id: int) -> int:
        return _count_clicks(self._connection, link_id)


class SqliteClickRepository:
    """Clicks stored in the ``clicks`` table."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create_click(self, click: Click) -> Click:
        """Insert ``click``, set its id and return it."""
        cursor = _execute(
            self._connection,
            "create click",
            "INSERT INTO clicks (link_id, timestamp, user_agent, ip_address) VALUES (?, ?, ?, ?)",
            (click.link_id, click.timestamp.isoformat(), click.user_agent, click.ip_address),
            write=True,
        )
        click.id = cursor.lastrowid
        return click

    def get_clicks_by_link_id(self, link_id: int) -> list[Click]:
        sql = f"SELECT {_CLICK_COLUMNS} FROM clicks WHERE link_id = ? ORDER BY id"
        rows = _execute(self._connection, "get clicks", sql, (link_id,))
        return [_click_from_row(row) for row in rows]

    def count_clicks_by_link_id(self, link_id: int) -> int:
        return _count_clicks(self._connection, link_id)