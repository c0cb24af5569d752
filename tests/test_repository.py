from datetime import datetime, timezone

import pytest

from shortlink.models import Click, DatabaseConnectionError, Link
from shortlink.repository import (
    RecordNotFoundError,
    RepositoryError,
    SqliteClickRepository,
    SqliteLinkRepository,
    migrate,
    open_database,
)


@pytest.fixture
def connection():
    conn = open_database(":memory:")
    migrate(conn)
    yield conn
    conn.close()


@pytest.fixture
def links(connection):
    return SqliteLinkRepository(connection)


@pytest.fixture
def clicks(connection):
    return SqliteClickRepository(connection)


def test_create_link_assigns_id_and_round_trips(links):
    created = links.create_link(Link(short_code="abc123", long_url="https://example.com"))
    assert created.id is not None and created.id > 0
    fetched = links.get_link_by_short_code("abc123")
    assert fetched == created


def test_missing_short_code_raises(links):
    with pytest.raises(RecordNotFoundError):
        links.get_link_by_short_code("nonexistent")


def test_duplicate_short_code_raises(links):
    links.create_link(Link(short_code="abc123", long_url="https://example.com"))
    with pytest.raises(RepositoryError, match="^failed to create link"):
        links.create_link(Link(short_code="abc123", long_url="https://example.org"))


def test_get_all_links_in_insertion_order(links):
    codes = ["aaa111", "bbb222", "ccc333"]
    for code in codes:
        links.create_link(Link(short_code=code, long_url=f"https://example.com/{code}"))
    assert [link.short_code for link in links.get_all_links()] == codes


def test_get_all_links_empty(links):
    assert links.get_all_links() == []


def test_clicks_filtered_by_link(links, clicks):
    first = links.create_link(Link(short_code="first1", long_url="https://example.com/1"))
    second = links.create_link(Link(short_code="secnd2", long_url="https://example.com/2"))
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    saved = clicks.create_click(
        Click(link_id=first.id, timestamp=stamp, user_agent="Test Agent", ip_address="127.0.0.1")
    )
    clicks.create_click(Click(link_id=second.id, user_agent="Other", ip_address="10.0.0.1"))

    result = clicks.get_clicks_by_link_id(first.id)
    assert result == [saved]
    assert result[0].timestamp == stamp


def test_click_counts_agree(links, clicks):
    link = links.create_link(Link(short_code="count1", long_url="https://example.com"))
    for _ in range(3):
        clicks.create_click(Click(link_id=link.id, user_agent="ua", ip_address="127.0.0.1"))
    assert clicks.count_clicks_by_link_id(link.id) == 3
    assert links.count_clicks_by_link_id(link.id) == clicks.count_clicks_by_link_id(link.id)
    assert len(clicks.get_clicks_by_link_id(link.id)) == 3


def test_count_for_unknown_link_is_zero(links, clicks):
    assert clicks.count_clicks_by_link_id(999) == 0
    assert links.count_clicks_by_link_id(999) == 0


def test_migrate_is_idempotent(connection):
    migrate(connection)
    names = {
        row[0]
        for row in connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    }
    assert {"links", "clicks"} <= names


def test_operations_without_migration_raise():
    conn = open_database(":memory:")
    try:
        with pytest.raises(RepositoryError):
            SqliteLinkRepository(conn).get_all_links()
        with pytest.raises(RepositoryError):
            SqliteLinkRepository(conn).get_link_by_short_code("abc123")
        with pytest.raises(RepositoryError):
            SqliteClickRepository(conn).count_clicks_by_link_id(1)
    finally:
        conn.close()


def test_open_database_in_missing_directory_raises(tmp_path):
    with pytest.raises(DatabaseConnectionError):
        open_database(str(tmp_path / "missing" / "links.db"))


def test_file_database_persists(tmp_path):
    path = str(tmp_path / "links.db")
    conn = open_database(path)
    migrate(conn)
    created = SqliteLinkRepository(conn).create_link(
        Link(short_code="keep01", long_url="https://example.com")
    )
    conn.close()

    reopened = open_database(path)
    try:
        assert SqliteLinkRepository(reopened).get_link_by_short_code("keep01") == created
    finally:
        reopened.close()