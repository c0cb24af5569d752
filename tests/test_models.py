from datetime import datetime

import pytest

from shortlink.models import (
    Click,
    ClickEvent,
    ConfigurationLoadError,
    DatabaseConnectionError,
    DuplicateShortCodeError,
    InvalidURLError,
    Link,
    LinkNotFoundError,
    ShortCodeGenerationError,
    ShortenerError,
)


def test_link_creation():
    now = datetime.now()
    link = Link(id=1, short_code="abc123", long_url="https://example.com", created_at=now)
    assert link.id == 1
    assert link.short_code == "abc123"
    assert link.long_url == "https://example.com"
    assert link.created_at == now


def test_link_valid_has_fields():
    link = Link(short_code="abc123", long_url="https://example.com")
    assert link.short_code == "abc123"
    assert link.id is None
    assert isinstance(link.created_at, datetime)


@pytest.mark.parametrize(
    "short_code, long_url",
    [
        ("", "https://example.com"),
        ("abc123", ""),
        ("thisisaverylongshortcode", "https://example.com"),
    ],
)
def test_link_validation_rejects(short_code, long_url):
    with pytest.raises(ValueError):
        Link(id=1, short_code=short_code, long_url=long_url, created_at=datetime.now())


def test_click_creation():
    now = datetime.now()
    link = Link(id=1, short_code="abc123", long_url="https://example.com", created_at=now)
    click = Click(
        id=1,
        link_id=1,
        link=link,
        timestamp=now,
        user_agent="Mozilla/5.0 (Test Browser)",
        ip_address="127.0.0.1",
    )
    assert click.id == 1
    assert click.link_id == 1
    assert click.link.id == link.id
    assert click.timestamp == now
    assert click.user_agent == "Mozilla/5.0 (Test Browser)"
    assert click.ip_address == "127.0.0.1"


def test_click_event_creation():
    now = datetime.now()
    event = ClickEvent(
        link_id=1,
        timestamp=now,
        user_agent="Mozilla/5.0 (Test Browser)",
        ip_address="192.168.1.1",
    )
    assert event.link_id == 1
    assert event.timestamp == now
    assert event.user_agent == "Mozilla/5.0 (Test Browser)"
    assert event.ip_address == "192.168.1.1"


def test_click_event_is_immutable():
    event = ClickEvent(link_id=1, timestamp=datetime.now(), user_agent="ua", ip_address="127.0.0.1")
    with pytest.raises(AttributeError):
        event.link_id = 2
    assert event.link_id == 1


@pytest.mark.parametrize(
    "error_class, message",
    [
        (LinkNotFoundError, "link not found"),
        (InvalidURLError, "invalid URL format"),
        (DuplicateShortCodeError, "short code already exists"),
        (
            ShortCodeGenerationError,
            "failed to generate unique short code after maximum retries",
        ),
        (DatabaseConnectionError, "database connection error"),
        (ConfigurationLoadError, "failed to load configuration"),
    ],
)
def test_error_default_messages(error_class, message):
    error = error_class()
    assert str(error) == message
    assert isinstance(error, ShortenerError)


def test_error_custom_message():
    error = LinkNotFoundError("custom detail")
    assert str(error) == "custom detail"
    assert isinstance(error, ShortenerError)