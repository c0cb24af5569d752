"""URL shortener with an HTTP API, SQLite storage, click workers, URL monitoring and a CLI."""

__version__ = "0.1.0"