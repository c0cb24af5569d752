# shortlink

A small URL shortener backed by SQLite. It provides:

- an HTTP API (Flask) for creating short links, redirecting through them and reading their statistics;
- background worker threads that record every click (user agent, client IP, time);
- a monitor that sends a `HEAD` request to every target URL at a fixed interval and logs each change between `ACCESSIBLE` and `INACCESSIBLE`;
- a command-line tool, `url-shortener`, for migrations, link creation, statistics and running the server.

## Installation

```
pip install .
```

## Configuration

Without `--config`, settings are read from `configs/config.yaml` (or `configs/config.yml`) in the current directory. `--config PATH` names either a configuration file, which must exist, or a directory searched the same way. When no file is found, the defaults are used:

```yaml
server:
  port: 8080
  base_url: "http://localhost:8080"
database:
  name: "url_shortener.db"
analytics:
  buffer_size: 1000
  worker_count: 5
monitor:
  interval_minutes: 5
```

Keys are matched case-insensitively; missing keys keep their defaults. If the file cannot be read or a value has the wrong type, a warning is logged and the command stops with a fatal "configuration not loaded" error.

## Command line

The tables must exist before links can be stored. Create the `links` and `clicks` tables (safe to run again):

```
url-shortener migrate
```

Shorten a URL. The URL must be an absolute URI or an absolute path:

```
url-shortener create --url="https://www.example.com/some/long/path"
```

The output shows the six-character code and the full short URL built from `server.base_url`.

Show how many times a short link has been followed:

```
url-shortener stats --code="abc123"
```

Start the API server, the click workers and the URL monitor:

```
url-shortener run-server
```

The server listens on `0.0.0.0` at `server.port`. Ctrl-C or SIGTERM stops it; the workers are then given up to five seconds to store the clicks still queued. `run-server` does not create the tables itself, so run `migrate` first.

Every command accepts `--config PATH` before the command name. Running `url-shortener` with no command prints the help. Errors are written to standard error and the exit status is 1.

## HTTP API

| Method | Path                              | Description                          |
|--------|-----------------------------------|--------------------------------------|
| GET    | `/health`                         | Returns `{"status": "ok"}`           |
| POST   | `/api/v1/links`                   | Body `{"long_url": "..."}`; returns 201 with `short_code`, `long_url`, `full_short_url` |
| GET    | `/api/v1/links/<code>/stats`      | Returns `short_code`, `long_url`, `total_clicks` |
| GET    | `/<code>`                         | 302 redirect to the long URL and queues a click |

A body that is not a JSON object, or a missing or invalid `long_url`, gets a 400 response; an unknown code gets a 404 with `{"error": "Link not found"}`. Storage failures answer 500. When the click queue is full, the redirect still happens but that click is dropped. The client IP is taken from `X-Forwarded-For`, then `X-Real-Ip`, then the peer address.

## Using it as a library

```python
from shortlink.repository import open_database, migrate, SqliteLinkRepository, SqliteClickRepository
from shortlink.services import LinkService
from shortlink.workers import start_click_workers
from shortlink.api import create_app

connection = open_database("url_shortener.db")
migrate(connection)
click_repo = SqliteClickRepository(connection)
service = LinkService(SqliteLinkRepository(connection), click_repo)

link = service.create_link("https://www.example.com/")
link, total_clicks = service.get_link_stats(link.short_code)

app = create_app(service, 1000, "http://localhost:8080", None)
start_click_workers(2, app.config["CLICK_EVENTS"], click_repo)
```

`create_app` creates a bounded `queue.Queue` of `buffer_size` when none is given and keeps it in `app.config["CLICK_EVENTS"]`. Workers started by `start_click_workers` are daemon threads; each stops when it takes `None` from the queue. Unknown codes raise `shortlink.models.LinkNotFoundError`; storage failures raise `shortlink.repository.RepositoryError`.

`shortlink.monitor.UrlMonitor(link_repo, interval)` checks all links with `check_urls()`, which returns the state changes it saw; `start()` repeats the check every interval until `stop()` is called.

## Limitations

- `run-server` uses Flask's built-in server; there is no separate production server setup.
- Clicks are held in memory until a worker stores them; clicks still queued when the process is killed are lost.
- There are no commands or endpoints for deleting or editing links.

## Running the tests

```
pip install ".[test]"
pytest
```