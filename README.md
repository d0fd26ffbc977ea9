# httplogproxy

A reverse HTTP proxy that sits in front of one or more upstream services
("apps") and records every request and response passing through it. The
recorded traffic can be browsed and searched through a small web dashboard
API served by the same process.

## How it works

Each app has an id and a target URL. A request sent to

    http://<proxy-host>/<app_id>/some/path?x=1

is forwarded to `<target>/some/path?x=1` (the `/<app_id>` segment is
removed; a query string on the target is kept and merged with the
request's). Every proxied request gets a fresh UUID as its request id. On
the way out the proxy:

- drops hop-by-hop headers and `Host`, `Content-Length`, `X-Forwarded-*`;
- sets `X-Http-Log-Proxy-Request-Id` to the request id and `Referer` to the
  app's target;
- asks for `Accept-Encoding: identity` if the client sent no
  `Accept-Encoding`.

For each exchange one log record is stored, holding the request URL,
method, headers (as a JSON object with the first value of each header) and
body, and the response status code, headers and body. Response bodies
compressed with `br`, `gzip` or `deflate` are decoded before they are
stored, so the log is readable; the client still receives the original
bytes. A failure to store the record is only logged.

A request whose first path segment is not a known app id is answered with
`400 Bad Request` (`invalid application flag: ...`); a failure to reach
the upstream is answered with `502 Bad Gateway` (`proxy error: ...`).

## Installation

    pip install .

## Configuration

The proxy reads a YAML file (by default `config.yaml` in the working
directory) that selects the storage backend:

```yaml
Storage:
  Type: local            # local (SQLite) or elasticsearch
  Source: ./httplog.db   # SQLite file path, or the Elasticsearch URL
  User: user             # Elasticsearch only
  Pass: password         # Elasticsearch only
```

- `local` stores apps and logs in an SQLite database file. The tables
  `tb_app` and `tb_http_log` are created on first start.
- `elasticsearch` talks to the Elasticsearch REST API at `Source` and
  stores documents in the `tb_app` and `tb_http_log` indices, which are
  created if they do not exist. `User` and `Pass`, when given, are used
  for basic authentication.

A failure while creating tables or indices is logged at debug level and
does not stop start-up; an unknown `Type` or a failed connection does.

## Running

    httplogproxy -f config.yaml -p 8080

Options:

- `-f FILE` – the configuration file (default `config.yaml`)
- `-p PORT` – the port to listen on, on all interfaces (default `8080`)

Log lines are written to standard error as JSON objects.

## Dashboard

Everything under `/dashboard/` is handled by the dashboard; every other
path goes to the proxy.

| Method | Path                                | Purpose                                   |
|--------|-------------------------------------|-------------------------------------------|
| GET    | `/dashboard/home`                   | renders `templates/home_page.html`        |
| POST   | `/dashboard/app/list`               | list apps, filter by `name` / `id`        |
| POST   | `/dashboard/app/new`                | create an app (`name`, `target`)          |
| POST   | `/dashboard/app/del/<app_id>`       | delete an app                             |
| POST   | `/dashboard/app/edit`               | change an app's `name` and `target`       |
| GET    | `/dashboard/http_log/<request_id>`  | full record of one proxied request        |
| POST   | `/dashboard/http_log/list`          | page through an app's logs                |

POST bodies may be JSON or form data. `name` is at most 50 characters.
`/dashboard/http_log/list` takes `app_id` (required), `page` (from 1),
`size` (1 to 100), and optionally `start_time` / `end_time` (Unix seconds)
and `keyword`, which is searched for in the request and response bodies.
Results are newest first; timestamps are shown in local time as
`YYYY-MM-DD HH:MM:SS`. Invalid input is answered with `400`, storage
failures with `500`, both with an empty body.

## Using it as a library

```python
from httplogproxy.app import build_app
from httplogproxy.config import load
from httplogproxy.storage import elasticsearch, sqlite  # register the backends
from httplogproxy.storage.provider import load as load_storage

storage = load_storage(load("config.yaml"))
wsgi_app = build_app(storage, "templates")
```

`wsgi_app` is a WSGI application that can be served by any WSGI server.
`httplogproxy.proxy.HttpLogProxy` and
`httplogproxy.dashboard.create_dashboard` can also be used on their own.
New backends subclass `httplogproxy.storage.provider.Provider` and are made
available with `httplogproxy.storage.provider.register(name, factory)`.

## What it does not do

- No dashboard page is shipped: `/dashboard/home` renders
  `home_page.html` from a `templates/` directory you supply (template
  variables use `[[ ]]` delimiters). The JSON endpoints work without it.
- Only the `local` (SQLite) and `elasticsearch` backends are registered.
  `httplogproxy.storage.sql.SqlStorage` runs its SQL over any DB-API
  connection that takes `?` placeholders, but there is no MySQL backend
  that can be chosen in the configuration.
- The proxy buffers whole requests and responses in memory; it does not
  stream, and it does not proxy WebSocket upgrades.

## Running the tests

    pip install .[test]
    pytest