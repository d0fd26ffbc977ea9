"""Command entry point: serves the logging proxy and the dashboard together."""

from __future__ import annotations

import argparse
import os
from typing import Optional, Sequence

from werkzeug.serving import run_simple
from werkzeug.utils import redirect

from . import config as configs
from .dashboard import create_dashboard
from .logger import with_context
from .proxy import HttpLogProxy
from .storage import elasticsearch as _elasticsearch  # noqa: F401  registers backend
from .storage import provider as storage_provider
from .storage import sqlite as _sqlite  # noqa: F401  registers backend


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse ``-f`` (config file) and ``-p`` (port)."""
    parser = argparse.ArgumentParser(prog="httplogproxy")
    parser.add_argument("-f", dest="config_file", default="config.yaml", help="the config file")
    parser.add_argument("-p", dest="port", default="8080", help="the http server port")
    return parser.parse_args(argv)


def build_app(storage, template_folder="templates"):
    """Return a WSGI application routing ``/dashboard/`` to the dashboard, the rest to the proxy."""
    proxy = HttpLogProxy(storage)
    dashboard = create_dashboard(storage, template_folder)

    def application(environ, start_response):
        path = environ.get("PATH_INFO", "")
        if path == "/dashboard":
            return redirect("/dashboard/", 301)(environ, start_response)
        if path.startswith("/dashboard/"):
            return dashboard(environ, start_response)
        return proxy(environ, start_response)

    return application


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logger = with_context(None)
    try:
        storage = storage_provider.load(configs.load(args.config_file))
        port = int(args.port)
    except (configs.ConfigError, storage_provider.StorageError, ValueError) as exc:
        logger.critical(str(exc))
        return 1

    application = build_app(storage, os.path.abspath("templates"))
    logger.info("starting http server on http://127.0.0.1:%s", args.port)
    try:
        run_simple("0.0.0.0", port, application, threaded=True)
    except OSError as exc:
        logger.critical("listen failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())