"""Database URL helpers for Alembic migrations.

Extracted so they can be tested without triggering alembic.context at import time.
"""

from __future__ import annotations

import os

from psycopg2.extensions import parse_dsn
from sqlalchemy.engine import URL

DRIVER = "postgresql+psycopg2"


def dsn_to_url(dsn: str) -> str:
    """Convert a libpq DSN (key=value or URI) to a SQLAlchemy URL string."""
    params = parse_dsn(dsn)
    host = params.get("host")
    query = {}
    if host and host.startswith("/"):
        # Unix socket directory goes in the query string.
        query["host"] = host
        host = None

    url = URL.create(
        DRIVER,
        username=params.get("user"),
        password=params.get("password"),
        host=host,
        port=int(params["port"]) if params.get("port") else None,
        database=params.get("dbname"),
        query=query,
    )
    return url.render_as_string(hide_password=False)


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    return dsn_to_url(url)
