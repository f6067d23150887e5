"""Utility script to create the configured Postgres database if it is missing."""
from __future__ import annotations

import argparse
import os
import sys
from urllib.parse import urlsplit, urlunsplit

import psycopg
from psycopg import sql

from workpunch_relay.core.settings import settings


def normalize_to_psycopg(uri: str) -> str:
    """Return a Postgres URI suitable for psycopg.connect().

    - Strips quotes and whitespace.
    - Converts SQLAlchemy driver schemes (postgresql+psycopg) to "postgresql".
    """
    uri = (uri or "").strip().strip("'\"")
    if not uri:
        raise ValueError("DATABASE_URL is empty")

    parts = urlsplit(uri)
    scheme = parts.scheme.split("+", 1)[0]
    if scheme != "postgresql":
        raise ValueError(f"Not a Postgres URL (scheme {parts.scheme!r}); nothing to ensure")

    return urlunsplit((scheme, parts.netloc, parts.path, parts.query, parts.fragment))


def split_db_url(db_url: str) -> tuple[str, str]:
    """Return ``(admin_url, target_db)`` using the maintenance database."""
    parts = urlsplit(normalize_to_psycopg(db_url))
    target_db = parts.path.lstrip("/") or "postgres"
    admin_url = urlunsplit(("postgresql", parts.netloc, "/postgres", parts.query, ""))
    return admin_url, target_db


def ensure_database_exists(db_url: str) -> bool:
    """Create the configured database if it is missing. Returns True if created."""
    admin_url, target_db = split_db_url(db_url)

    if os.getenv("ENSURE_DB_DEBUG") == "1":
        print(f"[ensure_db] target_db={target_db!r}")

    with psycopg.connect(admin_url, autocommit=True) as conn, conn.cursor() as cur:
        cur.execute("SELECT 1 FROM pg_database WHERE datname = %s", (target_db,))
        if cur.fetchone() is not None:
            print(f"[ensure_db] database {target_db} already exists")
            return False
        cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(target_db)))
        print(f"[ensure_db] created database {target_db}")
        return True


def main() -> None:
    parser = argparse.ArgumentParser(description="Ensure the configured database exists")
    parser.add_argument(
        "--url",
        default=None,
        help="Override database URL (defaults to effective settings URL)",
    )
    args = parser.parse_args()

    try:
        ensure_database_exists(args.url or settings.effective_database_url)
    except (ValueError, psycopg.Error) as exc:
        print(f"[ensure_db] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
