"""
Database backend selector.

SQLite is the default (a single `stocknotifier.db` file next to the project, or
`STOCKNOTIFIER_SQLITE_PATH`). PostgreSQL is used when `STOCKNOTIFIER_DATABASE_URL` (or
`DATABASE_URL`) starts with `postgres://` or `postgresql://`.

This module re-exports one function surface so the API does not care which backend is live.
"""

from __future__ import annotations

import os


def _use_postgres() -> bool:
    url = (os.environ.get("STOCKNOTIFIER_DATABASE_URL") or os.environ.get("DATABASE_URL") or "").strip()
    return url.startswith("postgres://") or url.startswith("postgresql://")


BACKEND = "postgres" if _use_postgres() else "sqlite"

if BACKEND == "postgres":
    from .database_postgres import *  # noqa: F401,F403
    from .database_postgres import _connect_ro  # noqa: F401
else:
    from .database_sqlite import *  # noqa: F401,F403
    from .database_sqlite import _connect_ro  # noqa: F401
