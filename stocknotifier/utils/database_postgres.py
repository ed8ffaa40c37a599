"""
PostgreSQL database backend (compatibility wrapper).

The implementation is split into:
- `stocknotifier/db/postgres/pool.py` (connection pool + helpers)
- `stocknotifier/db/postgres/schema.py` (schema initialisation)
- `stocknotifier/db/postgres/repositories/*` (table-focused repository functions)

This file re-exports the same public surface as `database_sqlite`.
"""

from __future__ import annotations

from stocknotifier.db.postgres.pool import _connect_ro, describe_database, safe_db_read  # noqa: F401
from stocknotifier.db.postgres.schema import MIGRATIONS, init_db  # noqa: F401
from stocknotifier.db.postgres.repositories.analysis import (  # noqa: F401
    create_analysis_record,
    get_analysis_records,
)
from stocknotifier.db.postgres.repositories.migrations import get_migrations  # noqa: F401
from stocknotifier.db.postgres.repositories.orders import (  # noqa: F401
    create_order,
    get_open_orders,
    get_order,
    get_orders,
)
