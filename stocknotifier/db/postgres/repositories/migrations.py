from __future__ import annotations

import pandas as pd

from stocknotifier.db.postgres.pool import _connect_ro, safe_db_read


@safe_db_read(default_factory=pd.DataFrame)
def get_migrations() -> pd.DataFrame:
    conn = _connect_ro()
    try:
        return pd.read_sql_query("SELECT * FROM schema_migrations ORDER BY id", conn)
    finally:
        conn.close()
