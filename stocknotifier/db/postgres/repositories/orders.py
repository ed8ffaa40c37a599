from __future__ import annotations

from typing import Any

import pandas as pd

from stocknotifier.db.postgres.pool import _connect_ro, _pg_write_conn, _row_to_dict, safe_db_read


@safe_db_read(default_factory=pd.DataFrame)
def get_orders() -> pd.DataFrame:
    conn = _connect_ro()
    try:
        return pd.read_sql_query("SELECT * FROM orders ORDER BY created_at DESC, id DESC", conn)
    finally:
        conn.close()


@safe_db_read(default_factory=pd.DataFrame)
def get_open_orders() -> pd.DataFrame:
    conn = _connect_ro()
    try:
        return pd.read_sql_query(
            "SELECT * FROM orders WHERE terminate_time IS NULL ORDER BY created_at DESC, id DESC",
            conn,
        )
    finally:
        conn.close()


def get_order(order_id: int) -> dict[str, Any] | None:
    conn = _connect_ro()
    try:
        cur = conn.cursor()
        cur.execute("SELECT * FROM orders WHERE id = %s", (int(order_id),))
        return _row_to_dict(cur, cur.fetchone())
    finally:
        conn.close()


def create_order(
    symbol: str,
    price: float | None = None,
    qty: float | None = None,
    quote_order_qty: float | None = None,
    action: str | None = None,
    trader_no: str | None = None,
    strategy: str | None = None,
) -> dict[str, Any]:
    with _pg_write_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO orders (symbol, price, qty, quote_order_qty, action, trader_no, strategy)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (symbol, price, qty, quote_order_qty, action, trader_no, strategy),
        )
        return _row_to_dict(cur, cur.fetchone()) or {}
