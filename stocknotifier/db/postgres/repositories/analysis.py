from __future__ import annotations

from typing import Any

import pandas as pd

from stocknotifier.db.postgres.pool import _connect_ro, _pg_write_conn, _row_to_dict, safe_db_read


def create_analysis_record(
    symbol: str | None = None,
    analysis_time: str | None = None,
    rsi_status: str | None = None,
    rsi_value: float | None = None,
    macd_status: str | None = None,
    macd_value: float | None = None,
    macd_signal_value: float | None = None,
    kd_status: str | None = None,
    k_value: float | None = None,
    d_value: float | None = None,
) -> dict[str, Any]:
    with _pg_write_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO indicator_analysis_records (
                symbol, analysis_time, rsi_status, rsi_value, macd_status, macd_value,
                macd_signal_value, kd_status, k_value, d_value
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING *
            """,
            (
                symbol,
                analysis_time,
                rsi_status,
                rsi_value,
                macd_status,
                macd_value,
                macd_signal_value,
                kd_status,
                k_value,
                d_value,
            ),
        )
        return _row_to_dict(cur, cur.fetchone()) or {}


@safe_db_read(default_factory=pd.DataFrame)
def get_analysis_records(symbol: str | None = None, limit: int = 200) -> pd.DataFrame:
    conn = _connect_ro()
    try:
        if symbol:
            return pd.read_sql_query(
                "SELECT * FROM indicator_analysis_records WHERE symbol = %s ORDER BY created_at DESC, id DESC LIMIT %s",
                conn,
                params=(str(symbol), int(limit)),
            )
        return pd.read_sql_query(
            "SELECT * FROM indicator_analysis_records ORDER BY created_at DESC, id DESC LIMIT %s",
            conn,
            params=(int(limit),),
        )
    finally:
        conn.close()
