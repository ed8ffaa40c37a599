from __future__ import annotations

import logging

from stocknotifier.db.postgres.pool import _require_database_url, describe_database

logger = logging.getLogger(__name__)

MIGRATIONS = ("0001_orders", "0002_indicator_analysis_records")


def init_db() -> None:
    """Initialise/upgrade the PostgreSQL schema (idempotent)."""
    import psycopg2  # type: ignore

    conn = psycopg2.connect(_require_database_url())
    try:
        conn.autocommit = True
        cur = conn.cursor()

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                id BIGSERIAL PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS orders (
                id BIGSERIAL PRIMARY KEY,
                symbol TEXT NOT NULL,
                price DOUBLE PRECISION,
                qty DOUBLE PRECISION,
                quote_order_qty DOUBLE PRECISION,
                action TEXT,
                trader_no TEXT,
                strategy TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                terminate_time TIMESTAMP,
                terminate_price DOUBLE PRECISION
            )
            """
        )

        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS indicator_analysis_records (
                id BIGSERIAL PRIMARY KEY,
                symbol TEXT,
                analysis_time TEXT,
                rsi_status TEXT,
                rsi_value DOUBLE PRECISION,
                macd_status TEXT,
                macd_value DOUBLE PRECISION,
                macd_signal_value DOUBLE PRECISION,
                kd_status TEXT,
                k_value DOUBLE PRECISION,
                d_value DOUBLE PRECISION,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cur.execute("CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders (created_at)")
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_analysis_symbol_time ON indicator_analysis_records (symbol, analysis_time)"
        )

        for name in MIGRATIONS:
            cur.execute(
                "INSERT INTO schema_migrations (name) VALUES (%s) ON CONFLICT (name) DO NOTHING",
                (name,),
            )
    finally:
        conn.close()
    logger.info(f"Initialised PostgreSQL schema at {describe_database()}")
