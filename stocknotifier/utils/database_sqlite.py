import logging
import os
import sqlite3
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Iterator, ParamSpec, TypeVar

import pandas as pd

logger = logging.getLogger(__name__)

# Default database lives in the project root regardless of where the process is started from.
_DEFAULT_DB_PATH = str(Path(__file__).resolve().parents[2] / "stocknotifier.db")

P = ParamSpec("P")
T = TypeVar("T")

MIGRATIONS = ("0001_orders", "0002_indicator_analysis_records")


def _db_path() -> str:
    # Resolved per call; STOCKNOTIFIER_SQLITE_PATH may change at runtime.
    return (os.environ.get("STOCKNOTIFIER_SQLITE_PATH") or "").strip() or _DEFAULT_DB_PATH


def describe_database() -> str:
    return _db_path()


def safe_db_read(default_factory: Callable[[], T]) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Decorator for database read functions that returns a default value on error.
    Prevents the API from crashing when the database is locked or unavailable.

    Usage:
        @safe_db_read(default_factory=pd.DataFrame)
        def get_something() -> pd.DataFrame:
            ...
    """
    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except sqlite3.OperationalError as e:
                logger.warning(f"Database read failed ({func.__name__}): {e}")
                return default_factory()
            except sqlite3.DatabaseError as e:
                logger.error(f"Database error ({func.__name__}): {e}")
                return default_factory()
            except Exception as e:
                logger.error(f"Unexpected error in {func.__name__}: {type(e).__name__}: {e}")
                return default_factory()
        return wrapper
    return decorator


def _connect_fresh() -> sqlite3.Connection:
    """
    Create a fresh connection (for init_db and writes).
    The caller is responsible for closing this connection.
    """
    return sqlite3.connect(_db_path(), timeout=30)


def _connect_ro() -> sqlite3.Connection:
    """
    Read connection for the API with settings that minimise lock contention.
    """
    conn = sqlite3.connect(_db_path(), timeout=2, isolation_level=None)  # autocommit mode
    conn.execute("PRAGMA query_only = 1")  # Prevent accidental writes
    return conn


@contextmanager
def _write_conn() -> Iterator[sqlite3.Connection]:
    conn = _connect_fresh()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _row_to_dict(cursor: sqlite3.Cursor, row: tuple | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {d[0]: v for d, v in zip(cursor.description, row)}


def init_db() -> None:
    """Initialise/upgrade the SQLite database schema (idempotent)."""
    conn = _connect_fresh()
    try:
        cursor = conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA synchronous=NORMAL;")

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS schema_migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS orders (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT NOT NULL,
                price REAL,
                qty REAL,
                quote_order_qty REAL,
                action TEXT,
                trader_no TEXT,
                strategy TEXT,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                terminate_time DATETIME,
                terminate_price REAL
            )
            """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS indicator_analysis_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                symbol TEXT,
                analysis_time TEXT,
                rsi_status TEXT,
                rsi_value REAL,
                macd_status TEXT,
                macd_value REAL,
                macd_signal_value REAL,
                kd_status TEXT,
                k_value REAL,
                d_value REAL,
                created_at DATETIME DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

        cursor.execute("CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders (created_at)")
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_analysis_symbol_time ON indicator_analysis_records (symbol, analysis_time)"
        )

        for name in MIGRATIONS:
            cursor.execute("INSERT OR IGNORE INTO schema_migrations (name) VALUES (?)", (name,))

        conn.commit()
    finally:
        conn.close()
    logger.info(f"Initialised SQLite database at {_db_path()}")


# ----- orders -----


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
        cur.execute("SELECT * FROM orders WHERE id = ?", (int(order_id),))
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
    with _write_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO orders (symbol, price, qty, quote_order_qty, action, trader_no, strategy)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (symbol, price, qty, quote_order_qty, action, trader_no, strategy),
        )
        cur.execute("SELECT * FROM orders WHERE id = ?", (cur.lastrowid,))
        return _row_to_dict(cur, cur.fetchone()) or {}


# ----- indicator analysis -----


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
    with _write_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """
            INSERT INTO indicator_analysis_records (
                symbol, analysis_time, rsi_status, rsi_value, macd_status, macd_value,
                macd_signal_value, kd_status, k_value, d_value
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
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
        cur.execute("SELECT * FROM indicator_analysis_records WHERE id = ?", (cur.lastrowid,))
        return _row_to_dict(cur, cur.fetchone()) or {}


@safe_db_read(default_factory=pd.DataFrame)
def get_analysis_records(symbol: str | None = None, limit: int = 200) -> pd.DataFrame:
    conn = _connect_ro()
    try:
        if symbol:
            return pd.read_sql_query(
                "SELECT * FROM indicator_analysis_records WHERE symbol = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                conn,
                params=(str(symbol), int(limit)),
            )
        return pd.read_sql_query(
            "SELECT * FROM indicator_analysis_records ORDER BY created_at DESC, id DESC LIMIT ?",
            conn,
            params=(int(limit),),
        )
    finally:
        conn.close()


# ----- migrations -----


@safe_db_read(default_factory=pd.DataFrame)
def get_migrations() -> pd.DataFrame:
    conn = _connect_ro()
    try:
        return pd.read_sql_query("SELECT * FROM schema_migrations ORDER BY id", conn)
    finally:
        conn.close()
