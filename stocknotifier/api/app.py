from __future__ import annotations

import asyncio
import logging
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import pandas as pd
import requests
from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stocknotifier.api.schemas import AnalysisCreate, BinanceOrderBody, OrderCreate
from stocknotifier.domain.models import ResponseEnvelope
from stocknotifier.exchange.client import client_from_config, public_client
from stocknotifier.exchange.errors import (
    ExchangeUnavailable,
    FilterNotFound,
    MetadataMalformed,
    MissingCredentials,
)
from stocknotifier.ports.exchange import ExchangePort
from stocknotifier.utils.config_loader import load_config
from stocknotifier.utils.database import (
    BACKEND,
    _connect_ro,
    create_analysis_record,
    create_order,
    describe_database,
    get_analysis_records,
    get_migrations,
    get_open_orders,
    get_order,
    get_orders,
    init_db,
)

logger = logging.getLogger(__name__)

# Blocking DB reads/writes and outbound Binance calls run here so they don't freeze the event loop.
_db_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="db")
_exchange_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="binance")

# One signed client (None without credentials) and one client for public endpoints.
# Both are created lazily from config and live for the whole process, so their
# exchange info cache and clock offset are shared by all requests.
_signed_client: ExchangePort | None = None
_public_client: ExchangePort | None = None
_clients_loaded = False


def configure_exchange_clients(signed: ExchangePort | None, public: ExchangePort | None = None) -> None:
    """Install exchange clients explicitly (startup or tests). `public` defaults to `signed`."""
    global _signed_client, _public_client, _clients_loaded
    _signed_client = signed
    _public_client = public if public is not None else signed
    _clients_loaded = True


def _load_exchange_clients() -> None:
    if _clients_loaded:
        return
    cfg = load_config()
    signed = client_from_config(cfg)
    if signed is None:
        logger.info("Binance credentials not configured; signed endpoints are disabled.")
    configure_exchange_clients(signed, signed if signed is not None else public_client(cfg))


def _require_signed_client() -> ExchangePort:
    _load_exchange_clients()
    if _signed_client is None:
        raise MissingCredentials("Binance API key/secret are not configured")
    return _signed_client


def _require_public_client() -> ExchangePort:
    _load_exchange_clients()
    if _public_client is None:
        raise RuntimeError("No Binance client configured for public endpoints")
    return _public_client


def _df_to_records(df: pd.DataFrame | None) -> list[dict[str, Any]]:
    if df is None or df.empty:
        return []
    # NaN/NaT are not valid JSON; report them as null.
    clean = df.astype(object).where(df.notna(), None)
    return jsonable_encoder(clean.to_dict(orient="records"))


def _envelope_response(envelope: ResponseEnvelope) -> JSONResponse:
    return JSONResponse(status_code=int(envelope.status), content=jsonable_encoder(envelope.data))


def _cors_origins() -> list[str]:
    api_cfg = load_config().get("api") or {}
    origins = api_cfg.get("cors_origins") or ["http://localhost:5173", "http://127.0.0.1:5173"]
    return [str(o) for o in origins]


app = FastAPI(
    title="StockNotifier API",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    init_db()
    _load_exchange_clients()
    logger.info(f"StockNotifier API ready (db={BACKEND}, signed_binance={_signed_client is not None})")


@app.on_event("shutdown")
async def shutdown_event():
    clients = [_signed_client] if _public_client is _signed_client else [_signed_client, _public_client]
    for client in clients:
        close = getattr(client, "close", None)
        if close:
            close()


# -------------------
# Error mapping
# -------------------


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


@app.exception_handler(MissingCredentials)
async def missing_credentials_handler(request: Request, exc: MissingCredentials):
    return _error_response(400, exc)


@app.exception_handler(FilterNotFound)
async def filter_not_found_handler(request: Request, exc: FilterNotFound):
    return _error_response(422, exc)


@app.exception_handler(MetadataMalformed)
async def metadata_malformed_handler(request: Request, exc: MetadataMalformed):
    return _error_response(422, exc)


@app.exception_handler(ExchangeUnavailable)
async def exchange_unavailable_handler(request: Request, exc: ExchangeUnavailable):
    return JSONResponse(
        status_code=502,
        content={"error": type(exc).__name__, "detail": str(exc), "status": exc.status_code},
    )


@app.exception_handler(requests.RequestException)
async def exchange_transport_handler(request: Request, exc: requests.RequestException):
    logger.warning(f"Binance request failed: {type(exc).__name__}: {exc}")
    return _error_response(502, exc)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler to catch unhandled errors and return a clean JSON response.
    """
    logger.error(f"Unhandled exception: {type(exc).__name__}: {exc}")
    logger.debug(traceback.format_exc())
    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {type(exc).__name__}",
            "message": str(exc)[:200],  # Truncate long error messages
        },
    )


# -------------------
# Executors
# -------------------


async def _run_in_executor(func, *args, timeout_seconds: float = 3.0, **kwargs):
    """
    Run a blocking DB read in the thread pool with a timeout.
    Returns None on timeout or error so list endpoints degrade to empty results.
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(_db_executor, lambda: func(*args, **kwargs)),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Database call timed out after {timeout_seconds}s: {func.__name__}")
        return None
    except Exception as e:
        logger.warning(f"Database call failed: {func.__name__}: {e}")
        return None


async def _run_in_executor_strict(func, *args, timeout_seconds: float = 5.0, **kwargs):
    """
    Run a blocking DB write in the thread pool, failing loudly (no silent fallbacks).
    """
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(
            loop.run_in_executor(_db_executor, lambda: func(*args, **kwargs)),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError as e:
        raise HTTPException(status_code=503, detail=f"Database call timed out: {func.__name__}") from e
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=503,
            detail=f"Database call failed: {func.__name__}: {type(e).__name__}: {str(e)[:200]}",
        ) from e


async def _run_exchange(func, *args, **kwargs):
    """
    Run a blocking Binance call in its own pool. No timeout is layered on top of the
    client's own request timeout; exceptions propagate to the error handlers above.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_exchange_executor, lambda: func(*args, **kwargs))


# -------------------
# Health
# -------------------


@app.get("/api/health")
async def health() -> dict[str, Any]:
    db_ok = False
    db_error = None
    try:
        conn = _connect_ro()
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchone()
        finally:
            conn.close()
        db_ok = True
    except Exception as e:
        db_error = str(e)

    _load_exchange_clients()
    return {
        "status": "ok" if db_ok else "degraded",
        "db_backend": BACKEND,
        "db_path": describe_database(),
        "db_ok": db_ok,
        "db_error": db_error,
        "binance_signed": _signed_client is not None,
    }


# -------------------
# Orders
# -------------------


@app.get("/")
@app.get("/orders")
async def orders() -> list[dict[str, Any]]:
    df = await _run_in_executor(get_orders)
    return _df_to_records(df)


@app.get("/orders/open")
async def open_orders() -> list[dict[str, Any]]:
    df = await _run_in_executor(get_open_orders)
    return _df_to_records(df)


@app.get("/orders/{order_id}")
async def order_by_id(order_id: int):
    row = await _run_in_executor_strict(get_order, order_id)
    if row is None:
        return Response(status_code=404)
    return jsonable_encoder(row)


@app.post("/orders", status_code=201)
async def order_create(payload: OrderCreate) -> dict[str, Any]:
    row = await _run_in_executor_strict(create_order, **payload.model_dump())
    return jsonable_encoder(row or {})


# -------------------
# Indicator analysis
# -------------------


@app.post("/analysis", status_code=201)
async def analysis_create(payload: AnalysisCreate) -> dict[str, Any]:
    row = await _run_in_executor_strict(create_analysis_record, **payload.to_record())
    return jsonable_encoder(row or {})


@app.get("/analysis")
async def analysis_records(
    symbol: str | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=5000),
) -> list[dict[str, Any]]:
    df = await _run_in_executor(get_analysis_records, symbol=symbol, limit=limit)
    return _df_to_records(df)


@app.get("/migrations")
async def migrations() -> list[dict[str, Any]]:
    df = await _run_in_executor(get_migrations)
    return _df_to_records(df)


# -------------------
# Binance relay
# -------------------


@app.post("/binance/order")
async def binance_order(payload: BinanceOrderBody) -> JSONResponse:
    client = _require_signed_client()
    envelope = await _run_exchange(client.place_order, payload.to_order_request())
    return _envelope_response(envelope)


@app.get("/binance/account")
async def binance_account(recv_window: int | None = Query(default=None, alias="recvWindow", gt=0)) -> JSONResponse:
    client = _require_signed_client()
    envelope = await _run_exchange(client.get_account, recv_window)
    return _envelope_response(envelope)


@app.get("/binance/klines")
async def binance_klines(
    symbol: str = Query(..., min_length=1),
    interval: str = Query(..., min_length=1),
    limit: int | None = Query(default=None, ge=1),
    start_time: int | None = Query(default=None, alias="startTime"),
    end_time: int | None = Query(default=None, alias="endTime"),
) -> JSONResponse:
    client = _require_public_client()
    envelope = await _run_exchange(
        client.get_klines,
        symbol,
        interval,
        limit=limit,
        start_time=start_time,
        end_time=end_time,
    )
    return _envelope_response(envelope)


@app.get("/binance/exchangeInfo")
async def binance_exchange_info(symbol: str | None = Query(default=None)) -> JSONResponse:
    client = _require_public_client()
    envelope = await _run_exchange(client.get_exchange_info, symbol)
    return _envelope_response(envelope)


@app.get("/binance/time")
async def binance_time() -> JSONResponse:
    client = _require_public_client()
    envelope = await _run_exchange(client.get_server_time)
    return _envelope_response(envelope)
