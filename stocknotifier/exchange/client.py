from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Callable

import requests

from stocknotifier.domain.models import OrderRequest, ResponseEnvelope
from stocknotifier.exchange.clock import DEFAULT_TIME_TTL_MS, ClockSynchronizer, _now_ms
from stocknotifier.exchange.errors import MissingCredentials
from stocknotifier.exchange.metadata import ExchangeInfoCache
from stocknotifier.exchange.quantize import quantize_down
from stocknotifier.exchange.query import encode_params
from stocknotifier.exchange.signing import sign

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.binance.com"
TESTNET_BASE_URL = "https://testnet.binance.vision"

ORDER_PATH = "/api/v3/order"
ACCOUNT_PATH = "/api/v3/account"
KLINES_PATH = "/api/v3/klines"
EXCHANGE_INFO_PATH = "/api/v3/exchangeInfo"
TIME_PATH = "/api/v3/time"

API_KEY_HEADER = "X-MBX-APIKEY"


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


class BinanceClient:
    """
    Binance spot REST client.

    Every public method returns a `ResponseEnvelope`; exchange-side errors (4xx/5xx) are
    reported through `envelope.status` and never raised. Local preconditions raise:
    `MissingCredentials` for signed calls without a key/secret, and the metadata errors from
    `ExchangeInfoCache` when an order's price/quantity cannot be aligned.

    The clock offset and exchange info cache belong to this instance only.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        session: requests.Session | None = None,
        timeout_seconds: float | None = None,
        time_ttl_ms: int = DEFAULT_TIME_TTL_MS,
        now_ms: Callable[[], int] = _now_ms,
    ) -> None:
        self.api_key = api_key or ""
        self.api_secret = api_secret or ""
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.timeout_seconds = timeout_seconds
        self.clock = ClockSynchronizer(self.get_server_time, ttl_ms=time_ttl_ms, now_ms=now_ms)
        self.exchange_info = ExchangeInfoCache(self.get_exchange_info)

    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)

    def close(self) -> None:
        self.session.close()

    # -------------------
    # Signed endpoints
    # -------------------

    def place_order(self, order: OrderRequest) -> ResponseEnvelope:
        self._require_credentials()
        self.clock.ensure_fresh()

        quantity = order.quantity
        if _is_number(quantity):
            quantity = quantize_down(quantity, self.exchange_info.get_step_size(order.symbol))
        price = order.price
        if _is_number(price):
            price = quantize_down(price, self.exchange_info.get_tick_size(order.symbol))

        side = order.side.value if isinstance(order.side, Enum) else order.side
        params: dict[str, Any] = {
            "symbol": order.symbol,
            "side": side,
            "type": order.type,
            "quantity": quantity,
            "price": price,
            "timeInForce": order.time_in_force,
            "recvWindow": order.recv_window,
            "timestamp": self.clock.current_adjusted_time(),
        }
        logger.info(f"Placing {side} {order.type} order for {order.symbol} (quantity={quantity}, price={price})")
        envelope = self._signed_request("POST", ORDER_PATH, params)
        if envelope.ok:
            logger.info(f"Order accepted for {order.symbol}: HTTP {envelope.status}")
        else:
            logger.warning(f"Order rejected for {order.symbol}: HTTP {envelope.status} {envelope.data!r:.200}")
        return envelope

    def get_account(self, recv_window: int | None = None) -> ResponseEnvelope:
        self._require_credentials()
        self.clock.ensure_fresh()
        params = {"recvWindow": recv_window, "timestamp": self.clock.current_adjusted_time()}
        return self._signed_request("GET", ACCOUNT_PATH, params)

    # -------------------
    # Public endpoints
    # -------------------

    def get_klines(
        self,
        symbol: str,
        interval: str,
        limit: int | None = None,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> ResponseEnvelope:
        params = {
            "symbol": symbol,
            "interval": interval,
            "limit": limit,
            "startTime": start_time,
            "endTime": end_time,
        }
        return self._public_get(KLINES_PATH, params)

    def get_exchange_info(self, symbol: str | None = None) -> ResponseEnvelope:
        return self._public_get(EXCHANGE_INFO_PATH, {"symbol": symbol})

    def get_server_time(self) -> ResponseEnvelope:
        return self._public_get(TIME_PATH, {})

    # -------------------
    # Internal
    # -------------------

    def _require_credentials(self) -> None:
        if not self.has_credentials():
            raise MissingCredentials("Binance API key/secret are not configured")

    @staticmethod
    def _envelope(resp: requests.Response) -> ResponseEnvelope:
        try:
            data = resp.json()
        except ValueError:
            data = {"error": "Invalid JSON response", "status": resp.status_code}
        return ResponseEnvelope(status=int(resp.status_code), data=data)

    def _public_get(self, path: str, params: dict[str, Any]) -> ResponseEnvelope:
        qs = encode_params(params)
        url = self.base_url + path + (f"?{qs}" if qs else "")
        resp = self.session.get(url, timeout=self.timeout_seconds)
        return self._envelope(resp)

    def _signed_request(self, method: str, path: str, params: dict[str, Any]) -> ResponseEnvelope:
        qs = encode_params(params)
        payload = f"{qs}&signature={sign(self.api_secret, qs)}"
        url = self.base_url + path
        headers = {API_KEY_HEADER: self.api_key}

        if method == "POST":
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            resp = self.session.post(url, data=payload, headers=headers, timeout=self.timeout_seconds)
        elif method == "GET":
            resp = self.session.get(f"{url}?{payload}", headers=headers, timeout=self.timeout_seconds)
        else:
            raise ValueError(f"Unsupported signed method: {method}")
        return self._envelope(resp)


def resolve_base_url(cfg: dict[str, Any]) -> str:
    binance = (cfg.get("binance") or {}) if isinstance(cfg, dict) else {}
    if binance.get("use_testnet"):
        return str(binance.get("testnet_base_url") or TESTNET_BASE_URL)
    return str(binance.get("base_url") or DEFAULT_BASE_URL)


def _client_kwargs(cfg: dict[str, Any]) -> dict[str, Any]:
    exchange = (cfg.get("exchange") or {}) if isinstance(cfg, dict) else {}
    timeout = exchange.get("timeout_seconds")
    ttl_seconds = exchange.get("time_ttl_seconds")
    return {
        "timeout_seconds": float(timeout) if timeout is not None else None,
        "time_ttl_ms": int(float(ttl_seconds) * 1000) if ttl_seconds is not None else DEFAULT_TIME_TTL_MS,
    }


def client_from_config(
    cfg: dict[str, Any],
    *,
    api_key: str | None = None,
    api_secret: str | None = None,
    session: requests.Session | None = None,
) -> BinanceClient | None:
    """
    Build a credentialed client, or return None when no key/secret is available.

    Credentials default to the BINANCE_API_KEY / BINANCE_API_SECRET environment variables
    (loaded from config/secrets.env by the entrypoint); they are never read from YAML.
    """
    key = (api_key if api_key is not None else os.environ.get("BINANCE_API_KEY") or "").strip()
    secret = (api_secret if api_secret is not None else os.environ.get("BINANCE_API_SECRET") or "").strip()
    if not key or not secret:
        return None
    return BinanceClient(key, secret, resolve_base_url(cfg), session=session, **_client_kwargs(cfg))


def public_client(cfg: dict[str, Any], *, session: requests.Session | None = None) -> BinanceClient:
    """Client with empty credentials, usable for klines / exchange info / server time only."""
    return BinanceClient("", "", resolve_base_url(cfg), session=session, **_client_kwargs(cfg))
