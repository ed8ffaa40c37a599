import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable
from urllib.parse import urlsplit

import pytest


# Captured before test modules load; unit-test modules drop these vars to force SQLite.
POSTGRES_URL = (os.environ.get("STOCKNOTIFIER_DATABASE_URL") or os.environ.get("DATABASE_URL") or "").strip()


class FakeResponse:
    """Just enough of `requests.Response` for the exchange client."""

    def __init__(self, status_code: int, payload: Any = None, raw: str | None = None):
        self.status_code = status_code
        self._payload = payload
        self._raw = raw

    def json(self):
        if self._raw is not None:
            return json.loads(self._raw)  # JSONDecodeError is a ValueError, like requests
        return self._payload


@dataclass
class Call:
    method: str
    path: str
    query: str
    data: str | None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None


class FakeSession:
    """
    Stand-in for `requests.Session` that routes by (method, path) and records every call.

    Routes are registered with a status and JSON payload, a raw body, an exception to raise,
    or a handler `fn(call) -> FakeResponse`.
    """

    def __init__(self):
        self.calls: list[Call] = []
        self.closed = False
        self._routes: dict[tuple[str, str], Callable[[Call], FakeResponse]] = {}

    def add(self, method: str, path: str, status: int = 200, payload: Any = None) -> None:
        self._routes[(method, path)] = lambda call: FakeResponse(status, payload)

    def add_raw(self, method: str, path: str, status: int, raw: str) -> None:
        self._routes[(method, path)] = lambda call: FakeResponse(status, raw=raw)

    def add_error(self, method: str, path: str, exc: Exception) -> None:
        def _raise(call):
            raise exc

        self._routes[(method, path)] = _raise

    def add_handler(self, method: str, path: str, fn: Callable[[Call], FakeResponse]) -> None:
        self._routes[(method, path)] = fn

    def get(self, url, headers=None, timeout=None):
        return self._handle("GET", url, None, headers, timeout)

    def post(self, url, data=None, headers=None, timeout=None):
        return self._handle("POST", url, data, headers, timeout)

    def close(self):
        self.closed = True

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [c for c in self.calls if c.method == method and c.path == path]

    def _handle(self, method, url, data, headers, timeout):
        parts = urlsplit(url)
        call = Call(method, parts.path, parts.query, data, dict(headers or {}), timeout)
        self.calls.append(call)
        handler = self._routes.get((method, parts.path))
        if handler is None:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return handler(call)


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_exchange_info(symbol: str, tick_size: str = "0.01000000", step_size: str = "0.00010000") -> dict:
    filters = []
    if tick_size is not None:
        filters.append({"filterType": "PRICE_FILTER", "minPrice": "0.01000000", "maxPrice": "1000000.00000000", "tickSize": tick_size})
    if step_size is not None:
        filters.append({"filterType": "LOT_SIZE", "minQty": "0.00001000", "maxQty": "9000.00000000", "stepSize": step_size})
    filters.append({"filterType": "NOTIONAL", "minNotional": "5.00000000"})
    return {
        "timezone": "UTC",
        "serverTime": 1_700_000_000_000,
        "symbols": [{"symbol": symbol, "status": "TRADING", "filters": filters}],
    }


@pytest.fixture(scope="session")
def postgres_url():
    return POSTGRES_URL


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def exchange_info():
    return make_exchange_info
