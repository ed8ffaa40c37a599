from __future__ import annotations

import logging
from typing import Any, Callable

import requests

from stocknotifier.domain.models import ResponseEnvelope, SymbolTradingRules
from stocknotifier.exchange.errors import ExchangeUnavailable, FilterNotFound, MetadataMalformed

logger = logging.getLogger(__name__)

PRICE_FILTER = "PRICE_FILTER"
LOT_SIZE = "LOT_SIZE"


class ExchangeInfoCache:
    """
    Per-symbol exchange info, fetched once and kept for the lifetime of the owning client.

    Entries are never refreshed. If Binance changes a symbol's trading rules intraday, a
    long-running process keeps quantizing against the old increments until restart.
    """

    def __init__(self, fetch_exchange_info: Callable[[str], ResponseEnvelope]) -> None:
        self._fetch_exchange_info = fetch_exchange_info
        self._cache: dict[str, Any] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._cache

    def _load(self, symbol: str) -> Any:
        if symbol in self._cache:
            return self._cache[symbol]

        logger.info(f"Fetching exchange info for {symbol}")
        try:
            resp = self._fetch_exchange_info(symbol)
        except requests.RequestException as e:
            raise ExchangeUnavailable(f"Failed to get exchange info: {type(e).__name__}: {e}") from e
        if resp.status != 200:
            raise ExchangeUnavailable(f"Failed to get exchange info: status {resp.status}", status_code=resp.status)

        data = resp.data
        symbols = data.get("symbols") if isinstance(data, dict) else None
        if not isinstance(symbols, list) or not symbols:
            raise MetadataMalformed(f"No symbols found in exchange info for {symbol}")
        entry = symbols[0]
        filters = entry.get("filters") if isinstance(entry, dict) else None
        if not isinstance(filters, list) or not filters:
            raise MetadataMalformed(f"No filters found in exchange info for {symbol}")

        self._cache[symbol] = data
        return data

    def _filter_value(self, symbol: str, filter_type: str, field: str) -> float:
        data = self._load(symbol)
        for f in data["symbols"][0]["filters"]:
            if not isinstance(f, dict) or f.get("filterType") != filter_type:
                continue
            try:
                value = float(f.get(field))
            except (TypeError, ValueError) as e:
                raise MetadataMalformed(f"{filter_type}.{field} is not a number for {symbol}: {f.get(field)!r}") from e
            if value <= 0:
                raise MetadataMalformed(f"{filter_type}.{field} must be positive for {symbol}; got {value}")
            return value
        raise FilterNotFound(symbol, filter_type)

    def get_tick_size(self, symbol: str) -> float:
        return self._filter_value(symbol, PRICE_FILTER, "tickSize")

    def get_step_size(self, symbol: str) -> float:
        return self._filter_value(symbol, LOT_SIZE, "stepSize")

    def get_rules(self, symbol: str) -> SymbolTradingRules:
        return SymbolTradingRules(
            symbol=symbol,
            tick_size=self.get_tick_size(symbol),
            step_size=self.get_step_size(symbol),
        )
