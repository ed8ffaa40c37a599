from __future__ import annotations

from typing import Protocol

from stocknotifier.domain.models import OrderRequest, ResponseEnvelope


class ExchangePort(Protocol):
    def has_credentials(self) -> bool: ...

    def place_order(self, order: OrderRequest) -> ResponseEnvelope: ...

    def get_account(self, recv_window: int | None = None) -> ResponseEnvelope: ...

    def get_klines(
        self,
        symbol: str,
        interval: str,
        limit: int | None = None,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> ResponseEnvelope: ...

    def get_exchange_info(self, symbol: str | None = None) -> ResponseEnvelope: ...

    def get_server_time(self) -> ResponseEnvelope: ...
