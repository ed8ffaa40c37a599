"""
Request bodies for the HTTP API.

Field aliases keep the camelCase names existing clients already send (`traderNo`,
`quoteOrderQty`, `rsiValue`, ...); snake_case names are accepted as well.
"""

from __future__ import annotations

from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

from stocknotifier.domain.models import OrderRequest, OrderSide


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(..., min_length=1)
    price: float | None = None
    qty: float | None = None
    quote_order_qty: float | None = Field(default=None, alias="quoteOrderQty")
    action: str | None = None
    trader_no: str | None = Field(default=None, alias="traderNo")
    strategy: str | None = None


class AnalysisCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    symbol: str | None = None
    analysis_time: str | None = Field(default=None, alias="analysisTime")
    rsi_status: str | None = Field(default=None, alias="rsiStatus")
    rsi_value: float | None = Field(default=None, alias="rsiValue")
    macd_status: str | None = Field(default=None, alias="macdStatus")
    macd_value: float | None = Field(default=None, alias="macdValue")
    macd_signal_value: float | None = Field(default=None, alias="macdSignalValue")
    kd_status: str | None = Field(default=None, alias="kdStatus")
    k_value: float | None = Field(default=None, alias="kValue")
    d_value: float | None = Field(default=None, alias="dValue")
    # Older indicator jobs send the KD values under these names.
    kd_k_value: float | None = Field(default=None, alias="kdKValue")
    kd_d_value: float | None = Field(default=None, alias="kdDValue")

    def to_record(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "analysis_time": self.analysis_time,
            "rsi_status": self.rsi_status,
            "rsi_value": self.rsi_value,
            "macd_status": self.macd_status,
            "macd_value": self.macd_value,
            "macd_signal_value": self.macd_signal_value,
            "kd_status": self.kd_status,
            "k_value": self.k_value if self.k_value is not None else self.kd_k_value,
            "d_value": self.d_value if self.d_value is not None else self.kd_d_value,
        }


class BinanceOrderBody(BaseModel):
    """
    Order to relay to Binance.

    JSON numbers for `quantity`/`price` are aligned to the symbol's step/tick size before
    signing. JSON strings are sent exactly as given, which lets callers bypass alignment.
    """

    model_config = ConfigDict(populate_by_name=True)

    symbol: str = Field(..., min_length=1)
    side: OrderSide
    type: str = Field(..., min_length=1)
    # Strict so a JSON boolean is rejected instead of becoming 1/0.
    quantity: Union[StrictInt, StrictFloat, StrictStr, None] = None
    price: Union[StrictInt, StrictFloat, StrictStr, None] = None
    time_in_force: str | None = Field(default=None, alias="timeInForce")
    recv_window: int | None = Field(default=None, alias="recvWindow", gt=0)

    def to_order_request(self) -> OrderRequest:
        return OrderRequest(
            symbol=self.symbol,
            side=self.side,
            type=self.type,
            quantity=self.quantity,
            price=self.price,
            time_in_force=self.time_in_force,
            recv_window=self.recv_window,
        )
