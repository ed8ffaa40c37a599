from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

Numeric = Union[int, float]


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class OrderRequest:
    """
    A spot order as submitted to the exchange.

    `quantity` and `price` may be numbers or pre-formatted strings. Only numeric values are
    aligned to the symbol's step/tick size; strings are sent exactly as given.
    """

    symbol: str
    side: OrderSide
    type: str
    quantity: Numeric | str | None = None
    price: Numeric | str | None = None
    time_in_force: str | None = None
    recv_window: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "side": self.side.value,
            "type": self.type,
            "quantity": self.quantity,
            "price": self.price,
            "timeInForce": self.time_in_force,
            "recvWindow": self.recv_window,
        }


@dataclass(frozen=True)
class ResponseEnvelope:
    status: int
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= int(self.status) < 300

    def to_dict(self) -> dict[str, Any]:
        return {"status": int(self.status), "data": self.data}


@dataclass(frozen=True)
class SymbolTradingRules:
    symbol: str
    tick_size: float
    step_size: float

    def to_dict(self) -> dict[str, Any]:
        return {"symbol": self.symbol, "tick_size": float(self.tick_size), "step_size": float(self.step_size)}


@dataclass(frozen=True)
class ClockOffset:
    offset_ms: int
    refreshed_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return int(now_ms) - int(self.refreshed_at_ms)
