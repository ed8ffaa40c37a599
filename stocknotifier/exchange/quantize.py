from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal


def quantize_down(value: float, increment: float) -> float:
    """
    Round `value` down to the nearest multiple of `increment`.

    Used for both price (tick size) and quantity (step size). Never rounds up, so a limit
    price is not exceeded and quantity is not over-committed. A value smaller than one
    increment becomes 0.0; rejecting that order is the caller's decision.
    """
    v = Decimal(str(value))
    step = Decimal(str(increment))
    if step <= 0:
        raise ValueError(f"increment must be positive; got {increment!r}")
    steps = (v / step).to_integral_value(rounding=ROUND_FLOOR)
    return float(steps * step)
