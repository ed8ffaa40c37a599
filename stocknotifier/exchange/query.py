from __future__ import annotations

import json
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping
from urllib.parse import quote

# Same unreserved set as JavaScript's encodeURIComponent; Binance verifies signatures
# against the exact bytes we send, so this must stay stable.
_SAFE_CHARS = "-_.!~*'()"


def _number_text(value: float | Decimal) -> str:
    # Positional notation only: the exchange rejects "1e-05" style quantities.
    d = value if isinstance(value, Decimal) else Decimal(repr(value))
    if not d.is_finite():
        return str(value)
    return format(d.normalize(), "f")


def param_text(value: Any) -> str:
    """Serialise a single parameter value the way it appears on the wire (before percent-encoding)."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        return _number_text(value)
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def encode_params(params: Mapping[str, Any]) -> str:
    """
    Build the canonical query string for `params`.

    Insertion order is kept and `None` values are skipped. The result is also the message that
    gets signed, so callers must send exactly this string.
    """
    parts: list[str] = []
    for name, value in params.items():
        if value is None:
            continue
        parts.append(f"{quote(str(name), safe=_SAFE_CHARS)}={quote(param_text(value), safe=_SAFE_CHARS)}")
    return "&".join(parts)
