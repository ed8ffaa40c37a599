from decimal import Decimal
from urllib.parse import parse_qsl

import pytest

from stocknotifier.domain.models import OrderSide
from stocknotifier.exchange.query import encode_params, param_text
from stocknotifier.exchange.signing import sign


def test_encode_keeps_insertion_order_and_skips_none():
    qs = encode_params({"symbol": "BTCUSDT", "side": "BUY", "quantity": None, "price": 1.5, "recvWindow": 5000})
    assert qs == "symbol=BTCUSDT&side=BUY&price=1.5&recvWindow=5000"


def test_encode_empty_mapping():
    assert encode_params({}) == ""
    assert encode_params({"symbol": None}) == ""


def test_encode_percent_encodes_names_and_values():
    assert encode_params({"a b": "x&y=z/é"}) == "a%20b=x%26y%3Dz%2F%C3%A9"


def test_encode_leaves_unreserved_characters_alone():
    assert encode_params({"v": "AZaz09-_.!~*'()"}) == "v=AZaz09-_.!~*'()"


def test_encode_serialises_non_scalars_as_compact_json():
    qs = encode_params({"symbols": ["BTCUSDT", "ETHUSDT"]})
    assert qs == "symbols=%5B%22BTCUSDT%22%2C%22ETHUSDT%22%5D"


@pytest.mark.parametrize(
    "value,expected",
    [
        (True, "true"),
        (False, "false"),
        (5000, "5000"),
        (50000.0, "50000"),
        (0.00005, "0.00005"),
        (123.45, "123.45"),
        (Decimal("0.10000000"), "0.1"),
        (OrderSide.SELL, "SELL"),
        ("0.00010000", "0.00010000"),
    ],
)
def test_param_text(value, expected):
    assert param_text(value) == expected


def test_encoded_string_survives_parse_and_reencode():
    params = {
        "symbol": "BTCUSDT",
        "note": "a+b c/d?e",
        "quantity": 0.1234,
        "timestamp": 1_700_000_001_500,
    }
    qs = encode_params(params)
    decoded = dict(parse_qsl(qs, keep_blank_values=True))
    assert decoded == {
        "symbol": "BTCUSDT",
        "note": "a+b c/d?e",
        "quantity": "0.1234",
        "timestamp": "1700000001500",
    }
    assert encode_params(decoded) == qs


def test_sign_rfc4231_vector():
    assert sign("Jefe", "what do ya want for nothing?") == (
        "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
    )


def test_sign_documented_binance_example():
    secret = "NhqPtmdSJYdKjVHjA7PZj4Mge3R5YNiP1e3UZjInClVN65XAbvqqM6A7H5fATj0j"
    message = (
        "symbol=LTCBTC&side=BUY&type=LIMIT&timeInForce=GTC&quantity=1&price=0.1"
        "&recvWindow=5000&timestamp=1499827319559"
    )
    assert sign(secret, message) == "c8db56825ae71d6d79447849e617115f4a920fa2acdcab2b053c4b2838bd6b71"


def test_sign_is_lowercase_hex_of_fixed_length():
    sig = sign("secret", "")
    assert len(sig) == 64
    assert sig == sig.lower()
    int(sig, 16)
