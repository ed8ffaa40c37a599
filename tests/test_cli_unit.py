import json

import pytest

import main as cli
from stocknotifier.exchange import client as client_module
from stocknotifier.exchange.client import BinanceClient


@pytest.fixture
def offline_client(monkeypatch, fake_session, fake_clock):
    client = BinanceClient("", "", session=fake_session, now_ms=fake_clock)
    monkeypatch.setattr(client_module, "client_from_config", lambda cfg: None)
    monkeypatch.setattr(client_module, "public_client", lambda cfg: client)
    return client


def _run(argv):
    return cli.run(cli.build_parser().parse_args(argv))


def test_rules_prints_tick_and_step(offline_client, fake_session, exchange_info, capsys):
    fake_session.add("GET", "/api/v3/exchangeInfo", 200, exchange_info("BTCUSDT", "0.01", "0.0001"))

    assert _run(["rules", "btcusdt"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out == {"symbol": "BTCUSDT", "tick_size": 0.01, "step_size": 0.0001}
    assert fake_session.calls[0].query == "symbol=BTCUSDT"


def test_time_reports_offset(offline_client, fake_session, fake_clock, capsys):
    fake_session.add("GET", "/api/v3/time", 200, {"serverTime": fake_clock.now + 42})

    assert _run(["time"]) == 0
    assert json.loads(capsys.readouterr().out)["offset_ms"] == 42


def test_klines_failure_exit_code(offline_client, fake_session, capsys):
    fake_session.add("GET", "/api/v3/klines", 400, {"code": -1120, "msg": "Invalid interval."})

    assert _run(["klines", "BTCUSDT", "7x", "--limit", "3"]) == 1
    assert json.loads(capsys.readouterr().out)["status"] == 400


def test_exchange_error_exits_2(offline_client, fake_session):
    fake_session.add("GET", "/api/v3/exchangeInfo", 503, {"code": -1003})

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["rules", "BTCUSDT"])
    assert excinfo.value.code == 2


def test_init_db(tmp_path, monkeypatch, capsys):
    path = tmp_path / "cli.db"
    monkeypatch.setenv("STOCKNOTIFIER_SQLITE_PATH", str(path))

    assert _run(["init-db"]) == 0
    assert path.exists()
    assert str(path) in capsys.readouterr().out
