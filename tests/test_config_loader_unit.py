import pytest

from stocknotifier.utils.config_loader import default_config_path, load_config, validate_config


@pytest.fixture(autouse=True)
def _clear_overrides(monkeypatch):
    for name in (
        "BINANCE_USE_TESTNET",
        "BINANCE_BASE_URL",
        "STOCKNOTIFIER_EXCHANGE_TIMEOUT_SECONDS",
        "STOCKNOTIFIER_API_HOST",
        "STOCKNOTIFIER_API_PORT",
        "STOCKNOTIFIER_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_shipped_config_loads():
    cfg = load_config(force_reload=True)
    assert cfg["binance"]["use_testnet"] is False
    assert cfg["exchange"]["timeout_seconds"] > 0
    assert isinstance(cfg["api"]["port"], int)


def test_env_overrides_yaml(tmp_path, monkeypatch):
    path = _write(tmp_path, "binance:\n  use_testnet: false\napi:\n  port: 8000\n")
    monkeypatch.setenv("BINANCE_USE_TESTNET", "yes")
    monkeypatch.setenv("STOCKNOTIFIER_API_PORT", "9001")
    monkeypatch.setenv("STOCKNOTIFIER_EXCHANGE_TIMEOUT_SECONDS", "2.5")

    cfg = load_config(path, force_reload=True)

    assert cfg["binance"]["use_testnet"] is True
    assert cfg["api"]["port"] == 9001
    assert cfg["exchange"]["timeout_seconds"] == 2.5


def test_missing_file_yields_defaults(tmp_path):
    cfg = load_config(tmp_path / "absent.yaml", force_reload=True)
    assert cfg == {"binance": {}, "exchange": {}, "api": {}}


def test_returned_config_is_a_copy(tmp_path):
    path = _write(tmp_path, "exchange:\n  timeout_seconds: 4\n")
    cfg = load_config(path, force_reload=True)
    cfg["exchange"]["timeout_seconds"] = 99
    assert load_config(path)["exchange"]["timeout_seconds"] == 4


def test_config_path_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("STOCKNOTIFIER_CONFIG", str(tmp_path / "other.yaml"))
    assert default_config_path() == tmp_path / "other.yaml"


@pytest.mark.parametrize(
    "cfg",
    [
        {"exchange": {"timeout_seconds": 0}},
        {"exchange": {"time_ttl_seconds": "soon"}},
        {"api": {"port": "8000"}},
        {"binance": ["not", "a", "mapping"]},
    ],
)
def test_validate_config_rejects_bad_values(cfg):
    with pytest.raises(ValueError):
        validate_config(cfg)


def test_non_mapping_yaml_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, "- just\n- a list\n"), force_reload=True)
