# test_config.py
import json
import pathlib
import sys
from pathlib import Path

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

from config import GatewayKind, get_settings  # noqa: E402

CONFIG_JSON = Path(__file__).resolve().parents[1] / "config.json"


def _settings():
    get_settings.cache_clear()
    return get_settings()


def test_defaults_from_config(monkeypatch):
    monkeypatch.delenv("QR_BASE_URL", raising=False)
    settings = _settings()
    assert settings.qr_base_url == json.loads(CONFIG_JSON.read_text())["qr_base_url"]


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("QR_BASE_URL", "https://cafe.example")
    monkeypatch.setenv("GATEWAY_APPROVAL_RATE", "0.5")
    settings = _settings()
    assert settings.qr_base_url == "https://cafe.example"
    assert settings.gateway_approval_rate == 0.5
    monkeypatch.delenv("QR_BASE_URL")
    monkeypatch.delenv("GATEWAY_APPROVAL_RATE")
    _settings()


def test_missing_key_uses_default(monkeypatch):
    monkeypatch.delenv("PAYMENT_GATEWAY", raising=False)
    original = CONFIG_JSON.read_text()
    monkeypatch.setattr(
        Path,
        "read_text",
        lambda self: json.dumps(
            {k: v for k, v in json.loads(original).items() if k != "payment_gateway"}
        ),
    )
    settings = _settings()
    assert settings.payment_gateway == GatewayKind.STUB
    monkeypatch.undo()
    _settings()


def test_gateway_kind_from_env(monkeypatch):
    monkeypatch.setenv("PAYMENT_GATEWAY", "http")
    monkeypatch.setenv("GATEWAY_URL", "http://gw.local")
    settings = _settings()
    assert settings.payment_gateway == GatewayKind.HTTP

    from api.tableorder.providers import HttpGateway, get_gateway

    assert isinstance(get_gateway(), HttpGateway)
    monkeypatch.undo()
    _settings()
