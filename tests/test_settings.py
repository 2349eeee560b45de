from __future__ import annotations

import pytest

from locktopus.core.client import LocktopusClient
from locktopus.core.models import ConnectionOptions, RequestMessage, Action, build_address
from locktopus.core.settings import ClientSettings


def test_build_address_plain_and_secure():
    options = ConnectionOptions(host="locks.internal", port=9009, namespace="default")
    assert build_address(options) == "ws://locks.internal:9009/v1?namespace=default"

    secure = options.model_copy(update={"secure": True})
    assert build_address(secure) == "wss://locks.internal:9009/v1?namespace=default"


def test_release_request_has_no_resources():
    assert RequestMessage(action=Action.RELEASE).to_wire() == '{"action":"release"}'


def test_settings_from_file(tmp_path):
    path = tmp_path / "client.yml"
    path.write_text("host: locks.internal\nport: 9100\nnamespace: builds\nsecure: true\nlog_level: debug\n")

    settings = ClientSettings.from_file(path)

    assert settings.address() == "wss://locks.internal:9100/v1?namespace=builds"
    assert settings.log_level == "DEBUG"


def test_settings_url_wins(tmp_path):
    path = tmp_path / "client.yml"
    path.write_text("url: ws://elsewhere:1234/v1?namespace=x\nhost: ignored\n")

    assert ClientSettings.from_file(path).address() == "ws://elsewhere:1234/v1?namespace=x"


def test_invalid_settings_file(tmp_path):
    path = tmp_path / "client.yml"
    path.write_text("port: 70000\n")

    with pytest.raises(ValueError, match="Invalid client settings"):
        ClientSettings.from_file(path)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("LOCKTOPUS_HOST", "10.0.0.5")
    monkeypatch.setenv("LOCKTOPUS_PORT", "9010")
    monkeypatch.setenv("LOCKTOPUS_NAMESPACE", "ci")
    monkeypatch.setenv("LOCKTOPUS_SECURE", "yes")
    monkeypatch.delenv("LOCKTOPUS_URL", raising=False)
    monkeypatch.delenv("LOCKTOPUS_LOG_LEVEL", raising=False)

    settings = ClientSettings.from_env()

    assert settings.address() == "wss://10.0.0.5:9010/v1?namespace=ci"
    assert settings.log_level == "INFO"


def test_settings_from_env_rejects_bad_port(monkeypatch):
    monkeypatch.setenv("LOCKTOPUS_PORT", "not-a-port")
    with pytest.raises(ValueError, match="LOCKTOPUS_PORT"):
        ClientSettings.from_env()


def test_client_from_settings():
    client = LocktopusClient.from_settings(ClientSettings(namespace="jobs"))
    assert client.address == "ws://127.0.0.1:9009/v1?namespace=jobs"
