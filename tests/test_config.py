"""Tests for configuration loading and client construction."""

import base64
import json
import time

import httpx
import pydantic
import pytest

from dcos_metrics_client import config
from dcos_metrics_client.dcosapi import errors, types


@pytest.fixture
def key_file(tmp_path, private_key_pem):
    path = tmp_path / "telegraf.pem"
    path.write_bytes(private_key_pem)
    return path


def _write_config(tmp_path, data: dict):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data))
    return path


# ---------------------------------------------------------------------------
# ClientConfig
# ---------------------------------------------------------------------------


def test_defaults():
    cfg = config.ClientConfig(cluster_url="https://dcos.example.com")
    assert cfg.response_timeout == 20.0
    assert cfg.max_connections == 10
    assert cfg.log_level == "INFO"


@pytest.mark.parametrize("field", ["response_timeout", "max_connections"])
def test_non_positive_limits_rejected(field):
    with pytest.raises(pydantic.ValidationError):
        config.ClientConfig(cluster_url="https://dcos.example.com", **{field: 0})


def test_service_account_requires_key():
    with pytest.raises(pydantic.ValidationError, match="set together"):
        config.ClientConfig(cluster_url="https://dcos.example.com", service_account_id="telegraf")


def test_service_account_and_token_file_exclusive():
    with pytest.raises(pydantic.ValidationError, match="not both"):
        config.ClientConfig(
            cluster_url="https://dcos.example.com",
            service_account_id="telegraf",
            service_account_private_key="/etc/telegraf.pem",
            token_file="/etc/token",
        )


# ---------------------------------------------------------------------------
# load_config
# ---------------------------------------------------------------------------


def test_load_config(tmp_path):
    path = _write_config(tmp_path, {"cluster_url": "https://dcos.example.com", "max_connections": 4})
    cfg = config.load_config(str(path))
    assert cfg.cluster_url == "https://dcos.example.com"
    assert cfg.max_connections == 4


def test_load_config_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError, match="Configuration file not found"):
        config.load_config(str(tmp_path / "missing.json"))


# ---------------------------------------------------------------------------
# create_client
# ---------------------------------------------------------------------------


def test_create_client_with_service_account(key_file):
    logins = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/acs/api/v1/auth/login":
            logins.append(request)
            return httpx.Response(200, json={"token": "abc"})
        assert request.headers["Authorization"] == "token=abc"
        return httpx.Response(200, json={"cluster": "a", "slaves": []})

    cfg = config.ClientConfig(
        cluster_url="https://dcos.example.com",
        service_account_id="telegraf",
        service_account_private_key=str(key_file),
    )
    with config.create_client(cfg, transport=httpx.MockTransport(handler)) as c:
        assert c.get_summary() == types.Summary(cluster="a")
    assert len(logins) == 1


def test_create_client_with_token_file(tmp_path):
    token_file = tmp_path / "token"
    token_file.write_text("opaque-token\n")
    cfg = config.ClientConfig(cluster_url="https://dcos.example.com", token_file=str(token_file))

    with config.create_client(cfg) as c:
        assert c.session.token == types.AuthToken(text="opaque-token")
        assert not c.session.can_login


def test_create_client_without_credentials():
    cfg = config.ClientConfig(cluster_url="https://dcos.example.com/")
    with config.create_client(cfg) as c:
        assert c.base_url == "https://dcos.example.com"
        assert c.session.token is None


def test_create_client_from_env(tmp_path, monkeypatch, key_file):
    path = _write_config(
        tmp_path,
        {
            "cluster_url": "https://dcos.example.com",
            "service_account_id": "telegraf",
            "service_account_private_key": str(key_file),
            "log_level": "DEBUG",
        },
    )
    monkeypatch.setenv(config.CONFIG_ENV_VAR, str(path))
    with config.create_client_from_env() as c:
        assert c.session.can_login


def test_configure_logging_accepts_unknown_level():
    config.configure_logging("not-a-level")


def test_expired_token_file_rejected(tmp_path):
    payload = base64.urlsafe_b64encode(json.dumps({"exp": int(time.time()) - 60}).encode())
    token_file = tmp_path / "token"
    token_file.write_text(f"e30.{payload.rstrip(b'=').decode()}.sig")
    cfg = config.ClientConfig(cluster_url="https://dcos.example.com", token_file=str(token_file))

    with pytest.raises(errors.ExpiredTokenError):
        config.create_client(cfg)
