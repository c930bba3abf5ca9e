"""
Tests for environment-driven settings.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from stellar_sdk import Network

from backend_stellark.config import get_settings
from backend_stellark.config import env


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "STELLAR_NETWORK",
        "SOROBAN_RPC_URL",
        "HORIZON_URL",
        "NETWORK_PASSPHRASE",
        "XLM_TOKEN_ADDRESS",
        "DATABASE_URL",
        "STELLARK_DB_PATH",
        "CONFIRM_TIMEOUT_SEC",
        "CONFIRM_POLL_INTERVAL_SEC",
        "STELLARK_CONTRACTS_DIR",
        "API_PORT",
        "PORT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_testnet_defaults():
    s = get_settings()
    assert s.network == "testnet"
    assert s.network_passphrase == Network.TESTNET_NETWORK_PASSPHRASE
    assert s.soroban_rpc_url == env.TESTNET_RPC_URL
    assert s.horizon_url == env.TESTNET_HORIZON_URL
    assert s.xlm_token_address == env.DEFAULT_TESTNET_XLM_TOKEN_ADDRESS
    assert s.database_url == "sqlite:///stellark.db"
    assert s.explorer_url == "https://stellar.expert/explorer/testnet"
    assert s.confirm_timeout_sec == 60.0
    assert s.contracts_dir == Path("stellark")
    assert s.api_port == 7042


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("STELLAR_NETWORK", "public")
    monkeypatch.setenv("SOROBAN_RPC_URL", "https://rpc.example.org")
    monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://user:pw@db.example.org/postgres")
    monkeypatch.setenv("CONFIRM_TIMEOUT_SEC", "0")
    monkeypatch.setenv("CONFIRM_POLL_INTERVAL_SEC", "not-a-number")
    monkeypatch.setenv("API_PORT", "9000")
    s = get_settings()
    assert s.network == "mainnet"
    assert s.network_passphrase == Network.PUBLIC_NETWORK_PASSPHRASE
    assert s.soroban_rpc_url == "https://rpc.example.org"
    assert s.horizon_url == env.MAINNET_HORIZON_URL
    assert s.explorer_url == "https://stellar.expert/explorer/public"
    assert s.database_url.startswith("postgresql+psycopg://")
    assert s.confirm_timeout_sec is None
    assert s.confirm_poll_interval_sec == 1.0
    assert s.api_port == 9000


def test_mainnet_requires_rpc_url(monkeypatch):
    monkeypatch.setenv("STELLAR_NETWORK", "mainnet")
    with pytest.raises(ValueError, match="SOROBAN_RPC_URL"):
        get_settings()


def test_sqlite_path(monkeypatch, tmp_path):
    monkeypatch.setenv("STELLARK_DB_PATH", str(tmp_path / "meta.db"))
    assert get_settings().database_url == f"sqlite:///{tmp_path / 'meta.db'}"
