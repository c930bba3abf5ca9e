"""
Application settings and environment configuration.

Responsibilities:
- Load configuration from environment variables and .env files.
- Validate settings and provide defaults for optional ones.
- Expose typed settings (RPC URL, passphrase, DB URL, poll bounds, API port)
  for use across the ledger layer, metadata store, session and API server.
"""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass
from pathlib import Path

from backend_stellark.config import env

DEFAULT_CONFIRM_TIMEOUT_SEC = 60.0
DEFAULT_CONFIRM_POLL_INTERVAL_SEC = 1.0
DEFAULT_BALANCE_REFRESH_SEC = 30.0
DEFAULT_TX_TIMEOUT_SEC = 30


@dataclass(frozen=True)
class Settings:
    """Resolved configuration; build with get_settings() or directly in tests."""

    network: str
    network_passphrase: str
    soroban_rpc_url: str
    horizon_url: str
    explorer_url: str
    xlm_token_address: str
    database_url: str
    confirm_timeout_sec: float | None = DEFAULT_CONFIRM_TIMEOUT_SEC
    confirm_poll_interval_sec: float = DEFAULT_CONFIRM_POLL_INTERVAL_SEC
    tx_timeout_sec: int = DEFAULT_TX_TIMEOUT_SEC
    balance_refresh_sec: float = DEFAULT_BALANCE_REFRESH_SEC
    contracts_dir: Path = Path("stellark")
    deploy_source: str = "alice"
    api_host: str = "0.0.0.0"
    api_port: int = 7042


def _confirm_timeout() -> float | None:
    """CONFIRM_TIMEOUT_SEC; 0 or negative means wait without bound."""
    value = env.get_float("CONFIRM_TIMEOUT_SEC", DEFAULT_CONFIRM_TIMEOUT_SEC)
    return value if value > 0 else None


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the current application settings.

    Cached for the process lifetime; call get_settings.cache_clear() after
    changing the environment (tests do this through monkeypatch).
    """
    env.load_stellark_env()
    return Settings(
        network=env.get_stellar_network(),
        network_passphrase=env.get_network_passphrase(),
        soroban_rpc_url=env.get_soroban_rpc_url(),
        horizon_url=env.get_horizon_url(),
        explorer_url=env.get_explorer_url(),
        xlm_token_address=env.get_xlm_token_address(),
        database_url=env.get_database_url(),
        confirm_timeout_sec=_confirm_timeout(),
        confirm_poll_interval_sec=env.get_float("CONFIRM_POLL_INTERVAL_SEC", DEFAULT_CONFIRM_POLL_INTERVAL_SEC),
        tx_timeout_sec=int(env.get_float("TX_TIMEOUT_SEC", DEFAULT_TX_TIMEOUT_SEC)),
        balance_refresh_sec=env.get_float("BALANCE_REFRESH_SEC", DEFAULT_BALANCE_REFRESH_SEC),
        contracts_dir=Path((os.getenv("STELLARK_CONTRACTS_DIR") or "stellark").strip() or "stellark"),
        deploy_source=(os.getenv("STELLAR_DEPLOY_SOURCE") or "alice").strip() or "alice",
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=int((os.getenv("API_PORT") or os.getenv("PORT") or "7042").strip() or "7042"),
    )
