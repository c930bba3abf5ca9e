"""
Environment variable loading and validation for Stellark.

- STELLAR_NETWORK: testnet | mainnet | futurenet (default: testnet)
- SOROBAN_RPC_URL: Soroban RPC endpoint (default per network)
- HORIZON_URL: Horizon endpoint used for native balance reads (default per network)
- XLM_TOKEN_ADDRESS: Stellar Asset Contract address of native XLM
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from stellar_sdk import Network

# Project root: config is backend_stellark/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

TESTNET_RPC_URL = "https://soroban-testnet.stellar.org"
TESTNET_HORIZON_URL = "https://horizon-testnet.stellar.org"
FUTURENET_RPC_URL = "https://rpc-futurenet.stellar.org"
FUTURENET_HORIZON_URL = "https://horizon-futurenet.stellar.org"
MAINNET_HORIZON_URL = "https://horizon.stellar.org"

# Native XLM Stellar Asset Contract on testnet
DEFAULT_TESTNET_XLM_TOKEN_ADDRESS = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"

EXPLORER_URL_TEMPLATE = "https://stellar.expert/explorer/{network}"

_PASSPHRASES = {
    "testnet": Network.TESTNET_NETWORK_PASSPHRASE,
    "mainnet": Network.PUBLIC_NETWORK_PASSPHRASE,
    "futurenet": Network.FUTURENET_NETWORK_PASSPHRASE,
}


def load_stellark_env() -> None:
    """Load .env from project root. Safe to call multiple times."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def get_stellar_network() -> str:
    """
    Return STELLAR_NETWORK from env: testnet | mainnet | futurenet.
    Default: testnet. "public" and "pubnet" map to mainnet.
    """
    load_stellark_env()
    raw = (os.getenv("STELLAR_NETWORK") or "testnet").strip().lower()
    if raw in ("public", "pubnet", "mainnet"):
        return "mainnet"
    if raw == "futurenet":
        return "futurenet"
    return "testnet"


def get_network_passphrase() -> str:
    """Passphrase for the configured network; NETWORK_PASSPHRASE overrides."""
    load_stellark_env()
    override = (os.getenv("NETWORK_PASSPHRASE") or "").strip()
    if override:
        return override
    return _PASSPHRASES[get_stellar_network()]


def get_soroban_rpc_url() -> str:
    """
    Resolve Soroban RPC URL from env.
    Order: SOROBAN_RPC_URL > network default. Mainnet has no public default.
    """
    load_stellark_env()
    url = (os.getenv("SOROBAN_RPC_URL") or "").strip()
    if url:
        return url
    network = get_stellar_network()
    if network == "futurenet":
        return FUTURENET_RPC_URL
    if network == "mainnet":
        raise ValueError("SOROBAN_RPC_URL must be set for mainnet")
    return TESTNET_RPC_URL


def get_horizon_url() -> str:
    """Resolve Horizon URL: HORIZON_URL > network default."""
    load_stellark_env()
    url = (os.getenv("HORIZON_URL") or "").strip()
    if url:
        return url
    network = get_stellar_network()
    if network == "futurenet":
        return FUTURENET_HORIZON_URL
    if network == "mainnet":
        return MAINNET_HORIZON_URL
    return TESTNET_HORIZON_URL


def get_xlm_token_address() -> str:
    """Return XLM_TOKEN_ADDRESS from env, or the testnet native SAC address."""
    load_stellark_env()
    return (os.getenv("XLM_TOKEN_ADDRESS") or "").strip() or DEFAULT_TESTNET_XLM_TOKEN_ADDRESS


def get_explorer_url() -> str:
    """Block explorer base URL for the configured network."""
    network = get_stellar_network()
    return EXPLORER_URL_TEMPLATE.format(network="public" if network == "mainnet" else network)


def get_database_url() -> str:
    """Return DATABASE_URL (e.g. hosted Postgres) if set; else SQLite from STELLARK_DB_PATH or default."""
    load_stellark_env()
    url = (os.getenv("DATABASE_URL") or "").strip()
    if url:
        return url
    path = (os.getenv("STELLARK_DB_PATH") or "").strip() or "stellark.db"
    return f"sqlite:///{path}"


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_float(name: str, default: float) -> float:
    """Float env var with default on missing or malformed value."""
    load_stellark_env()
    return _float_env(name, default)


def print_stellark_startup(script_name: str) -> None:
    """Print network and RPC at script start."""
    network = get_stellar_network()
    rpc = get_soroban_rpc_url()
    print(f"[stellark] {script_name} | network={network} | rpc={rpc}")
