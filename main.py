"""
Main entrypoint: Stellark API server.

Resolves settings (network, RPC, database, port) from the environment and .env,
then runs the FastAPI app under uvicorn in the main thread.

Env: STELLAR_NETWORK, SOROBAN_RPC_URL, HORIZON_URL, DATABASE_URL or STELLARK_DB_PATH,
STELLARK_CONTRACTS_DIR, STELLAR_DEPLOY_SOURCE, API_HOST, API_PORT, LOG_LEVEL.

Equivalent: uvicorn backend_stellark.api_server.app:app --host 0.0.0.0 --port 7042
"""

import os
import sys

# Configure structured JSON logging before other imports that may log
from backend_stellark.stellark_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Validate configuration, then run the API server."""
    from backend_stellark.config import get_settings

    try:
        settings = get_settings()
    except ValueError as e:
        logger.error("main_config_error", message=str(e))
        sys.exit(1)

    logger.info(
        "main_config_loaded",
        network=settings.network,
        rpc_url=settings.soroban_rpc_url,
        horizon_url=settings.horizon_url,
        contracts_dir=str(settings.contracts_dir),
    )

    from backend_stellark.api_server.app import app
    import uvicorn

    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=os.getenv("LOG_LEVEL", "info").lower())


if __name__ == "__main__":
    main()
