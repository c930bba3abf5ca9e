"""
Structured logging for Backend Stellark.

JSON logs with timestamp, event_type, network, contract_id, tx_hash; secret seeds redacted.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_stellark.stellark_logging.logger import bind_contract, bind_tx, configure_structlog, get_logger

__all__ = ["bind_contract", "bind_tx", "configure_structlog", "get_logger"]
