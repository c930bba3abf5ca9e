"""
Structured JSON logging for ledger and market events.

Every record carries timestamp, level, event_type, logger and the configured
Stellar network. Modules pass the event name first, then keyword context
(contract_id, tx_hash, method, address). Secret seeds (S...) never reach the
output: any string value that is a valid-looking Stellar secret is redacted.

Config: LOG_LEVEL (default INFO), LOG_FORMAT (json | console), STELLAR_NETWORK.

Uses only Python stdlib logging and structlog; no backend_stellark imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any, TextIO

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Ed25519 secret seed strkey: 'S' + 55 base32 characters
_SECRET_SEED_RE = re.compile(r"\bS[A-Z2-7]{55}\b")
REDACTED = "[redacted-secret]"


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_network(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Tag the record with STELLAR_NETWORK unless the caller set network explicitly."""
    event_dict.setdefault("network", (os.getenv("STELLAR_NETWORK") or "testnet").strip().lower())
    return event_dict


def _redact_secrets(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    for key, value in event_dict.items():
        if isinstance(value, str) and "S" in value:
            event_dict[key] = _SECRET_SEED_RE.sub(REDACTED, value)
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog(stream: TextIO | None = None, log_format: str | None = None) -> None:
    """
    Configure structlog: JSON (or console) renderer over the shared processors.
    Called once at import with stdout; pass `stream` to redirect output.
    """
    fmt = (log_format or LOG_FORMAT).strip().lower()
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _add_network,
        _redact_secrets,
        _normalize_event,
    ]
    out = stream if stream is not None else sys.stdout
    if fmt == "json":
        # Decimal amounts and enum statuses render via str()
        shared_processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        shared_processors.append(
            structlog.dev.ConsoleRenderer(colors=out.isatty())
        )
    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=out),
        cache_logger_on_first_use=stream is None,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("tx_state", contract_id=cid, tx_hash=h, state="confirmed")
    Output (JSON): {"event_type": "tx_state", "contract_id": "...", "tx_hash": "...",
    "state": "confirmed", "network": "testnet", "timestamp": "...", "level": "info",
    "logger": "module.name"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_contract(contract_id: str) -> structlog.BoundLogger:
    """Return a logger with contract_id bound to all subsequent log calls."""
    return get_logger("backend_stellark").bind(contract_id=contract_id)


def bind_tx(
    log: structlog.BoundLogger,
    tx_hash: str,
    *,
    contract_id: str | None = None,
    method: str | None = None,
) -> structlog.BoundLogger:
    """Bind one submitted transaction's hash (and its contract call, when known) to `log`."""
    context: dict[str, Any] = {"tx_hash": tx_hash}
    if contract_id is not None:
        context["contract_id"] = contract_id
    if method is not None:
        context["method"] = method
    return log.bind(**context)
