"""
Read-only contract calls: build + simulate, never sign or submit.

Uses a placeholder source account (all-zero key) with sequence 0, so no funded
account is needed. The simulated return value is decoded and returned directly.
"""

from __future__ import annotations

from typing import Any, Sequence

from stellar_sdk import Account
from stellar_sdk import xdr as stellar_xdr

from backend_stellark.core.exceptions import SimulationError
from backend_stellark.ledger.orchestrator import (
    BASE_FEE,
    DEFAULT_TX_TIMEOUT_SEC,
    build_invocation,
)
from backend_stellark.ledger.scval_codec import decode_xdr
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER_SOURCE = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"


class ReadOnlyInvoker:
    """Simulates contract calls for queries (balance_of, get_company_info)."""

    def __init__(self, server: Any, network_passphrase: str, *, base_fee: int = BASE_FEE) -> None:
        self._server = server
        self._network_passphrase = network_passphrase
        self._base_fee = base_fee

    async def call(self, contract_id: str, method: str, args: Sequence[stellar_xdr.SCVal] = ()) -> Any:
        """Simulate method(args) on contract_id and return the decoded value. Raises SimulationError."""
        tx = build_invocation(
            Account(PLACEHOLDER_SOURCE, 0),
            contract_id,
            method,
            args,
            network_passphrase=self._network_passphrase,
            base_fee=self._base_fee,
            timeout_sec=DEFAULT_TX_TIMEOUT_SEC,
        )
        simulated = await self._server.simulate_transaction(tx)
        if getattr(simulated, "error", None):
            logger.warning("contract_read_failed", contract_id=contract_id, method=method, diagnostic=simulated.error)
            raise SimulationError(simulated.error)
        results = getattr(simulated, "results", None) or []
        if not results:
            return None
        return decode_xdr(results[0].xdr)
