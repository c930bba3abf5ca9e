"""
Ledger layer: Soroban contract invocation.

ScVal codec, signer interface, transaction orchestrator (build, simulate, sign,
submit, confirm), read-only invoker and the equity token contract client.
"""

from backend_stellark.ledger.contract import CompanyOnChainInfo, EquityTokenClient
from backend_stellark.ledger.invoker import ReadOnlyInvoker
from backend_stellark.ledger.orchestrator import (
    InvocationResult,
    OrchestrationState,
    PendingTransaction,
    TransactionOrchestrator,
    TransactionStatus,
    create_soroban_server,
)
from backend_stellark.ledger.signer import KeypairSigner, Signer

__all__ = [
    "CompanyOnChainInfo",
    "EquityTokenClient",
    "InvocationResult",
    "KeypairSigner",
    "OrchestrationState",
    "PendingTransaction",
    "ReadOnlyInvoker",
    "Signer",
    "TransactionOrchestrator",
    "TransactionStatus",
    "create_soroban_server",
]
