"""
Transaction orchestrator: drive one state-changing contract call to completion.

Protocol (one call, no state kept between calls):
  1. load source account      -> AccountNotFound
  2. build envelope           -> one invoke op, base fee, fixed validity window
  3. simulate                 -> SimulationError (before any signing)
  4. assemble                 -> resource fees + auth merged in
  5. sign                     -> SigningDeclined / SigningUnavailable
  6. submit                   -> SubmissionFailed unless PENDING
  7. confirm                  -> poll every poll_interval until status leaves NOT_FOUND;
                                 TransactionFailed(status) / TransactionTimeout(hash)
Config: confirm bounds come from Settings (CONFIRM_TIMEOUT_SEC, CONFIRM_POLL_INTERVAL_SEC).
"""

from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Sequence

from stellar_sdk import TransactionBuilder
from stellar_sdk import xdr as stellar_xdr
from stellar_sdk.exceptions import AccountNotFoundException
from stellar_sdk.soroban_rpc import GetTransactionStatus, SendTransactionStatus

from backend_stellark.core.exceptions import (
    AccountNotFound,
    BuildFailure,
    SimulationError,
    SubmissionFailed,
    TransactionFailed,
    TransactionTimeout,
)
from backend_stellark.ledger.scval_codec import decode_value
from backend_stellark.ledger.signer import Signer
from backend_stellark.stellark_logging import bind_tx, get_logger

logger = get_logger(__name__)

BASE_FEE = 100
DEFAULT_TX_TIMEOUT_SEC = 30
DEFAULT_POLL_INTERVAL_SEC = 1.0
DEFAULT_MAX_WAIT_SEC = 60.0

# invoke() default: use the orchestrator-level confirmation bound
USE_CONFIGURED: Any = object()


class OrchestrationState(str, enum.Enum):
    BUILDING = "BUILDING"
    SIMULATED = "SIMULATED"
    SIGNED = "SIGNED"
    SUBMITTED = "SUBMITTED"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"


class TransactionStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    NOT_FOUND = "NOT_FOUND"


@dataclass
class PendingTransaction:
    """Ephemeral handle for a submitted transaction; lives for one orchestration call."""

    hash: str
    status: TransactionStatus = TransactionStatus.PENDING


@dataclass
class InvocationResult:
    """Outcome of a confirmed contract call."""

    tx_hash: str
    status: TransactionStatus
    return_value: Any = None


def build_invocation(
    source_account: Any,
    contract_id: str,
    method: str,
    args: Sequence[stellar_xdr.SCVal],
    *,
    network_passphrase: str,
    base_fee: int = BASE_FEE,
    timeout_sec: int = DEFAULT_TX_TIMEOUT_SEC,
) -> Any:
    """Unsigned envelope with exactly one invoke-contract operation. Raises BuildFailure."""
    try:
        return (
            TransactionBuilder(
                source_account=source_account,
                network_passphrase=network_passphrase,
                base_fee=base_fee,
            )
            .append_invoke_contract_function_op(
                contract_id=contract_id,
                function_name=method,
                parameters=list(args),
            )
            .set_timeout(timeout_sec)
            .build()
        )
    except Exception as e:
        raise BuildFailure(f"Could not build {method} call on {contract_id}: {e}") from e


def extract_return_value(result_meta_xdr: str | None) -> stellar_xdr.SCVal | None:
    """Return value of the host function from transaction meta (v3 or v4), or None."""
    if not result_meta_xdr:
        return None
    meta = stellar_xdr.TransactionMeta.from_xdr(result_meta_xdr)
    for version in ("v4", "v3"):
        body = getattr(meta, version, None)
        if body is None:
            continue
        soroban_meta = getattr(body, "soroban_meta", None)
        if soroban_meta is not None:
            return soroban_meta.return_value
    return None


def _status_name(status: Any) -> str:
    return getattr(status, "value", None) or str(status)


class TransactionOrchestrator:
    """
    Executes exactly one contract invocation per invoke() call.

    server is a SorobanServerAsync (or anything with load_account, simulate_transaction,
    prepare_transaction, send_transaction, get_transaction coroutines).
    """

    def __init__(
        self,
        server: Any,
        network_passphrase: str,
        *,
        base_fee: int = BASE_FEE,
        tx_timeout_sec: int = DEFAULT_TX_TIMEOUT_SEC,
        poll_interval_sec: float = DEFAULT_POLL_INTERVAL_SEC,
        max_wait_sec: float | None = DEFAULT_MAX_WAIT_SEC,
    ) -> None:
        self._server = server
        self._network_passphrase = network_passphrase
        self._base_fee = base_fee
        self._tx_timeout_sec = tx_timeout_sec
        self._poll_interval_sec = poll_interval_sec
        self._max_wait_sec = max_wait_sec

    @property
    def network_passphrase(self) -> str:
        return self._network_passphrase

    async def invoke(
        self,
        signer: Signer,
        source_address: str,
        contract_id: str,
        method: str,
        args: Sequence[stellar_xdr.SCVal],
        *,
        max_wait_sec: Any = USE_CONFIGURED,
    ) -> InvocationResult:
        """
        Build, simulate, sign, submit and confirm one call. Returns the decoded return value.
        max_wait_sec overrides the configured confirmation bound; None waits without limit.
        """
        log = logger.bind(contract_id=contract_id, method=method, source=source_address)
        log.info("tx_state", state=OrchestrationState.BUILDING.value)

        try:
            account = await self._server.load_account(source_address)
        except AccountNotFoundException as e:
            log.warning("tx_account_not_found")
            raise AccountNotFound(source_address) from e

        tx = build_invocation(
            account,
            contract_id,
            method,
            args,
            network_passphrase=self._network_passphrase,
            base_fee=self._base_fee,
            timeout_sec=self._tx_timeout_sec,
        )

        simulated = await self._server.simulate_transaction(tx)
        if getattr(simulated, "error", None):
            log.error("tx_simulation_failed", diagnostic=simulated.error)
            raise SimulationError(simulated.error)
        log.info("tx_state", state=OrchestrationState.SIMULATED.value, min_resource_fee=getattr(simulated, "min_resource_fee", None))

        assembled = await self._server.prepare_transaction(tx, simulated)

        signed_xdr = await signer.sign_transaction(
            assembled.to_xdr(),
            network_passphrase=self._network_passphrase,
            address=source_address,
        )
        signed = TransactionBuilder.from_xdr(signed_xdr, self._network_passphrase)
        log.info("tx_state", state=OrchestrationState.SIGNED.value)

        send_response = await self._server.send_transaction(signed)
        tx_hash = send_response.hash
        log.info("tx_state", state=OrchestrationState.SUBMITTED.value, tx_hash=tx_hash, send_status=_status_name(send_response.status))
        if send_response.status != SendTransactionStatus.PENDING:
            detail = getattr(send_response, "error_result_xdr", None)
            log.error("tx_submission_failed", tx_hash=tx_hash, send_status=_status_name(send_response.status), detail=detail)
            raise SubmissionFailed(_status_name(send_response.status), detail)

        pending = PendingTransaction(hash=tx_hash)
        wait = self._max_wait_sec if max_wait_sec is USE_CONFIGURED else max_wait_sec
        return await self.confirm(pending, max_wait_sec=wait, contract_id=contract_id, method=method)

    async def confirm(
        self,
        pending: PendingTransaction,
        *,
        max_wait_sec: float | None,
        contract_id: str | None = None,
        method: str | None = None,
    ) -> InvocationResult:
        """
        Poll get_transaction until the status leaves NOT_FOUND or max_wait_sec elapses.
        Cancelling the awaiting task stops the poll; the ledger still processes the transaction.
        """
        log = bind_tx(logger, pending.hash, contract_id=contract_id, method=method)
        log.info("tx_state", state=OrchestrationState.PENDING.value, max_wait_sec=max_wait_sec)
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = None if max_wait_sec is None else started + max_wait_sec

        response = await self._server.get_transaction(pending.hash)
        while response.status == GetTransactionStatus.NOT_FOUND:
            pending.status = TransactionStatus.NOT_FOUND
            if deadline is not None and loop.time() >= deadline:
                waited = loop.time() - started
                log.warning("tx_state", state=OrchestrationState.TIMEOUT.value, waited_sec=round(waited, 2))
                raise TransactionTimeout(pending.hash, waited)
            await asyncio.sleep(self._poll_interval_sec)
            response = await self._server.get_transaction(pending.hash)

        if response.status == GetTransactionStatus.SUCCESS:
            pending.status = TransactionStatus.SUCCESS
            value = decode_value(extract_return_value(getattr(response, "result_meta_xdr", None)))
            log.info("tx_state", state=OrchestrationState.CONFIRMED.value, ledger=getattr(response, "ledger", None))
            return InvocationResult(tx_hash=pending.hash, status=pending.status, return_value=value)

        pending.status = TransactionStatus.FAILED
        status = _status_name(response.status)
        log.error("tx_state", state=OrchestrationState.FAILED.value, tx_status=status)
        raise TransactionFailed(status, pending.hash)


def create_soroban_server(rpc_url: str) -> Any:
    """Async Soroban RPC client (aiohttp transport). Close with `await server.close()`."""
    from stellar_sdk import SorobanServerAsync
    from stellar_sdk.client.aiohttp_client import AiohttpClient

    return SorobanServerAsync(rpc_url, client=AiohttpClient())
