"""
Pytest fixtures for Stellark tests. Uses a temporary SQLite metadata store and
in-process fakes for the Soroban RPC server and the equity token contract.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest
from stellar_sdk import Account, Keypair, Network
from stellar_sdk.exceptions import AccountNotFoundException
from stellar_sdk.soroban_rpc import GetTransactionStatus, SendTransactionStatus

# Native XLM Stellar Asset Contract on testnet; a real, checksummed contract strkey
CONTRACT_ID = "CDLZFC3SYJYDZT7K67VZ75HPJVIEUVNIXF47ZG2FB2RMQQVU2HHGCYSC"
OTHER_CONTRACT_ID = "C" + "E" * 55
TESTNET = Network.TESTNET_NETWORK_PASSPHRASE


class FakeSorobanServer:
    """
    Stand-in for SorobanServerAsync. Records every call; responses are scripted.

    tx_statuses is consumed one per get_transaction call; the last one repeats.
    """

    def __init__(
        self,
        *,
        accounts: dict[str, int] | None = None,
        simulate_error: str | None = None,
        simulate_result_xdr: str | None = None,
        send_status: SendTransactionStatus = SendTransactionStatus.PENDING,
        tx_statuses: list[GetTransactionStatus] | None = None,
        result_meta_xdr: str | None = None,
    ) -> None:
        self.accounts = dict(accounts or {})
        self.simulate_error = simulate_error
        self.simulate_result_xdr = simulate_result_xdr
        self.send_status = send_status
        self.tx_statuses = list(tx_statuses or [GetTransactionStatus.SUCCESS])
        self.result_meta_xdr = result_meta_xdr
        self.calls: list[str] = []
        self.simulated: list = []
        self.sent: list = []
        self.closed = False

    async def load_account(self, address: str) -> Account:
        self.calls.append("load_account")
        if address not in self.accounts:
            raise AccountNotFoundException(address)
        return Account(address, self.accounts[address])

    async def simulate_transaction(self, tx):
        self.calls.append("simulate_transaction")
        self.simulated.append(tx)
        results = [] if self.simulate_result_xdr is None else [SimpleNamespace(xdr=self.simulate_result_xdr)]
        return SimpleNamespace(error=self.simulate_error, results=results, min_resource_fee=100)

    async def prepare_transaction(self, tx, simulated):
        self.calls.append("prepare_transaction")
        return tx

    async def send_transaction(self, envelope):
        self.calls.append("send_transaction")
        self.sent.append(envelope)
        return SimpleNamespace(status=self.send_status, hash="ab" * 32, error_result_xdr="AAAA" if self.send_status != SendTransactionStatus.PENDING else None)

    async def get_transaction(self, tx_hash: str):
        self.calls.append("get_transaction")
        status = self.tx_statuses.pop(0) if len(self.tx_statuses) > 1 else self.tx_statuses[0]
        return SimpleNamespace(status=status, result_meta_xdr=self.result_meta_xdr, ledger=123)

    async def close(self) -> None:
        self.closed = True


class FakeContract:
    """Duck-typed EquityTokenClient; on-chain state lives in dicts."""

    def __init__(self) -> None:
        self.info: dict = {}
        self.balances: dict[tuple[str, str], int] = {}
        self.failing: set[str] = set()
        self.calls: list[tuple] = []

    async def _submit(self, *call):
        from backend_stellark.ledger.orchestrator import InvocationResult, TransactionStatus

        self.calls.append(call)
        return InvocationResult(tx_hash="cd" * 32, status=TransactionStatus.SUCCESS)

    async def init_company(self, signer, owner, contract_id, **fields):
        return await self._submit("init_company", contract_id, owner, fields)

    async def mint(self, signer, buyer, contract_id, to, amount, xlm_token):
        return await self._submit("mint", contract_id, buyer, to, amount, xlm_token)

    async def transfer_with_payment(self, signer, buyer, seller, contract_id, amount, price_per_token, xlm_token):
        return await self._submit("transfer_with_payment", contract_id, buyer, seller, amount, price_per_token, xlm_token)

    async def balance_of(self, contract_id: str, address: str) -> int:
        from backend_stellark.core.exceptions import SimulationError

        if contract_id in self.failing:
            raise SimulationError("HostError: contract not found")
        return self.balances.get((contract_id, address), 0)

    async def get_company_info(self, contract_id: str):
        from backend_stellark.core.exceptions import SimulationError

        if contract_id in self.failing:
            raise SimulationError("HostError: contract not found")
        return self.info.get(contract_id)


@pytest.fixture
def fake_server_factory():
    """Build a FakeSorobanServer with scripted responses."""
    return FakeSorobanServer


@pytest.fixture
def fake_contract():
    return FakeContract()


@pytest.fixture
def keypair() -> Keypair:
    return Keypair.random()


@pytest.fixture
def signer(keypair):
    from backend_stellark.ledger.signer import KeypairSigner

    return KeypairSigner(keypair)


@pytest.fixture
def store(tmp_path, monkeypatch):
    """
    Metadata store on a temporary SQLite file. Unset DATABASE_URL so nothing
    reaches a real database.
    """
    monkeypatch.delenv("DATABASE_URL", raising=False)
    from backend_stellark.database import MetadataStore

    s = MetadataStore(f"sqlite:///{tmp_path / 'stellark.db'}")
    yield s
    s.dispose()


@pytest.fixture
def session(signer):
    """WalletSession already attached to the signer's address (no refresh task, no HTTP)."""
    from backend_stellark.session import WalletSession

    ws = WalletSession(signer, "https://horizon-testnet.stellar.org")
    ws.address = signer.public_key
    return ws


@pytest.fixture
def market(store, fake_contract):
    from backend_stellark.reconciliation import MarketService

    return MarketService(store, fake_contract, CONTRACT_ID)


@pytest.fixture
def company_factory():
    """CompanyMetadata with sensible defaults; override any field by keyword."""
    from backend_stellark.database import CompanyMetadata

    def make(**overrides):
        fields = dict(
            contract_address=OTHER_CONTRACT_ID,
            name="Acme Robotics",
            description="Warehouse automation",
            owner_address=Keypair.random().public_key,
            token_price=Decimal("2.5"),
            target_amount=Decimal("10000"),
        )
        fields.update(overrides)
        return CompanyMetadata(**fields)

    return make


@pytest.fixture
def settings(tmp_path):
    from backend_stellark.config import Settings

    return Settings(
        network="testnet",
        network_passphrase=TESTNET,
        soroban_rpc_url="https://soroban-testnet.stellar.org",
        horizon_url="https://horizon-testnet.stellar.org",
        explorer_url="https://stellar.expert/explorer/testnet",
        xlm_token_address=CONTRACT_ID,
        database_url=f"sqlite:///{tmp_path / 'stellark.db'}",
        contracts_dir=tmp_path,
    )


@pytest.fixture
def client(market, settings):
    """FastAPI TestClient with market service, deployer and settings overridden."""
    from fastapi.testclient import TestClient

    from backend_stellark.api_server.deployer import ContractDeployer
    from backend_stellark.api_server.server import app, get_deployer, get_market_service
    from backend_stellark.config import get_settings

    app.dependency_overrides[get_market_service] = lambda: market
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_deployer] = lambda: ContractDeployer(
        settings.contracts_dir, explorer_url=settings.explorer_url
    )
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
