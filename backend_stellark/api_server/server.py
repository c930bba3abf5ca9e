"""
FastAPI server: backend façade for the Stellark frontend.

  GET  /health                    liveness
  POST /api/deploy-contract       build + deploy a fresh equity token contract
  GET  /api/deployment-info       static network config
  GET  /api/companies             market overview (metadata + on-chain figures)
  GET  /api/companies/{id}        company metadata
  GET  /api/resale-listings       active resale listings (optional contract_id filter)
  GET  /api/portfolio/{address}   holdings and total value for an address

Every failure is a 500 with {success: false, error, details}; there are no
per-kind status codes. Collaborator messages are passed through verbatim.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_stellark.api_server.deployer import ContractDeployer
from backend_stellark.config import Settings, get_settings
from backend_stellark.core.exceptions import DeploymentError, InvalidAddress, StellarkError
from backend_stellark.database import CompanyMetadata, MetadataStore, ResaleListing, get_metadata_store
from backend_stellark.ledger import EquityTokenClient, ReadOnlyInvoker, TransactionOrchestrator, create_soroban_server
from backend_stellark.ledger.scval_codec import is_valid_address
from backend_stellark.reconciliation import CompanyOverview, MarketService
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Runtime wiring (built lazily on first use, torn down in lifespan)
# -----------------------------------------------------------------------------


@dataclass
class Runtime:
    settings: Settings
    store: MetadataStore
    soroban_server: Any
    market: MarketService
    deployer: ContractDeployer


_runtime: Runtime | None = None


def build_runtime(settings: Settings) -> Runtime:
    server = create_soroban_server(settings.soroban_rpc_url)
    orchestrator = TransactionOrchestrator(
        server,
        settings.network_passphrase,
        tx_timeout_sec=settings.tx_timeout_sec,
        poll_interval_sec=settings.confirm_poll_interval_sec,
        max_wait_sec=settings.confirm_timeout_sec,
    )
    contract = EquityTokenClient(orchestrator, ReadOnlyInvoker(server, settings.network_passphrase))
    store = get_metadata_store(settings.database_url)
    return Runtime(
        settings=settings,
        store=store,
        soroban_server=server,
        market=MarketService(store, contract, settings.xlm_token_address),
        deployer=ContractDeployer(
            settings.contracts_dir,
            source=settings.deploy_source,
            network=settings.network,
            explorer_url=settings.explorer_url,
        ),
    )


def get_runtime() -> Runtime:
    global _runtime
    if _runtime is None:
        _runtime = build_runtime(get_settings())
        logger.info("api_runtime_ready", network=_runtime.settings.network, rpc_url=_runtime.settings.soroban_rpc_url)
    return _runtime


def get_market_service() -> MarketService:
    return get_runtime().market


def get_deployer() -> ContractDeployer:
    return get_runtime().deployer


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close the RPC transport on shutdown."""
    logger.info("api_started")
    yield
    global _runtime
    runtime, _runtime = _runtime, None
    if runtime is not None:
        await runtime.soroban_server.close()
    logger.info("api_stopped")


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str = Field(..., description="ok when the API is up")
    message: str = Field("Stellark API is running")


class DeployResponse(BaseModel):
    success: bool
    contractId: str = Field(..., description="Deployed contract address (C...)")
    message: str = "Contract deployed successfully"
    explorerUrl: str


class DeploymentInfoResponse(BaseModel):
    network: str
    rpcUrl: str
    horizonUrl: str
    explorerUrl: str


class CompanyModel(BaseModel):
    contract_id: str
    name: str
    description: str
    logo_url: str = ""
    owner_wallet: str
    token_price: float = Field(..., description="Price per token (XLM)")
    target_amount: float = Field(..., description="Fundraising target (XLM)")
    created_at: datetime | None = None

    @classmethod
    def from_metadata(cls, m: CompanyMetadata) -> "CompanyModel":
        return cls(
            contract_id=m.contract_address,
            name=m.name,
            description=m.description,
            logo_url=m.logo_url,
            owner_wallet=m.owner_address,
            token_price=float(m.token_price),
            target_amount=float(m.target_amount),
            created_at=m.created_at,
        )


class OnChainInfoModel(BaseModel):
    name: str
    symbol: str
    total_supply: int
    owner: str
    equity_percent: int
    description: str
    token_price: int = Field(..., description="Stroops")
    target_amount: int = Field(..., description="Stroops")


class CompanyOverviewModel(BaseModel):
    company: CompanyModel
    on_chain: OnChainInfoModel | None = None
    tokens_sold: int = 0
    total_tokens: int = 0
    available_tokens: int = 0
    funds_raised: float = 0.0
    progress_percent: float = 0.0

    @classmethod
    def from_overview(cls, o: CompanyOverview) -> "CompanyOverviewModel":
        on_chain = None
        if o.on_chain is not None:
            info = o.on_chain
            on_chain = OnChainInfoModel(
                name=info.name,
                symbol=info.symbol,
                total_supply=info.total_supply,
                owner=info.owner,
                equity_percent=info.equity_percent,
                description=info.description,
                token_price=info.token_price,
                target_amount=info.target_amount,
            )
        return cls(
            company=CompanyModel.from_metadata(o.metadata),
            on_chain=on_chain,
            tokens_sold=o.tokens_sold,
            total_tokens=o.total_tokens,
            available_tokens=o.available_tokens,
            funds_raised=float(o.funds_raised),
            progress_percent=float(o.progress_percent),
        )


class ResaleListingModel(BaseModel):
    id: str
    contract_id: str
    seller_wallet: str
    tokens_for_sale: int
    price_per_token: float
    is_active: bool
    created_at: datetime | None = None

    @classmethod
    def from_listing(cls, listing: ResaleListing) -> "ResaleListingModel":
        return cls(
            id=listing.id or "",
            contract_id=listing.contract_address,
            seller_wallet=listing.seller_address,
            tokens_for_sale=listing.tokens_for_sale,
            price_per_token=float(listing.price_per_token),
            is_active=listing.is_active,
            created_at=listing.created_at,
        )


class HoldingModel(BaseModel):
    company: CompanyModel
    token_balance: int
    current_value: float


class PortfolioResponse(BaseModel):
    address: str
    holdings: list[HoldingModel] = Field(default_factory=list)
    total_value: float = 0.0
    total_tokens: int = 0


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend Stellark API",
    description="Contract deployment and market data for tokenized equity on Soroban.",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


def _error_response(error: str, details: Any) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": error, "details": details})


@app.exception_handler(StellarkError)
async def stellark_error_handler(request: Request, exc: StellarkError) -> JSONResponse:
    logger.error("api_request_failed", path=request.url.path, error_kind=type(exc).__name__, error=str(exc))
    if isinstance(exc, DeploymentError):
        return _error_response(exc.error, exc.details)
    return _error_response(type(exc).__name__, str(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("api_unexpected_error", path=request.url.path, error=str(exc))
    return _error_response("Internal server error", str(exc))


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Liveness check: API is up."""
    return HealthResponse(status="ok")


@app.post("/api/deploy-contract", response_model=DeployResponse)
async def deploy_contract(deployer: ContractDeployer = Depends(get_deployer)) -> DeployResponse:
    """
    Build and deploy a fresh equity token contract to the configured network.
    Each call creates a new contract instance with its own storage.
    """
    result = await deployer.deploy()
    return DeployResponse(success=True, contractId=result.contract_id, explorerUrl=result.explorer_url)


@app.get("/api/deployment-info", response_model=DeploymentInfoResponse)
def deployment_info(settings: Settings = Depends(get_settings)) -> DeploymentInfoResponse:
    return DeploymentInfoResponse(
        network=settings.network,
        rpcUrl=settings.soroban_rpc_url,
        horizonUrl=settings.horizon_url,
        explorerUrl=settings.explorer_url,
    )


@app.get("/api/companies", response_model=list[CompanyOverviewModel])
async def list_companies(market: MarketService = Depends(get_market_service)) -> list[CompanyOverviewModel]:
    """All listed companies, newest first, with tokens sold and progress from on-chain state."""
    overviews = await market.market_overview()
    return [CompanyOverviewModel.from_overview(o) for o in overviews]


@app.get("/api/companies/{contract_id}", response_model=CompanyModel)
def get_company(contract_id: str, market: MarketService = Depends(get_market_service)):
    """Off-chain metadata for one company. 404 when not listed."""
    company = market.store.get_company(contract_id)
    if company is None:
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": "Company not found", "details": contract_id},
        )
    return CompanyModel.from_metadata(company)


@app.get("/api/resale-listings", response_model=list[ResaleListingModel])
def list_resale_listings(
    contract_id: str | None = None,
    market: MarketService = Depends(get_market_service),
) -> list[ResaleListingModel]:
    """Active resale listings, newest first."""
    return [ResaleListingModel.from_listing(listing) for listing in market.active_listings(contract_id)]


@app.get("/api/portfolio/{address}", response_model=PortfolioResponse)
async def get_portfolio(address: str, market: MarketService = Depends(get_market_service)) -> PortfolioResponse:
    """Nonzero holdings of `address` across listed companies, valued at listing price."""
    address = address.strip()
    if not is_valid_address(address):
        raise InvalidAddress(address)
    portfolio = await market.portfolio(address)
    return PortfolioResponse(
        address=address,
        holdings=[
            HoldingModel(
                company=CompanyModel.from_metadata(h.company),
                token_balance=h.balance,
                current_value=float(h.current_value),
            )
            for h in portfolio.holdings
        ],
        total_value=float(portfolio.total_value),
        total_tokens=portfolio.total_tokens,
    )
