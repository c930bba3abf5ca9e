"""
Market service: the user-facing flows that join on-chain state with off-chain metadata.

Every flow reads what it needs, decides, submits at most one contract call through
the orchestrator, then updates the off-chain store to reflect the confirmed result.
Nothing is retried; failures propagate to the caller with the collaborator's message.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal

from backend_stellark.core.exceptions import InvalidPurchase, LedgerError, PrecisionLoss
from backend_stellark.database.metadata_store import MetadataStore
from backend_stellark.database.models import CompanyMetadata, ResaleListing
from backend_stellark.ledger.contract import EquityTokenClient
from backend_stellark.ledger.orchestrator import InvocationResult
from backend_stellark.ledger.scval_codec import validate_contract_id
from backend_stellark.reconciliation.figures import (
    CompanyOverview,
    Holding,
    compute_available_tokens,
    compute_portfolio_value,
    compute_tokens_sold,
    compute_total_tokens,
)
from backend_stellark.reconciliation.settlement import (
    SettlementOutcome,
    check_purchase,
    settle_resale_purchase,
)
from backend_stellark.session.wallet_session import WalletSession
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


@dataclass
class Portfolio:
    address: str
    holdings: list[Holding] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        return compute_portfolio_value(self.holdings)

    @property
    def total_tokens(self) -> int:
        return compute_total_tokens(self.holdings)


class MarketService:
    """Reconciliation flows over one metadata store and one contract client."""

    def __init__(self, store: MetadataStore, contract: EquityTokenClient, xlm_token_address: str) -> None:
        self._store = store
        self._contract = contract
        self._xlm_token = xlm_token_address

    @property
    def store(self) -> MetadataStore:
        return self._store

    # -- primary market --------------------------------------------------------

    async def list_company(
        self,
        session: WalletSession,
        contract_id: str,
        *,
        name: str,
        symbol: str,
        total_supply: int,
        equity_percent: int,
        description: str,
        token_price: Decimal,
        target_amount: Decimal,
        logo_url: str = "",
    ) -> CompanyMetadata:
        """Initialize the deployed contract on-chain, then record the listing off-chain."""
        contract_id = validate_contract_id(contract_id)
        if not name.strip() or not symbol.strip():
            raise ValueError("name and symbol must be non-empty")
        if total_supply <= 0:
            raise ValueError("total_supply must be positive")
        if not 0 < equity_percent <= 100:
            raise ValueError("equity_percent must be between 1 and 100")
        if Decimal(token_price) <= 0 or Decimal(target_amount) <= 0:
            raise ValueError("token_price and target_amount must be positive")

        owner = session.require_address()
        result = await self._contract.init_company(
            session.signer,
            owner,
            contract_id,
            name=name,
            symbol=symbol,
            total_supply=total_supply,
            equity_percent=equity_percent,
            description=description,
            token_price=Decimal(token_price),
            target_amount=Decimal(target_amount),
        )
        saved = await asyncio.to_thread(
            self._store.save_company,
            CompanyMetadata(
                contract_address=contract_id,
                name=name,
                description=description,
                owner_address=owner,
                token_price=Decimal(token_price),
                target_amount=Decimal(target_amount),
                logo_url=logo_url,
            ),
        )
        logger.info("company_listed", contract_id=contract_id, tx_hash=result.tx_hash, owner=owner)
        return saved

    async def company_overview(self, metadata: CompanyMetadata) -> CompanyOverview:
        """Metadata + on-chain info + tokens sold. On-chain read failures give on_chain=None."""
        try:
            info = await self._contract.get_company_info(metadata.contract_address)
            if info is None:
                return CompanyOverview(metadata=metadata, on_chain=None)
            owner_balance = await self._contract.balance_of(metadata.contract_address, metadata.owner_address)
        except (LedgerError, PrecisionLoss) as e:
            logger.warning("company_onchain_read_failed", contract_id=metadata.contract_address, error=str(e))
            return CompanyOverview(metadata=metadata, on_chain=None)
        return CompanyOverview(
            metadata=metadata,
            on_chain=info,
            tokens_sold=compute_tokens_sold(info, owner_balance),
        )

    async def market_overview(self) -> list[CompanyOverview]:
        """One overview per listed company, newest first."""
        companies = await asyncio.to_thread(self._store.list_companies)
        return list(await asyncio.gather(*(self.company_overview(c) for c in companies)))

    async def invest(self, session: WalletSession, contract_id: str, tokens: int) -> InvocationResult:
        """Buy `tokens` from the company owner's balance (mint); the buyer signs and pays in XLM."""
        contract_id = validate_contract_id(contract_id)
        if tokens < 1:
            raise InvalidPurchase("Token quantity must be at least 1")
        buyer = session.require_address()
        metadata = await asyncio.to_thread(self._store.get_company, contract_id)
        if metadata is None:
            raise InvalidPurchase(f"Company {contract_id} is not listed")
        # On-chain read failures propagate with the collaborator's message.
        info = await self._contract.get_company_info(contract_id)
        if info is None:
            raise InvalidPurchase(f"Company {contract_id} is not initialized on-chain")
        owner_balance = await self._contract.balance_of(contract_id, metadata.owner_address)
        available = compute_available_tokens(info, compute_tokens_sold(info, owner_balance))
        if tokens > available:
            raise InvalidPurchase(f"Requested {tokens} tokens but only {available} are available")

        result = await self._contract.mint(session.signer, buyer, contract_id, buyer, tokens, self._xlm_token)
        logger.info("investment_confirmed", contract_id=contract_id, tx_hash=result.tx_hash, buyer=buyer, tokens=tokens)
        return result

    # -- resale market ---------------------------------------------------------

    async def list_tokens_for_resale(
        self,
        session: WalletSession,
        contract_id: str,
        tokens: int,
        price_per_token: Decimal,
    ) -> ResaleListing:
        """Create a resale listing after checking the seller holds enough tokens on-chain."""
        contract_id = validate_contract_id(contract_id)
        if tokens <= 0:
            raise InvalidPurchase("Token quantity must be positive")
        if Decimal(price_per_token) <= 0:
            raise InvalidPurchase("Price per token must be positive")
        seller = session.require_address()
        balance = await self._contract.balance_of(contract_id, seller)
        if tokens > balance:
            raise InvalidPurchase(f"Cannot list {tokens} tokens; balance is {balance}")
        return await asyncio.to_thread(
            self._store.create_resale_listing,
            ResaleListing(
                id=None,
                contract_address=contract_id,
                seller_address=seller,
                tokens_for_sale=tokens,
                price_per_token=Decimal(price_per_token),
            ),
        )

    def active_listings(self, contract_id: str | None = None) -> list[ResaleListing]:
        if contract_id:
            return self._store.list_active_resale_listings_for_contract(contract_id)
        return self._store.list_active_resale_listings()

    async def buy_from_listing(self, session: WalletSession, listing_id: str, tokens: int) -> SettlementOutcome:
        """
        Resale purchase: pre-check quantity, transfer_with_payment (buyer signs),
        then settle the listing off-chain.
        """
        buyer = session.require_address()
        listing = await asyncio.to_thread(self._store.get_resale_listing, listing_id)
        if listing is None:
            raise InvalidPurchase(f"Listing {listing_id} not found")
        check_purchase(listing, tokens)

        result = await self._contract.transfer_with_payment(
            session.signer,
            buyer,
            listing.seller_address,
            listing.contract_address,
            tokens,
            listing.price_per_token,
            self._xlm_token,
        )
        logger.info(
            "resale_purchase_confirmed",
            contract_id=listing.contract_address,
            tx_hash=result.tx_hash,
            listing_id=listing.id,
            tokens=tokens,
        )
        return await asyncio.to_thread(settle_resale_purchase, self._store, listing, tokens)

    # -- portfolio -------------------------------------------------------------

    async def _holding(self, company: CompanyMetadata, address: str) -> Holding | None:
        try:
            balance = await self._contract.balance_of(company.contract_address, address)
        except (LedgerError, PrecisionLoss) as e:
            logger.warning("holding_read_failed", contract_id=company.contract_address, address=address, error=str(e))
            return None
        if balance <= 0:
            return None
        return Holding(company=company, balance=balance)

    async def portfolio(self, address: str) -> Portfolio:
        """Holdings with a nonzero balance across all listed companies."""
        companies = await asyncio.to_thread(self._store.list_companies)
        results = await asyncio.gather(*(self._holding(c, address) for c in companies))
        return Portfolio(address=address, holdings=[h for h in results if h is not None])
