"""
Equity token contract client: typed wrappers over the contract's positional ABI.

  init_company(name, symbol, total_supply, owner, equity_percent, description, token_price, target_amount)
  mint(to, amount, xlm_token)                      buyer signs, pays owner in XLM
  purchase(buyer, amount)
  transfer(from, to, amount)
  transfer_with_payment(from, to, amount, price_per_token, xlm_token)   buyer signs, pays seller
  burn(from, amount)
  balance_of(addr) -> i128                         read-only
  get_company_info() -> CompanyInfo                read-only

Prices and targets travel as i128 stroops; token quantities are whole tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from backend_stellark.ledger.invoker import ReadOnlyInvoker
from backend_stellark.ledger.orchestrator import InvocationResult, TransactionOrchestrator
from backend_stellark.ledger.scval_codec import (
    checked_number,
    encode_address,
    encode_amount,
    encode_i128,
    encode_string,
    from_base_units,
    validate_contract_id,
)
from backend_stellark.ledger.signer import Signer
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompanyOnChainInfo:
    """Read-only projection of contract state. Never cached; re-read per query."""

    name: str
    symbol: str
    total_supply: int
    owner: str
    equity_percent: int
    description: str
    token_price: int
    """Price per token in stroops."""
    target_amount: int
    """Fundraising target in stroops."""

    @property
    def token_price_xlm(self) -> Decimal:
        return from_base_units(self.token_price)

    @property
    def target_amount_xlm(self) -> Decimal:
        return from_base_units(self.target_amount)

    @classmethod
    def from_native(cls, raw: dict[str, Any]) -> "CompanyOnChainInfo":
        """Build from the decoded CompanyInfo map; numeric fields use checked narrowing."""
        return cls(
            name=str(raw.get("name") or ""),
            symbol=str(raw.get("symbol") or ""),
            total_supply=checked_number(raw.get("total_supply", 0)),
            owner=str(raw.get("owner") or ""),
            equity_percent=checked_number(raw.get("equity_percent", 0)),
            description=str(raw.get("description") or ""),
            token_price=checked_number(raw.get("token_price", 0)),
            target_amount=checked_number(raw.get("target_amount", 0)),
        )


class EquityTokenClient:
    """One client serves every deployed company contract; contract_id is passed per call."""

    def __init__(self, orchestrator: TransactionOrchestrator, invoker: ReadOnlyInvoker) -> None:
        self._orchestrator = orchestrator
        self._invoker = invoker

    async def init_company(
        self,
        signer: Signer,
        owner: str,
        contract_id: str,
        *,
        name: str,
        symbol: str,
        total_supply: int,
        equity_percent: int,
        description: str,
        token_price: Decimal,
        target_amount: Decimal,
    ) -> InvocationResult:
        """Initialize company state on a freshly deployed contract; owner signs."""
        contract_id = validate_contract_id(contract_id)
        params = [
            encode_string(name),
            encode_string(symbol),
            encode_i128(total_supply),
            encode_address(owner),
            encode_i128(equity_percent),
            encode_string(description),
            encode_amount(token_price),
            encode_amount(target_amount),
        ]
        logger.info(
            "company_init_requested",
            contract_id=contract_id,
            owner=owner,
            symbol=symbol,
            total_supply=total_supply,
            token_price_xlm=str(token_price),
            target_amount_xlm=str(target_amount),
        )
        return await self._orchestrator.invoke(signer, owner, contract_id, "init_company", params)

    async def mint(
        self, signer: Signer, buyer: str, contract_id: str, to: str, amount: int, xlm_token: str
    ) -> InvocationResult:
        """Move `amount` tokens from the owner's balance to `to`; the buyer signs and pays in XLM."""
        params = [encode_address(to), encode_i128(amount), encode_address(xlm_token)]
        return await self._orchestrator.invoke(signer, buyer, contract_id, "mint", params)

    async def purchase(self, signer: Signer, buyer: str, contract_id: str, amount: int) -> InvocationResult:
        params = [encode_address(buyer), encode_i128(amount)]
        return await self._orchestrator.invoke(signer, buyer, contract_id, "purchase", params)

    async def transfer(
        self, signer: Signer, from_address: str, to_address: str, contract_id: str, amount: int
    ) -> InvocationResult:
        """Free transfer, no payment."""
        params = [encode_address(from_address), encode_address(to_address), encode_i128(amount)]
        return await self._orchestrator.invoke(signer, from_address, contract_id, "transfer", params)

    async def transfer_with_payment(
        self,
        signer: Signer,
        buyer: str,
        seller: str,
        contract_id: str,
        amount: int,
        price_per_token: Decimal,
        xlm_token: str,
    ) -> InvocationResult:
        """Resale: buyer signs, pays seller amount * price in XLM, receives tokens atomically."""
        params = [
            encode_address(seller),
            encode_address(buyer),
            encode_i128(amount),
            encode_amount(price_per_token),
            encode_address(xlm_token),
        ]
        return await self._orchestrator.invoke(signer, buyer, contract_id, "transfer_with_payment", params)

    async def burn(self, signer: Signer, holder: str, contract_id: str, amount: int) -> InvocationResult:
        params = [encode_address(holder), encode_i128(amount)]
        return await self._orchestrator.invoke(signer, holder, contract_id, "burn", params)

    async def balance_of(self, contract_id: str, address: str) -> int:
        value = await self._invoker.call(contract_id, "balance_of", [encode_address(address)])
        return checked_number(value if value is not None else 0)

    async def get_company_info(self, contract_id: str) -> CompanyOnChainInfo | None:
        raw = await self._invoker.call(contract_id, "get_company_info")
        if not raw:
            return None
        if not isinstance(raw, dict):
            raise TypeError(f"Unexpected get_company_info result: {type(raw).__name__}")
        return CompanyOnChainInfo.from_native(raw)
