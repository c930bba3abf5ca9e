"""
Derived figures from on-chain state joined with off-chain metadata.

tokens sold = total_supply - owner_balance. This assumes the owner never moves
tokens outside the sale flow (a transfer or burn by the owner is counted as
sold). The formula is kept as is until that requirement is settled.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable

from backend_stellark.database.models import CompanyMetadata
from backend_stellark.ledger.contract import CompanyOnChainInfo


@dataclass
class Holding:
    """A holder's position in one company."""

    company: CompanyMetadata
    balance: int

    @property
    def current_value(self) -> Decimal:
        """Balance valued at the listed token price (XLM)."""
        return Decimal(self.balance) * Decimal(self.company.token_price)


@dataclass
class CompanyOverview:
    """Company metadata enriched with on-chain supply figures; on_chain is None when the read failed."""

    metadata: CompanyMetadata
    on_chain: CompanyOnChainInfo | None
    tokens_sold: int = 0

    @property
    def total_tokens(self) -> int:
        return self.on_chain.total_supply if self.on_chain else 0

    @property
    def available_tokens(self) -> int:
        return compute_available_tokens(self.on_chain, self.tokens_sold) if self.on_chain else 0

    @property
    def funds_raised(self) -> Decimal:
        return compute_funds_raised(self.tokens_sold, self.metadata.token_price)

    @property
    def progress_percent(self) -> Decimal:
        return compute_progress(self.on_chain, self.tokens_sold) if self.on_chain else Decimal(0)

    @property
    def sold_out(self) -> bool:
        return self.on_chain is not None and self.available_tokens <= 0


def compute_tokens_sold(info: CompanyOnChainInfo, owner_balance: int) -> int:
    return info.total_supply - owner_balance


def compute_available_tokens(info: CompanyOnChainInfo, tokens_sold: int) -> int:
    return info.total_supply - tokens_sold


def compute_funds_raised(tokens_sold: int, token_price: Decimal) -> Decimal:
    return Decimal(tokens_sold) * Decimal(token_price)


def compute_progress(info: CompanyOnChainInfo, tokens_sold: int) -> Decimal:
    """Percent of supply sold; 0 for an empty supply. Not clamped (display caps at 100)."""
    if info.total_supply <= 0:
        return Decimal(0)
    return Decimal(tokens_sold) * 100 / Decimal(info.total_supply)


def compute_portfolio_value(holdings: Iterable[Holding]) -> Decimal:
    """Sum of balance * token_price over holdings with a nonzero balance."""
    return sum((h.current_value for h in holdings if h.balance != 0), Decimal(0))


def compute_total_tokens(holdings: Iterable[Holding]) -> int:
    return sum(h.balance for h in holdings)
