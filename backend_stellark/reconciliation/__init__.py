"""
Reconciliation layer: on-chain state joined with off-chain metadata.

Derived figures (tokens sold, progress, portfolio value), post-purchase
settlement of resale listings, and the market flows that tie them together.
"""

from backend_stellark.reconciliation.figures import (
    CompanyOverview,
    Holding,
    compute_available_tokens,
    compute_funds_raised,
    compute_portfolio_value,
    compute_progress,
    compute_tokens_sold,
)
from backend_stellark.reconciliation.market_service import MarketService, Portfolio
from backend_stellark.reconciliation.settlement import (
    SettlementOutcome,
    check_purchase,
    settle_resale_purchase,
)

__all__ = [
    "CompanyOverview",
    "Holding",
    "MarketService",
    "Portfolio",
    "SettlementOutcome",
    "check_purchase",
    "compute_available_tokens",
    "compute_funds_raised",
    "compute_portfolio_value",
    "compute_progress",
    "compute_tokens_sold",
    "settle_resale_purchase",
]
