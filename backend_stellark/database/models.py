"""
Domain models for off-chain metadata.

Company listings and resale listings as stored in the discovery database.
Plain dataclasses so callers never depend on ORM rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass
class CompanyMetadata:
    """Discovery metadata for a company whose contract has been initialized on-chain."""

    contract_address: str
    name: str
    description: str
    owner_address: str
    token_price: Decimal
    """Price per token in XLM."""
    target_amount: Decimal
    """Fundraising target in XLM."""
    created_at: datetime | None = None
    logo_url: str = ""


@dataclass
class ResaleListing:
    """Secondary-market offer. tokens_for_sale > 0 while is_active."""

    id: str | None
    contract_address: str
    seller_address: str
    tokens_for_sale: int
    price_per_token: Decimal
    """Price per token in XLM."""
    is_active: bool = True
    created_at: datetime | None = None
