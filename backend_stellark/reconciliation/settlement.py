"""
Off-chain settlement of resale listings after a confirmed on-chain transfer.

For a listing with T tokens and a confirmed purchase of n:
  n <  T  -> tokens_for_sale = T - n, listing stays active
  n == T  -> listing deactivated
  n >  T  -> rejected; check_purchase runs before submission so this never reaches the ledger
The store has no concurrency guard: two buyers settling the same listing race.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_stellark.core.exceptions import InvalidPurchase
from backend_stellark.database.metadata_store import MetadataStore
from backend_stellark.database.models import ResaleListing
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


@dataclass
class SettlementOutcome:
    listing_id: str
    remaining: int
    is_active: bool


def check_purchase(listing: ResaleListing, tokens: int) -> None:
    """Pre-submission guard: 0 < tokens <= tokens_for_sale on an active listing."""
    if not listing.is_active:
        raise InvalidPurchase(f"Listing {listing.id} is no longer active")
    if tokens <= 0:
        raise InvalidPurchase("Token quantity must be positive")
    if tokens > listing.tokens_for_sale:
        raise InvalidPurchase(
            f"Requested {tokens} tokens but listing {listing.id} offers {listing.tokens_for_sale}"
        )


def settle_resale_purchase(store: MetadataStore, listing: ResaleListing, purchased: int) -> SettlementOutcome:
    """Apply a confirmed purchase of `purchased` tokens to the listing's off-chain row."""
    if purchased <= 0 or purchased > listing.tokens_for_sale:
        raise InvalidPurchase(
            f"Cannot settle {purchased} tokens against listing {listing.id} with {listing.tokens_for_sale}"
        )
    remaining = listing.tokens_for_sale - purchased
    if remaining > 0:
        store.update_resale_listing_quantity(listing.id, remaining)
        outcome = SettlementOutcome(listing_id=listing.id, remaining=remaining, is_active=True)
    else:
        store.deactivate_resale_listing(listing.id)
        outcome = SettlementOutcome(listing_id=listing.id, remaining=0, is_active=False)
    logger.info(
        "resale_settled",
        listing_id=listing.id,
        contract_id=listing.contract_address,
        purchased=purchased,
        remaining=outcome.remaining,
        is_active=outcome.is_active,
    )
    return outcome
