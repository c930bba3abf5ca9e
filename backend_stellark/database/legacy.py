"""
Adapter from legacy discovery rows to the canonical schema.

Older deployments stored the same concept under two column schemes:
  companies:        contract_id (nullable) with wallet_address as fallback key
  resale_listings:  company_id instead of contract_id
This module is the only place that knows about those names.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from backend_stellark.core.exceptions import InvalidAddress, PersistenceError
from backend_stellark.database.metadata_store import MetadataStore
from backend_stellark.database.models import CompanyMetadata, ResaleListing
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


def _parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _decimal(raw: Any, default: str = "0") -> Decimal:
    try:
        return Decimal(str(raw if raw is not None else default))
    except InvalidOperation:
        return Decimal(default)


_TRUE_STRINGS = {"true", "t", "1", "yes", "y"}
_FALSE_STRINGS = {"false", "f", "0", "no", "n"}


def _flag(raw: Any, default: bool = True) -> bool:
    """Boolean column from a JSON or CSV export; string forms like "false" map explicitly."""
    if raw is None or raw == "":
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw != 0
    text = str(raw).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def company_from_legacy_row(row: Mapping[str, Any]) -> CompanyMetadata:
    """Legacy companies row -> CompanyMetadata. contract_id falls back to wallet_address for old data."""
    contract_id = (row.get("contract_id") or row.get("wallet_address") or "").strip()
    owner = (row.get("owner_wallet") or row.get("wallet_address") or "").strip()
    return CompanyMetadata(
        contract_address=contract_id,
        name=row.get("name") or "",
        description=row.get("description") or "",
        owner_address=owner,
        token_price=_decimal(row.get("token_price")),
        target_amount=_decimal(row.get("target_amount")),
        created_at=_parse_timestamp(row.get("created_at")),
        logo_url=row.get("logo_url") or "",
    )


def listing_from_legacy_row(row: Mapping[str, Any]) -> ResaleListing:
    """
    Legacy resale_listings row -> ResaleListing. company_id holds the contract address.
    Raises ValueError for unparseable quantity, timestamp or is_active.
    """
    return ResaleListing(
        id=row.get("id"),
        contract_address=(row.get("contract_id") or row.get("company_id") or "").strip(),
        seller_address=(row.get("seller_wallet") or "").strip(),
        tokens_for_sale=int(row.get("tokens_for_sale") or 0),
        price_per_token=_decimal(row.get("price_per_token")),
        is_active=_flag(row.get("is_active")),
        created_at=_parse_timestamp(row.get("created_at")),
    )


def import_legacy_rows(
    store: MetadataStore,
    companies: Iterable[Mapping[str, Any]],
    listings: Iterable[Mapping[str, Any]],
) -> dict[str, int]:
    """
    Import legacy exports into the canonical tables. Rows that fail to parse or fail
    the canonical constraints (bad contract id, duplicates, empty listings) are
    skipped and counted; the rest of the import continues.
    """
    counts = {"companies": 0, "listings": 0, "skipped": 0}
    for raw in companies:
        try:
            store.save_company(company_from_legacy_row(raw))
            counts["companies"] += 1
        except (ValueError, InvalidAddress, PersistenceError) as e:
            counts["skipped"] += 1
            logger.warning("legacy_company_skipped", row_id=raw.get("id"), error=str(e))
    for raw in listings:
        try:
            listing = listing_from_legacy_row(raw)
        except ValueError as e:
            counts["skipped"] += 1
            logger.warning("legacy_listing_skipped", row_id=raw.get("id"), reason="unparseable_row", error=str(e))
            continue
        if listing.tokens_for_sale <= 0 or listing.price_per_token <= 0:
            counts["skipped"] += 1
            logger.warning("legacy_listing_skipped", row_id=raw.get("id"), reason="non_positive_quantity_or_price")
            continue
        try:
            saved = store.create_resale_listing(listing)
            if not listing.is_active:
                store.deactivate_resale_listing(saved.id)
        except PersistenceError as e:
            counts["skipped"] += 1
            logger.warning("legacy_listing_skipped", row_id=raw.get("id"), error=str(e))
            continue
        counts["listings"] += 1
    logger.info("legacy_import_done", **counts)
    return counts
