"""
Off-chain metadata store: SQLAlchemy-backed companies and resale listings.

Uses DATABASE_URL for PostgreSQL (e.g. a hosted Supabase database) when set;
otherwise SQLite (STELLARK_DB_PATH or stellark.db). Every operation runs in its
own session and commits independently; there are no multi-statement transactions.

Known gaps:
- update_resale_listing_quantity is an unconditional overwrite (no optimistic
  concurrency check); concurrent buyers race read-then-write.
- save_company does not check that the contract exists or is initialized on-chain.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterator

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
    update,
)
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend_stellark.core.exceptions import PersistenceError
from backend_stellark.database.models import CompanyMetadata, ResaleListing
from backend_stellark.ledger.scval_codec import validate_contract_id
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# -----------------------------------------------------------------------------
# SQLAlchemy models (canonical schema)
# -----------------------------------------------------------------------------


class CompanyRow(Base):
    """One row per listed company, keyed by its contract address."""

    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_new_id)
    contract_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    logo_url = Column(Text, nullable=False, default="")
    owner_wallet = Column(String(64), nullable=False, index=True)
    token_price = Column(Numeric(20, 7), nullable=False)
    target_amount = Column(Numeric(20, 7), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


class ResaleListingRow(Base):
    """Secondary-market listing. Never deleted; exhausted listings are deactivated."""

    __tablename__ = "resale_listings"
    __table_args__ = (
        CheckConstraint("tokens_for_sale > 0", name="ck_resale_tokens_positive"),
        CheckConstraint("price_per_token > 0", name="ck_resale_price_positive"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    contract_id = Column(String(64), nullable=False, index=True)
    seller_wallet = Column(String(64), nullable=False, index=True)
    tokens_for_sale = Column(Integer, nullable=False)
    price_per_token = Column(Numeric(20, 7), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)


def _company_from_row(row: CompanyRow) -> CompanyMetadata:
    return CompanyMetadata(
        contract_address=row.contract_id,
        name=row.name,
        description=row.description or "",
        owner_address=row.owner_wallet,
        token_price=Decimal(row.token_price),
        target_amount=Decimal(row.target_amount),
        created_at=row.created_at,
        logo_url=row.logo_url or "",
    )


def _listing_from_row(row: ResaleListingRow) -> ResaleListing:
    return ResaleListing(
        id=row.id,
        contract_address=row.contract_id,
        seller_address=row.seller_wallet,
        tokens_for_sale=row.tokens_for_sale,
        price_per_token=Decimal(row.price_per_token),
        is_active=bool(row.is_active),
        created_at=row.created_at,
    )


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class MetadataStore:
    """CRUD façade over companies and resale_listings."""

    def __init__(self, database_url: str, *, create_schema: bool = True) -> None:
        connect_args: dict[str, Any] = {}
        if database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self._url = database_url
        self._engine = create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        logger.info("metadata_store_engine", url=database_url.split("?")[0].split("//")[-1])
        if create_schema:
            self.init_db()

    @property
    def engine(self) -> Any:
        return self._engine

    def init_db(self) -> None:
        """Create tables if missing."""
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            logger.error("metadata_store_init_failed", error=str(e))
            raise PersistenceError(f"Could not initialize metadata store: {e}") from e

    def dispose(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session_scope(self, operation: str) -> Iterator[Session]:
        """One session per operation. Commits on success; any SQLAlchemy error becomes PersistenceError."""
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning("metadata_store_constraint_violation", operation=operation, error=str(e.orig))
            raise PersistenceError(f"{operation}: constraint violation: {e.orig}") from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("metadata_store_error", operation=operation, error=str(e))
            raise PersistenceError(f"{operation}: {e}") from e
        finally:
            session.close()

    # -- companies -------------------------------------------------------------

    def save_company(self, metadata: CompanyMetadata) -> CompanyMetadata:
        """Insert a company. Duplicate contract address or connectivity failure -> PersistenceError."""
        contract_id = validate_contract_id(metadata.contract_address)
        with self._session_scope("save_company") as session:
            row = CompanyRow(
                contract_id=contract_id,
                name=metadata.name,
                description=metadata.description or "",
                logo_url=metadata.logo_url or "",
                owner_wallet=metadata.owner_address,
                token_price=Decimal(metadata.token_price),
                target_amount=Decimal(metadata.target_amount),
            )
            if metadata.created_at is not None:
                row.created_at = metadata.created_at
            session.add(row)
            session.flush()
            saved = _company_from_row(row)
        logger.info("company_saved", contract_id=contract_id, name=metadata.name)
        return saved

    def list_companies(self) -> list[CompanyMetadata]:
        """All companies, newest first. Empty list when none."""
        with self._session_scope("list_companies") as session:
            rows = session.query(CompanyRow).order_by(CompanyRow.created_at.desc()).all()
            return [_company_from_row(r) for r in rows]

    def get_company(self, contract_address: str) -> CompanyMetadata | None:
        """Lookup by contract address. None when absent; transport failures raise PersistenceError."""
        with self._session_scope("get_company") as session:
            row = session.query(CompanyRow).filter(CompanyRow.contract_id == contract_address.strip()).one_or_none()
            return _company_from_row(row) if row is not None else None

    # -- resale listings -------------------------------------------------------

    def create_resale_listing(self, listing: ResaleListing) -> ResaleListing:
        """Insert an active listing; returns the stored row with its generated id."""
        if int(listing.tokens_for_sale) <= 0:
            raise ValueError("tokens_for_sale must be positive")
        if Decimal(listing.price_per_token) <= 0:
            raise ValueError("price_per_token must be positive")
        with self._session_scope("create_resale_listing") as session:
            row = ResaleListingRow(
                contract_id=listing.contract_address.strip(),
                seller_wallet=listing.seller_address,
                tokens_for_sale=int(listing.tokens_for_sale),
                price_per_token=Decimal(listing.price_per_token),
                is_active=True,
            )
            if listing.created_at is not None:
                row.created_at = listing.created_at
            session.add(row)
            session.flush()
            saved = _listing_from_row(row)
        logger.info(
            "resale_listing_created",
            listing_id=saved.id,
            contract_id=saved.contract_address,
            tokens_for_sale=saved.tokens_for_sale,
        )
        return saved

    def get_resale_listing(self, listing_id: str) -> ResaleListing | None:
        with self._session_scope("get_resale_listing") as session:
            row = session.get(ResaleListingRow, listing_id)
            return _listing_from_row(row) if row is not None else None

    def list_resale_listings(self) -> list[ResaleListing]:
        """All listings including inactive ones, newest first."""
        with self._session_scope("list_resale_listings") as session:
            rows = session.query(ResaleListingRow).order_by(ResaleListingRow.created_at.desc()).all()
            return [_listing_from_row(r) for r in rows]

    def list_active_resale_listings(self) -> list[ResaleListing]:
        """Active listings, newest first."""
        with self._session_scope("list_active_resale_listings") as session:
            rows = (
                session.query(ResaleListingRow)
                .filter(ResaleListingRow.is_active.is_(True))
                .order_by(ResaleListingRow.created_at.desc())
                .all()
            )
            return [_listing_from_row(r) for r in rows]

    def list_active_resale_listings_for_contract(self, contract_address: str) -> list[ResaleListing]:
        with self._session_scope("list_active_resale_listings_for_contract") as session:
            rows = (
                session.query(ResaleListingRow)
                .filter(
                    ResaleListingRow.contract_id == contract_address.strip(),
                    ResaleListingRow.is_active.is_(True),
                )
                .order_by(ResaleListingRow.created_at.desc())
                .all()
            )
            return [_listing_from_row(r) for r in rows]

    def update_resale_listing_quantity(self, listing_id: str, new_quantity: int) -> None:
        """Unconditional overwrite of tokens_for_sale. Caller computes the remainder."""
        with self._session_scope("update_resale_listing_quantity") as session:
            result = session.execute(
                update(ResaleListingRow)
                .where(ResaleListingRow.id == listing_id)
                .values(tokens_for_sale=int(new_quantity), updated_at=_utcnow())
            )
            matched = result.rowcount
        if matched == 0:
            logger.warning("resale_listing_missing", listing_id=listing_id, operation="update_quantity")
        else:
            logger.info("resale_listing_quantity_updated", listing_id=listing_id, tokens_for_sale=new_quantity)

    def deactivate_resale_listing(self, listing_id: str) -> None:
        """Set is_active = false. Idempotent."""
        with self._session_scope("deactivate_resale_listing") as session:
            session.execute(
                update(ResaleListingRow)
                .where(ResaleListingRow.id == listing_id)
                .values(is_active=False, updated_at=_utcnow())
            )
        logger.info("resale_listing_deactivated", listing_id=listing_id)


_stores: dict[str, MetadataStore] = {}


def get_metadata_store(database_url: str | None = None) -> MetadataStore:
    """Process-wide store per database URL (default from settings)."""
    if database_url is None:
        from backend_stellark.config import get_settings

        database_url = get_settings().database_url
    store = _stores.get(database_url)
    if store is None:
        store = MetadataStore(database_url)
        _stores[database_url] = store
    return store


def reset_stores_for_test() -> None:
    """Dispose cached stores so tests can point at a fresh database."""
    for store in _stores.values():
        store.dispose()
    _stores.clear()
