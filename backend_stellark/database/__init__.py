"""
Off-chain metadata layer: company listings and resale listings.

SQLAlchemy-backed; SQLite by default, PostgreSQL via DATABASE_URL.
"""

from backend_stellark.database.metadata_store import (
    MetadataStore,
    get_metadata_store,
    reset_stores_for_test,
)
from backend_stellark.database.models import CompanyMetadata, ResaleListing

__all__ = [
    "CompanyMetadata",
    "MetadataStore",
    "ResaleListing",
    "get_metadata_store",
    "reset_stores_for_test",
]
