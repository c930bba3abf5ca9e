#!/usr/bin/env python3
"""
Import a legacy discovery-database export into the canonical schema.

Input: JSON file {"companies": [...], "resale_listings": [...]} with rows as
exported from the old tables (contract_id/wallet_address, company_id columns).

Usage:
  python -m backend_stellark.tools.import_legacy_export export.json [--database-url URL]
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from backend_stellark.config.env import print_stellark_startup
from backend_stellark.database import get_metadata_store
from backend_stellark.database.legacy import import_legacy_rows
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import legacy companies/resale_listings export")
    parser.add_argument("export", type=Path, help="JSON export file")
    parser.add_argument("--database-url", default=None, help="Target DB (default: settings)")
    args = parser.parse_args(argv)

    print_stellark_startup("import_legacy_export")
    if not args.export.exists():
        logger.error("legacy_export_missing", path=str(args.export))
        return 1
    with open(args.export, encoding="utf-8") as f:
        data = json.load(f)

    store = get_metadata_store(args.database_url)
    counts = import_legacy_rows(store, data.get("companies") or [], data.get("resale_listings") or [])
    print(f"[import_legacy_export] companies={counts['companies']} listings={counts['listings']} skipped={counts['skipped']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
