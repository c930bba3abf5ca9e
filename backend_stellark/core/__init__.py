"""
Core: shared exception hierarchy and cross-cutting helpers.

Used by the ledger layer, metadata store, reconciliation and API server.
"""
