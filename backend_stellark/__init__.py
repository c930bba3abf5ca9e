"""
Backend Stellark: tokenized equity trading on Soroban smart contracts.

Orchestrates contract invocations (build, simulate, sign, submit, confirm),
keeps off-chain company and resale metadata in a relational store, and
reconciles that metadata with on-chain balances and supply.
"""

__version__ = "0.1.0"
