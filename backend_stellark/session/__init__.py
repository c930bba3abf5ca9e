"""
Wallet session: explicit per-user context (address, signer, native balance).

Created on connect, torn down on disconnect, balance refreshed on a timer.
Passed to every flow that needs a signing identity; there is no global wallet state.
"""

from backend_stellark.session.wallet_session import WalletSession

__all__ = ["WalletSession"]
