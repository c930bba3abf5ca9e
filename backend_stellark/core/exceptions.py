"""
Application-level exceptions.

Every orchestration failure is raised to the caller and surfaced verbatim;
nothing here retries. Lookups that find nothing return None instead of raising.
"""

from __future__ import annotations

from typing import Any


class StellarkError(Exception):
    """Base class for all Stellark errors."""


# -----------------------------------------------------------------------------
# Ledger / orchestration
# -----------------------------------------------------------------------------


class LedgerError(StellarkError):
    """A contract invocation or read could not be completed."""


class AccountNotFound(LedgerError):
    """Signer address has no funded ledger entry."""

    def __init__(self, address: str) -> None:
        super().__init__(f"Account not found: {address}")
        self.address = address


class BuildFailure(LedgerError):
    """Transaction envelope could not be constructed."""


class SimulationError(LedgerError):
    """Dry-run reported an error; carries the network diagnostic."""

    def __init__(self, diagnostic: str | None) -> None:
        super().__init__(f"Simulation failed: {diagnostic or 'Unknown error'}")
        self.diagnostic = diagnostic


class SigningError(LedgerError):
    """External signer did not produce a signature."""


class SigningDeclined(SigningError):
    """The signer refused (user rejected, wrong address)."""


class SigningUnavailable(SigningError):
    """No signer is connected or reachable."""


class SubmissionFailed(LedgerError):
    """Network rejected the signed envelope on submit (status other than PENDING)."""

    def __init__(self, status: str, detail: Any = None) -> None:
        message = f"Transaction submission failed: {status}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.status = status
        self.detail = detail


class TransactionFailed(LedgerError):
    """Submitted transaction reached a terminal status other than SUCCESS."""

    def __init__(self, status: str, tx_hash: str) -> None:
        super().__init__(f"Transaction failed: {status}")
        self.status = status
        self.tx_hash = tx_hash


class TransactionTimeout(LedgerError):
    """Confirmation poll exceeded its maximum wait. The ledger may still apply the transaction."""

    def __init__(self, tx_hash: str, waited_sec: float) -> None:
        super().__init__(f"Transaction {tx_hash} not confirmed after {waited_sec:.1f}s")
        self.tx_hash = tx_hash
        self.waited_sec = waited_sec


# -----------------------------------------------------------------------------
# Values
# -----------------------------------------------------------------------------


class InvalidAddress(StellarkError, ValueError):
    """String is not a valid account or contract identifier."""

    def __init__(self, address: str, reason: str = "not a valid account or contract address") -> None:
        super().__init__(f"Invalid address {address!r}: {reason}")
        self.address = address


class PrecisionLoss(StellarkError, ArithmeticError):
    """Wide integer cannot be narrowed to a safe number without losing precision."""

    def __init__(self, value: int) -> None:
        super().__init__(f"Value {value} exceeds the safe integer range (2**53 - 1)")
        self.value = value


class InvalidPurchase(StellarkError, ValueError):
    """Requested token quantity is not allowed against the listing or company."""


# -----------------------------------------------------------------------------
# Persistence / deployment
# -----------------------------------------------------------------------------


class PersistenceError(StellarkError):
    """Off-chain store rejected the write (constraint) or could not be reached."""


class DeploymentError(StellarkError):
    """Contract build or deploy step failed; error and details go to the API body."""

    def __init__(self, error: str, details: Any = None) -> None:
        super().__init__(error)
        self.error = error
        self.details = details
