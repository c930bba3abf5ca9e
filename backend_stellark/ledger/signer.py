"""
Signer interface for contract invocations.

A signer is the external party that approves transactions: a browser wallet
extension relayed through a client, or a server-held keypair. The orchestrator
only ever talks to this interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from stellar_sdk import Keypair, TransactionBuilder

from backend_stellark.core.exceptions import SigningDeclined, SigningUnavailable
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)


class Signer(ABC):
    """Contract of an external signer (wallet)."""

    @abstractmethod
    async def request_access(self) -> str:
        """Ask the signer for access; return the granted address. Raises SigningDeclined."""
        ...

    @abstractmethod
    async def get_address(self) -> str:
        """Return the currently selected address. Raises SigningUnavailable if not connected."""
        ...

    @abstractmethod
    async def sign_transaction(self, envelope_xdr: str, *, network_passphrase: str, address: str) -> str:
        """
        Sign the base64 envelope as `address` and return the signed base64 envelope.
        Raises SigningDeclined or SigningUnavailable.
        """
        ...

    @abstractmethod
    async def is_connected(self) -> bool:
        ...


class KeypairSigner(Signer):
    """Signer backed by a local secret key (server-side flows, scripts, testnet dev accounts)."""

    def __init__(self, secret: str | Keypair) -> None:
        try:
            self._keypair = secret if isinstance(secret, Keypair) else Keypair.from_secret(secret.strip())
        except Exception as e:
            raise SigningUnavailable(f"Invalid signer secret: {e}") from e
        self._connected = True

    @property
    def public_key(self) -> str:
        return self._keypair.public_key

    async def request_access(self) -> str:
        self._connected = True
        return self._keypair.public_key

    async def get_address(self) -> str:
        if not self._connected:
            raise SigningUnavailable("Signer is not connected")
        return self._keypair.public_key

    async def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self._connected = False

    async def sign_transaction(self, envelope_xdr: str, *, network_passphrase: str, address: str) -> str:
        if not self._connected:
            raise SigningUnavailable("Signer is not connected")
        if address != self._keypair.public_key:
            logger.warning("signer_address_mismatch", requested=address, available=self._keypair.public_key)
            raise SigningDeclined(f"Signer cannot sign for {address}")
        envelope = TransactionBuilder.from_xdr(envelope_xdr, network_passphrase)
        envelope.sign(self._keypair)
        return envelope.to_xdr()
