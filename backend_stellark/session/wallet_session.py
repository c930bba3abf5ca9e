"""
Wallet session: connect/disconnect lifecycle and periodic native balance refresh.

Balance comes from Horizon GET /accounts/{address} (native asset). An unknown
account reads as 0; transport errors are logged and the previous balance kept.
Config: BALANCE_REFRESH_SEC (default 30), HORIZON_URL.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx

from backend_stellark.core.exceptions import SigningError
from backend_stellark.ledger.signer import Signer
from backend_stellark.stellark_logging import get_logger

logger = get_logger(__name__)

DEFAULT_REFRESH_INTERVAL_SEC = 30.0
REQUEST_TIMEOUT = 10.0


def _native_balance(account: dict[str, Any]) -> Decimal | None:
    for entry in account.get("balances") or []:
        if entry.get("asset_type") == "native":
            return Decimal(str(entry.get("balance", "0")))
    return None


class WalletSession:
    """One connected wallet. Use `async with` or call connect()/disconnect()."""

    def __init__(
        self,
        signer: Signer,
        horizon_url: str,
        *,
        refresh_interval_sec: float = DEFAULT_REFRESH_INTERVAL_SEC,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.signer = signer
        self._horizon_url = horizon_url.rstrip("/")
        self._refresh_interval_sec = refresh_interval_sec
        self._client = http_client
        self._owns_client = http_client is None
        self._refresh_task: asyncio.Task | None = None
        self.address: str | None = None
        self.balance: Decimal | None = None
        self.error: str | None = None

    @classmethod
    def from_settings(cls, signer: Signer, settings: Any) -> "WalletSession":
        """Session against the configured Horizon with BALANCE_REFRESH_SEC."""
        return cls(signer, settings.horizon_url, refresh_interval_sec=settings.balance_refresh_sec)

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    def require_address(self) -> str:
        """Connected address, or SigningError when the session is not connected."""
        if self.address is None:
            raise SigningError("Wallet session is not connected")
        return self.address

    async def connect(self) -> str:
        """Request signer access and start the balance refresh timer."""
        self.error = None
        try:
            address = await self.signer.request_access()
        except SigningError as e:
            self.error = str(e)
            logger.warning("wallet_connect_failed", error=self.error)
            raise
        self._start(address)
        logger.info("wallet_connected", address=address)
        return address

    async def resume(self) -> str | None:
        """Reattach to a signer that is already connected; None when it is not."""
        if not await self.signer.is_connected():
            return None
        address = await self.signer.get_address()
        self._start(address)
        logger.info("wallet_resumed", address=address)
        return address

    def _start(self, address: str) -> None:
        self.address = address
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=REQUEST_TIMEOUT)
        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._refresh_loop(), name="wallet-balance-refresh")

    async def disconnect(self) -> None:
        """Stop the refresh timer and clear session state."""
        task, self._refresh_task = self._refresh_task, None
        try:
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning("wallet_refresh_task_failed", address=self.address, error=str(e))
        finally:
            if self._owns_client and self._client is not None:
                await self._client.aclose()
                self._client = None
            logger.info("wallet_disconnected", address=self.address)
            self.address = None
            self.balance = None
            self.error = None

    async def refresh_balance(self) -> Decimal | None:
        """Fetch the native balance once. Returns the (possibly unchanged) balance."""
        if self.address is None or self._client is None:
            return None
        url = f"{self._horizon_url}/accounts/{self.address}"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.warning("wallet_balance_refresh_failed", address=self.address, error=str(e))
            return self.balance
        if resp.status_code == 404:
            logger.info("wallet_account_not_found", address=self.address)
            self.balance = Decimal("0")
            return self.balance
        if resp.status_code != 200:
            logger.warning("wallet_balance_refresh_failed", address=self.address, status_code=resp.status_code)
            return self.balance
        try:
            native = _native_balance(resp.json())
        except (ValueError, InvalidOperation) as e:
            logger.warning("wallet_balance_refresh_failed", address=self.address, error=f"malformed account body: {e}")
            return self.balance
        if native is not None:
            self.balance = native
            logger.debug("wallet_balance_updated", address=self.address, balance=str(native))
        return self.balance

    async def _refresh_loop(self) -> None:
        while True:
            await self.refresh_balance()
            await asyncio.sleep(self._refresh_interval_sec)

    async def __aenter__(self) -> "WalletSession":
        await self.connect()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.disconnect()
