"""ERC-20 approval coordinator - allowance check, approve, then spend."""

from __future__ import annotations

import asyncio
import logging
import weakref
from decimal import Decimal

from nft_bridge.chain.units import to_currency_units
from nft_bridge.errors import (
    ApprovalFailedError,
    InsufficientBalanceError,
    MarketplaceError,
    PurchaseFailedError,
)
from nft_bridge.interfaces.gateway import PurchaseGateway
from nft_bridge.models.market import Currency
from nft_bridge.models.records import TxResult

log = logging.getLogger(__name__)


class ERC20ApprovalCoordinator:
    """Settles purchases, running the ERC-20 allowance protocol when needed.

    For a token currency the sequence is strictly:
    1. Read the allowance the buyer has granted the marketplace
    2. If short, approve exactly the required amount and wait for confirmation
    3. Only then submit the purchase

    Steps are serialized per (buyer, currency), so no purchase is submitted
    while an approval for the same pair is outstanding. ETH purchases skip
    straight to step 3.
    """

    def __init__(
        self,
        gateway: PurchaseGateway,
        check_balance: bool = True,
        confirmation_timeout: float | None = None,
    ) -> None:
        self._gateway = gateway
        self._check_balance = check_balance
        self._timeout = confirmation_timeout
        self._locks: weakref.WeakValueDictionary[tuple[str, Currency], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, buyer: str, currency: Currency) -> asyncio.Lock:
        key = (buyer.lower(), currency)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def ensure_allowance(
        self, buyer: str, currency: Currency, required: int,
    ) -> TxResult | None:
        """Approve ``required`` base units if the allowance is short.

        Returns the approval TxResult, or None if no approval was needed.
        """
        try:
            allowance = await self._gateway.get_allowance(currency, buyer)
        except MarketplaceError as exc:
            raise ApprovalFailedError(
                f"could not read {currency.symbol} allowance: {exc}", cause=exc,
            ) from exc

        if allowance >= required:
            log.debug(
                "%s allowance %d covers %d for %s", currency.symbol, allowance, required, buyer,
            )
            return None

        log.info("Approving %s: %d base units for %s", currency.symbol, required, buyer)
        try:
            result = await self._gateway.approve(currency, required, timeout=self._timeout)
        except MarketplaceError as exc:
            log.warning("%s approval failed for %s: %s", currency.symbol, buyer, exc)
            raise ApprovalFailedError(
                f"{currency.symbol} approval failed: {exc}", cause=exc,
            ) from exc
        log.info("%s approved (tx=%s)", currency.symbol, result.tx_hash[:18])
        return result

    async def purchase(
        self,
        token_id: int,
        currency: Currency,
        amount: Decimal | str,
        buyer: str,
    ) -> TxResult:
        """Buy ``token_id`` for ``amount`` of ``currency`` on behalf of ``buyer``.

        Raises InsufficientBalanceError before submitting anything when the
        pre-flight balance check fails, ApprovalFailedError when the approval
        step breaks, and PurchaseFailedError when the purchase itself does.
        """
        async with self._lock_for(buyer, currency):
            if self._check_balance:
                check = await self._gateway.check_user_balance(buyer, currency, amount)
                if not check.has_enough_balance:
                    raise InsufficientBalanceError(
                        f"{currency.symbol} balance {check.balance} is below {check.required}",
                        check=check,
                    )

            if not currency.is_native:
                await self.ensure_allowance(
                    buyer, currency, to_currency_units(amount, currency),
                )

            try:
                result = await self._gateway.create_market_sale(
                    token_id, currency, amount, timeout=self._timeout,
                )
            except MarketplaceError as exc:
                log.warning(
                    "Purchase of token %d with %s failed: %s", token_id, currency.symbol, exc,
                )
                raise PurchaseFailedError(
                    f"purchase of token {token_id} with {currency.symbol} failed: {exc}",
                    cause=exc,
                ) from exc

        log.info("Purchased token %d with %s %s (tx=%s)",
                 token_id, amount, currency.symbol, result.tx_hash[:18])
        return result
