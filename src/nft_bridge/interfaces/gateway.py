"""Gateway protocols - the chain surface the higher-level components depend on."""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from nft_bridge.models.market import Currency
from nft_bridge.models.records import EmergencyWithdrawStatus, TokenBalanceCheck, TxResult


class PurchaseGateway(Protocol):
    """Reads and writes needed to settle a purchase."""

    @property
    def marketplace_address(self) -> str:
        ...

    async def check_user_balance(
        self, address: str, currency: Currency, amount: Decimal | str,
    ) -> TokenBalanceCheck:
        """Compare ``address``'s balance in ``currency`` with ``amount``."""
        ...

    async def get_allowance(self, currency: Currency, owner: str) -> int:
        """Raw allowance ``owner`` has granted the marketplace."""
        ...

    async def approve(
        self, currency: Currency, amount: int, *, timeout: float | None = None,
    ) -> TxResult:
        """Approve exactly ``amount`` base units and wait for confirmation."""
        ...

    async def create_market_sale(
        self,
        token_id: int,
        currency: Currency,
        price: Decimal | str | None = None,
        *,
        timeout: float | None = None,
    ) -> TxResult:
        """Submit the purchase and wait for confirmation."""
        ...


class EmergencyGateway(Protocol):
    """Emergency-withdraw reads and admin writes."""

    async def get_emergency_withdraw_status(self) -> EmergencyWithdrawStatus:
        ...

    async def initiate_emergency_withdraw(self, *, timeout: float | None = None) -> TxResult:
        ...

    async def cancel_emergency_withdraw(self, *, timeout: float | None = None) -> TxResult:
        ...

    async def emergency_withdraw_eth(self, *, timeout: float | None = None) -> TxResult:
        ...

    async def emergency_withdraw_token(
        self, token_address: str, *, timeout: float | None = None,
    ) -> TxResult:
        ...
