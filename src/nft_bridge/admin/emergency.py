"""Emergency-withdraw controller - timelocked admin state machine.

    inactive --initiate--> pending --(timelock elapses)--> ready --withdraw--> inactive
                              |                              |
                              +-----------cancel-------------+--> inactive

Authorization is enforced on-chain only. This controller re-reads the
contract state before every action and refuses transitions that cannot be
valid from that state, before any gas is spent.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from nft_bridge.errors import InvalidStateError
from nft_bridge.interfaces.gateway import EmergencyGateway
from nft_bridge.models.market import Currency
from nft_bridge.models.records import EmergencyState, EmergencyWithdrawStatus, TxResult

log = logging.getLogger(__name__)

_ALLOWED_FROM = {
    "initiate": {EmergencyState.INACTIVE},
    "cancel": {EmergencyState.PENDING, EmergencyState.READY},
    "withdraw": {EmergencyState.READY},
}


class AdminEmergencyController:
    """Drives initiate / cancel / withdraw against the marketplace contract."""

    def __init__(
        self,
        gateway: EmergencyGateway,
        token_addresses: dict[Currency, str] | None = None,
        clock: Callable[[], float] = time.time,
        confirmation_timeout: float | None = None,
    ) -> None:
        self._gateway = gateway
        self._token_addresses = token_addresses or {}
        self._clock = clock
        self._timeout = confirmation_timeout

    async def status(self) -> EmergencyWithdrawStatus:
        return await self._gateway.get_emergency_withdraw_status()

    async def state(self) -> EmergencyState:
        return (await self.status()).state(self._clock())

    async def seconds_until_ready(self) -> float | None:
        """Remaining timelock, 0 when ready, None when nothing is pending."""
        status = await self.status()
        if not status.enabled:
            return None
        return max(0.0, status.ready_at - self._clock())

    async def _require(self, action: str) -> EmergencyState:
        current = await self.state()
        if current not in _ALLOWED_FROM[action]:
            log.warning("Refusing emergency %s while %s", action, current.value)
            raise InvalidStateError(action, current)
        return current

    async def initiate(self) -> TxResult:
        await self._require("initiate")
        log.info("Initiating emergency withdraw")
        return await self._gateway.initiate_emergency_withdraw(timeout=self._timeout)

    async def cancel(self) -> TxResult:
        current = await self._require("cancel")
        log.info("Cancelling emergency withdraw (was %s)", current.value)
        return await self._gateway.cancel_emergency_withdraw(timeout=self._timeout)

    async def withdraw(self, currency: Currency = Currency.ETH) -> TxResult:
        """Execute the withdrawal of ``currency`` held by the contract."""
        await self._require("withdraw")
        if currency.is_native:
            log.info("Executing emergency ETH withdraw")
            return await self._gateway.emergency_withdraw_eth(timeout=self._timeout)

        token_address = self._token_addresses.get(currency)
        if not token_address:
            raise ValueError(f"no token address known for {currency.symbol}")
        log.info("Executing emergency %s withdraw (%s)", currency.symbol, token_address)
        return await self._gateway.emergency_withdraw_token(token_address, timeout=self._timeout)
