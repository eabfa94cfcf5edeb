"""Result and status records produced by chain operations."""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


@dataclass
class TxResult:
    """A confirmed transaction."""

    tx_hash: str
    block_number: int | None = None
    gas_used: int | None = None
    status: int = 1


class EmergencyState(str, Enum):
    """Client-side view of the emergency-withdraw timelock."""

    INACTIVE = "inactive"
    PENDING = "pending"  # initiated, timelock not yet elapsed
    READY = "ready"  # initiated, withdraw may execute


@dataclass(frozen=True)
class EmergencyWithdrawStatus:
    """The contract's single, global emergency-withdraw record."""

    enabled: bool
    ready_at: int  # epoch seconds, meaningful only when enabled

    def is_ready(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return self.enabled and now >= self.ready_at

    def state(self, now: float | None = None) -> EmergencyState:
        if not self.enabled:
            return EmergencyState.INACTIVE
        if self.is_ready(now):
            return EmergencyState.READY
        return EmergencyState.PENDING


@dataclass(frozen=True)
class TokenBalanceCheck:
    """Ephemeral pre-flight comparison of a wallet balance with a price."""

    has_enough_balance: bool
    balance: Decimal
    required: Decimal
    difference: Decimal  # balance - required, negative when short


@dataclass
class DeploymentStatus:
    is_deployed: bool
    address: str
    error: str | None = None
