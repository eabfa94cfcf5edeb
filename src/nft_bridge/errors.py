"""Error taxonomy for chain reads, transaction writes and client-side checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nft_bridge.models.records import EmergencyState, TokenBalanceCheck


class MarketplaceError(Exception):
    """Base class. ``cause`` holds the underlying exception, if any."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConfigError(MarketplaceError):
    pass


class ChainError(MarketplaceError):
    """A read could not be completed (RPC failure, bad address, revert)."""


class NotFoundError(ChainError):
    pass


class TransactionError(MarketplaceError):
    """A write failed to submit or to confirm."""

    kind = "unknown"

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        tx_hash: str | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.tx_hash = tx_hash


class UserRejectedError(TransactionError):
    kind = "user_rejected"


class InsufficientFundsError(TransactionError):
    kind = "insufficient_funds"


class ContractRevertError(TransactionError):
    kind = "reverted"

    def __init__(
        self,
        message: str,
        *,
        reason: str = "",
        cause: BaseException | None = None,
        tx_hash: str | None = None,
    ) -> None:
        super().__init__(message, cause=cause, tx_hash=tx_hash)
        self.reason = reason


class ConfirmationTimeoutError(TransactionError):
    kind = "confirmation_timeout"


class InsufficientBalanceError(MarketplaceError):
    """Pre-flight balance check failed; nothing was submitted."""

    def __init__(self, message: str, *, check: TokenBalanceCheck) -> None:
        super().__init__(message)
        self.check = check


class _StepFailed(MarketplaceError):
    @property
    def user_rejected(self) -> bool:
        return isinstance(self.cause, UserRejectedError)

    @property
    def kind(self) -> str:
        if isinstance(self.cause, TransactionError):
            return self.cause.kind
        return "unknown"


class ApprovalFailedError(_StepFailed):
    """The ERC-20 approval did not confirm; the purchase was not attempted."""


class PurchaseFailedError(_StepFailed):
    """Allowance was in place but the purchase transaction failed."""


class InvalidStateError(MarketplaceError):
    """An admin transition is not valid from the current emergency state."""

    def __init__(self, action: str, current: EmergencyState) -> None:
        super().__init__(f"cannot {action} emergency withdraw while {current.value}")
        self.action = action
        self.current = current


class InvalidPriceError(MarketplaceError, ValueError):
    pass
