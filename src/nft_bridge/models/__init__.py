"""Data models for the nft_bridge client."""

from nft_bridge.models.config import BridgeConfig, DEFAULT_GATEWAYS
from nft_bridge.models.market import (
    CURRENCY_ORDER,
    ContractAddresses,
    ContractConstants,
    Currency,
    FeeBreakdown,
    MarketItem,
    OwnershipView,
    PaymentOption,
    PaymentPlan,
    PriceSet,
    RoyaltyInfo,
    TotalStats,
)
from nft_bridge.models.records import (
    DeploymentStatus,
    EmergencyState,
    EmergencyWithdrawStatus,
    TokenBalanceCheck,
    TxResult,
)
from nft_bridge.models.metadata import (
    Attribute,
    FetchFailure,
    FetchResult,
    FetchSuccess,
    GatewayAttempt,
    Metadata,
)

__all__ = [
    "BridgeConfig", "DEFAULT_GATEWAYS",
    "CURRENCY_ORDER", "ContractAddresses", "ContractConstants", "Currency",
    "FeeBreakdown", "MarketItem", "OwnershipView", "PaymentOption",
    "PaymentPlan", "PriceSet", "RoyaltyInfo", "TotalStats",
    "DeploymentStatus", "EmergencyState", "EmergencyWithdrawStatus",
    "TokenBalanceCheck", "TxResult",
    "Attribute", "FetchFailure", "FetchResult", "FetchSuccess",
    "GatewayAttempt", "Metadata",
]
