"""Marketplace state as read from the contract, in human decimal units."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

ZERO = Decimal(0)


class Currency(int, Enum):
    """Settlement currencies, valued as the contract's payment-token index."""

    ETH = 0
    USDC = 1
    USDT = 2

    @property
    def symbol(self) -> str:
        return self.name

    @property
    def decimals(self) -> int:
        return 18 if self is Currency.ETH else 6

    @property
    def is_native(self) -> bool:
        return self is Currency.ETH


# Fixed priority: native first, then token currencies in contract order.
CURRENCY_ORDER = (Currency.ETH, Currency.USDC, Currency.USDT)


@dataclass(frozen=True)
class PriceSet:
    """Per-currency asking prices. Zero means not for sale in that currency."""

    eth: Decimal = ZERO
    usdc: Decimal = ZERO
    usdt: Decimal = ZERO

    def for_currency(self, currency: Currency) -> Decimal:
        currency = Currency(currency)
        if currency is Currency.ETH:
            return self.eth
        if currency is Currency.USDC:
            return self.usdc
        return self.usdt

    def any_positive(self) -> bool:
        return any(self.for_currency(c) > 0 for c in CURRENCY_ORDER)


@dataclass
class MarketItem:
    """One minted token as recorded by the marketplace.

    ``custodial_owner`` is the marketplace's bookkeeping owner (escrow while
    listed). ``actual_owner`` is the token contract's holder, populated only
    by reads that ask for it.
    """

    token_id: int
    seller: str
    custodial_owner: str
    prices: PriceSet
    sold: bool
    listed_at: datetime
    royalty_percentage: int  # basis points, 0..1000
    royalty_recipient: str
    token_uri: str = ""
    actual_owner: str | None = None
    is_listed: bool | None = None

    @property
    def owner(self) -> str:
        return self.custodial_owner

    @property
    def eth_price(self) -> Decimal:
        return self.prices.eth

    @property
    def usdc_price(self) -> Decimal:
        return self.prices.usdc

    @property
    def usdt_price(self) -> Decimal:
        return self.prices.usdt


@dataclass
class TotalStats:
    total_tokens: int
    total_sold: int
    total_listed: int


@dataclass
class ContractConstants:
    max_royalty_percentage: int
    percentage_base: int
    max_listing_price: Decimal


@dataclass
class ContractAddresses:
    usdc_address: str
    usdt_address: str


@dataclass
class RoyaltyInfo:
    receiver: str
    royalty_amount: Decimal
    royalty_percentage: Decimal  # of the sale price, in percent


@dataclass
class FeeBreakdown:
    """Projected split of an ETH sale price."""

    total_price: Decimal
    platform_fee: Decimal
    royalty_fee: Decimal
    seller_amount: Decimal
    platform_fee_percentage: Decimal
    royalty_percentage: Decimal


@dataclass
class OwnershipView:
    """Both senses of ownership for one (token, address) pair."""

    token_id: int
    address: str
    custodial_owner: str
    actual_owner: str | None
    is_owner: bool
    is_listed: bool


def epoch_to_datetime(seconds: int) -> datetime:
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


@dataclass
class PaymentOption:
    """One accepted way to pay for a listing."""

    currency: Currency
    amount: Decimal
    token_address: str = ""  # empty for the native currency

    @property
    def symbol(self) -> str:
        return self.currency.symbol


@dataclass
class PaymentPlan:
    token_id: int
    options: list[PaymentOption] = field(default_factory=list)

    @property
    def primary(self) -> PaymentOption | None:
        return self.options[0] if self.options else None

    @property
    def currencies(self) -> list[Currency]:
        return [o.currency for o in self.options]

    def accepts(self, currency: Currency) -> bool:
        return currency in self.currencies
