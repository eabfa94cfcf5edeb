"""Payment resolver - which currencies a listing accepts, in a fixed order."""

from __future__ import annotations

from decimal import Decimal

from nft_bridge.models.config import BridgeConfig
from nft_bridge.models.market import (
    CURRENCY_ORDER,
    Currency,
    MarketItem,
    PaymentOption,
    PaymentPlan,
)


class PaymentResolver:
    """Derives accepted payment methods for a MarketItem.

    Currencies are visited in priority order (ETH, USDC, USDT) and kept when
    their price is strictly positive. The first kept option is the primary
    price. Amount never affects order.
    """

    def __init__(self, config: BridgeConfig | None = None) -> None:
        self._cfg = config

    def _token_address(self, currency: Currency) -> str:
        if self._cfg is None or currency.is_native:
            return ""
        return self._cfg.token_address(currency)

    def resolve(self, item: MarketItem) -> PaymentPlan:
        options = [
            PaymentOption(
                currency=currency,
                amount=item.prices.for_currency(currency),
                token_address=self._token_address(currency),
            )
            for currency in CURRENCY_ORDER
            if item.prices.for_currency(currency) > 0
        ]
        return PaymentPlan(token_id=item.token_id, options=options)

    def accepted_currencies(self, item: MarketItem) -> list[Currency]:
        return self.resolve(item).currencies

    def primary_price(self, item: MarketItem) -> PaymentOption | None:
        return self.resolve(item).primary

    def price_for(self, item: MarketItem, currency: Currency) -> Decimal:
        """Price in ``currency``; raises ValueError if not accepted."""
        amount = item.prices.for_currency(currency)
        if amount <= 0:
            raise ValueError(
                f"token {item.token_id} is not for sale in {currency.symbol}"
            )
        return amount
