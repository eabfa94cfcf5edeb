"""Fixed-point conversion between on-chain integers and human decimals."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from nft_bridge.errors import InvalidPriceError
from nft_bridge.models.market import Currency, PriceSet

NATIVE_DECIMALS = 18
TOKEN_DECIMALS = 6


def to_base_units(amount: Decimal | str | int | float | None, decimals: int) -> int:
    """Convert a human amount to an integer with ``decimals`` implied places.

    Empty/None/zero amounts map to 0. Amounts with more precision than the
    currency supports are rejected rather than silently rounded.
    """
    if amount is None or amount == "":
        return 0
    try:
        value = Decimal(str(amount))
    except InvalidOperation as exc:
        raise InvalidPriceError(f"not a decimal amount: {amount!r}", cause=exc) from exc
    if not value.is_finite():
        raise InvalidPriceError(f"not a finite amount: {amount!r}")
    if value < 0:
        raise InvalidPriceError(f"negative amount: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise InvalidPriceError(
                f"{amount!r} has more than {decimals} decimal places"
            )
        return int(scaled)


def from_base_units(value: int, decimals: int) -> Decimal:
    """Convert an on-chain integer back to a normalized Decimal."""
    with localcontext() as ctx:
        ctx.prec = 100
        result = Decimal(int(value)).scaleb(-decimals).normalize()
        # normalize() writes whole numbers as 1E+2; keep them plain
        if result == result.to_integral_value():
            return result.quantize(Decimal(1))
        return result


def to_currency_units(amount, currency: Currency) -> int:
    return to_base_units(amount, currency.decimals)


def from_currency_units(value: int, currency: Currency) -> Decimal:
    return from_base_units(value, currency.decimals)


def format_ether(value: int) -> Decimal:
    return from_base_units(value, NATIVE_DECIMALS)


def parse_ether(amount) -> int:
    return to_base_units(amount, NATIVE_DECIMALS)


def price_params(prices: PriceSet) -> tuple[int, int, int]:
    """Encode a PriceSet as the contract's (eth, usdc, usdt) struct."""
    return (
        to_currency_units(prices.eth, Currency.ETH),
        to_currency_units(prices.usdc, Currency.USDC),
        to_currency_units(prices.usdt, Currency.USDT),
    )


def decode_prices(eth: int, usdc: int, usdt: int) -> PriceSet:
    return PriceSet(
        eth=from_currency_units(eth, Currency.ETH),
        usdc=from_currency_units(usdc, Currency.USDC),
        usdt=from_currency_units(usdt, Currency.USDT),
    )
