"""Contract gateway - typed reads and confirmed writes against the marketplace."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted

from nft_bridge.chain.abi import (
    ERC20_ABI,
    MARKET_ITEM_FIELDS,
    MARKETPLACE_ABI,
    SALE_FUNCTIONS,
)
from nft_bridge.chain.units import (
    decode_prices,
    format_ether,
    from_base_units,
    from_currency_units,
    parse_ether,
    price_params,
    to_currency_units,
)
from nft_bridge.errors import (
    ChainError,
    ConfigError,
    ConfirmationTimeoutError,
    ContractRevertError,
    InsufficientFundsError,
    InvalidPriceError,
    NotFoundError,
    TransactionError,
    UserRejectedError,
)
from nft_bridge.models.config import BridgeConfig
from nft_bridge.models.market import (
    ContractAddresses,
    ContractConstants,
    Currency,
    FeeBreakdown,
    MarketItem,
    PriceSet,
    RoyaltyInfo,
    TotalStats,
    epoch_to_datetime,
)
from nft_bridge.models.records import (
    DeploymentStatus,
    EmergencyWithdrawStatus,
    TokenBalanceCheck,
    TxResult,
)
from nft_bridge.policy.ownership import OwnershipReconciler

log = logging.getLogger(__name__)

MAX_ROYALTY_BASIS_POINTS = 1000  # 10%
PERCENTAGE_BASE = 10_000
DEFAULT_GAS_ESTIMATE = 500_000

# EIP-1193 "user rejected request"
_USER_REJECTED_CODE = 4001
_USER_REJECTED_HINTS = ("user rejected", "user denied", "rejected by user", "request rejected")


def _rpc_error_code(exc: BaseException) -> int | None:
    """Pull a JSON-RPC error code out of a web3 exception, if present."""
    response = getattr(exc, "rpc_response", None)
    if isinstance(response, Mapping):
        error = response.get("error")
        if isinstance(error, Mapping) and isinstance(error.get("code"), int):
            return error["code"]
    for arg in exc.args:
        if isinstance(arg, Mapping) and isinstance(arg.get("code"), int):
            return arg["code"]
    return None


def _revert_reason(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message.replace("execution reverted:", "").strip()


def classify_error(action: str, exc: BaseException, tx_hash: str | None = None) -> TransactionError:
    """Map a web3/provider exception onto the transaction error taxonomy."""
    msg = str(exc)
    low = msg.lower()
    if isinstance(exc, TimeExhausted):
        return ConfirmationTimeoutError(
            f"{action}: not confirmed in time", cause=exc, tx_hash=tx_hash,
        )
    if _rpc_error_code(exc) == _USER_REJECTED_CODE or any(h in low for h in _USER_REJECTED_HINTS):
        return UserRejectedError(f"{action}: rejected by user", cause=exc, tx_hash=tx_hash)
    if "insufficient funds" in low:
        return InsufficientFundsError(f"{action}: insufficient funds", cause=exc, tx_hash=tx_hash)
    if isinstance(exc, ContractLogicError) or "revert" in low:
        reason = _revert_reason(exc)
        return ContractRevertError(
            f"{action}: reverted: {reason}", reason=reason, cause=exc, tx_hash=tx_hash,
        )
    return TransactionError(f"{action}: {msg}", cause=exc, tx_hash=tx_hash)


def _hex(value: Any) -> str:
    if isinstance(value, str):
        return value
    return "0x" + bytes(value).hex()


def _item_fields(raw: Any) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    return dict(zip(MARKET_ITEM_FIELDS, raw))


def decode_market_item(raw: Any, token_uri: str = "") -> MarketItem:
    """Convert the contract's MarketItem struct into a MarketItem."""
    f = _item_fields(raw)
    return MarketItem(
        token_id=int(f["tokenId"]),
        seller=f["seller"],
        custodial_owner=f["owner"],
        prices=decode_prices(f["ethPrice"], f["usdcPrice"], f["usdtPrice"]),
        sold=bool(f["sold"]),
        listed_at=epoch_to_datetime(f["listedAt"]),
        royalty_percentage=int(f["royaltyPercentage"]),
        royalty_recipient=f["royaltyRecipient"],
        token_uri=token_uri,
    )


class ContractGateway:
    """Stateless typed facade over the NFTMarketplace contract.

    Reads raise ``ChainError`` on failure, except the batch listings, which
    degrade per item. Writes submit a transaction, wait (bounded) for its
    receipt and return a ``TxResult``, or raise a ``TransactionError``.

    Transactions are sent through the node's unlocked/injected account unless
    a private key is configured, in which case they are signed locally.
    """

    def __init__(self, config: BridgeConfig, web3: AsyncWeb3 | None = None) -> None:
        if not config.contract_address:
            raise ConfigError("no marketplace contract address configured")
        self._cfg = config
        self._w3 = web3 or AsyncWeb3(AsyncHTTPProvider(config.rpc_url))
        self._address = self.checksum(config.contract_address)
        self._market = self._w3.eth.contract(address=self._address, abi=MARKETPLACE_ABI)
        self._tokens: dict[Currency, Any] = {}
        self.reconciler = OwnershipReconciler(self._address)

    @property
    def marketplace_address(self) -> str:
        return self._address

    @property
    def account(self) -> str:
        return self._cfg.account

    @staticmethod
    def checksum(address: str) -> str:
        try:
            return AsyncWeb3.to_checksum_address(address)
        except (ValueError, TypeError) as exc:
            raise ChainError(f"invalid address: {address!r}", cause=exc) from exc

    def token_contract(self, currency: Currency) -> Any:
        """ERC-20 contract for a token currency (not valid for ETH)."""
        if currency.is_native:
            raise ValueError("the native currency has no token contract")
        if currency not in self._tokens:
            address = self._cfg.token_address(currency)
            if not address:
                raise ConfigError(f"no {currency.symbol} token address configured")
            self._tokens[currency] = self._w3.eth.contract(
                address=self.checksum(address), abi=ERC20_ABI,
            )
        return self._tokens[currency]

    # ── Low-level helpers ──────────────────────────────────

    async def _call(self, fn_name: str, *args: Any, contract: Any = None,
                    tx: dict | None = None) -> Any:
        contract = contract if contract is not None else self._market
        try:
            fn = getattr(contract.functions, fn_name)(*args)
            if tx:
                return await fn.call(tx)
            return await fn.call()
        except Exception as exc:
            raise ChainError(f"{fn_name} failed: {exc}", cause=exc) from exc

    def _require_account(self) -> str:
        if not self._cfg.account:
            raise ConfigError("no sender account configured")
        return self.checksum(self._cfg.account)

    async def _send(
        self,
        fn_name: str,
        *args: Any,
        value: int = 0,
        contract: Any = None,
        timeout: float | None = None,
    ) -> TxResult:
        """Submit a contract call as a transaction and wait for its receipt."""
        contract = contract if contract is not None else self._market
        sender = self._require_account()
        params: dict[str, Any] = {"from": sender}
        if value:
            params["value"] = value

        log.info("Submitting %s from %s", fn_name, sender)
        try:
            fn = getattr(contract.functions, fn_name)(*args)
            if self._cfg.private_key:
                params["nonce"] = await self._w3.eth.get_transaction_count(sender)
                params["chainId"] = self._cfg.chain_id
                tx = await fn.build_transaction(params)
                signed = self._w3.eth.account.sign_transaction(tx, self._cfg.private_key)
                tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = await fn.transact(params)
        except Exception as exc:
            error = classify_error(fn_name, exc)
            log.error("%s submission failed: %s (%s)", fn_name, error.kind, exc)
            raise error from exc

        return await self.wait_for_confirmation(tx_hash, fn_name, timeout=timeout)

    async def wait_for_confirmation(
        self, tx_hash: Any, action: str = "transaction", timeout: float | None = None,
    ) -> TxResult:
        """Block until ``tx_hash`` is mined, bounded by ``timeout`` seconds."""
        hex_hash = _hex(tx_hash)
        timeout = self._cfg.confirmation_timeout if timeout is None else timeout
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=self._cfg.poll_latency,
            )
        except Exception as exc:
            error = classify_error(action, exc, tx_hash=hex_hash)
            log.error("%s confirmation failed (tx=%s): %s", action, hex_hash[:18], error.kind)
            raise error from exc

        if receipt.get("status", 1) == 0:
            log.error("%s reverted on-chain (tx=%s)", action, hex_hash[:18])
            raise ContractRevertError(f"{action}: transaction reverted", tx_hash=hex_hash)

        log.info("%s confirmed (tx=%s, block=%s)", action, hex_hash[:18], receipt.get("blockNumber"))
        return TxResult(
            tx_hash=hex_hash,
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
            status=receipt.get("status", 1),
        )

    async def _with_token_uri(self, item: MarketItem) -> MarketItem:
        """Attach tokenURI; a failed lookup leaves it empty instead of raising."""
        try:
            item.token_uri = await self._market.functions.tokenURI(item.token_id).call()
        except Exception as exc:
            log.warning("tokenURI(%d) failed, returning item without URI: %s", item.token_id, exc)
            item.token_uri = ""
        return item

    # ── Market reads ───────────────────────────────────────

    async def get_listing_price(self) -> Decimal:
        return format_ether(await self._call("getListingPrice"))

    async def get_token_listing_fee(self, currency: Currency) -> Decimal:
        fee = await self._call("getTokenListingFee", int(currency))
        return from_currency_units(fee, currency)

    async def get_market_item(self, token_id: int) -> MarketItem:
        try:
            raw = await self._market.functions.getMarketItem(token_id).call()
        except ContractLogicError as exc:
            raise NotFoundError(f"token {token_id} does not exist", cause=exc) from exc
        except Exception as exc:
            raise ChainError(f"getMarketItem({token_id}) failed: {exc}", cause=exc) from exc
        item = decode_market_item(raw)
        if item.token_id == 0:
            raise NotFoundError(f"token {token_id} does not exist")
        return item

    async def get_token_uri(self, token_id: int) -> str:
        return await self._call("tokenURI", token_id)

    async def owner_of(self, token_id: int) -> str:
        return await self._call("ownerOf", token_id)

    async def fetch_market_items(self) -> list[MarketItem]:
        """All active (unsold) listings, each with its tokenURI or ``""``."""
        raw_items = await self._call("fetchMarketItems")
        items = [decode_market_item(raw) for raw in raw_items]
        return list(await asyncio.gather(*(self._with_token_uri(i) for i in items)))

    async def fetch_items_listed(self, seller: str | None = None) -> list[MarketItem]:
        """Listings created by ``seller`` (defaults to the configured account)."""
        sender = self.checksum(seller) if seller else self._require_account()
        raw_items = await self._call("fetchItemsListed", tx={"from": sender})
        items = [decode_market_item(raw) for raw in raw_items]
        return list(await asyncio.gather(*(self._with_token_uri(i) for i in items)))

    async def get_total_tokens(self) -> int:
        return int(await self._call("getTotalTokens"))

    async def fetch_my_nfts(self, address: str) -> list[MarketItem]:
        """Every minted token that ``address`` owns in either sense.

        Scans ids ``1..getTotalTokens()`` one at a time. A token whose reads
        revert is treated as nonexistent and skipped.
        """
        total = await self.get_total_tokens()
        owned: list[MarketItem] = []
        for token_id in range(1, total + 1):
            try:
                raw = await self._market.functions.getMarketItem(token_id).call()
                actual_owner = await self._market.functions.ownerOf(token_id).call()
            except Exception as exc:
                log.debug("Skipping token %d: %s", token_id, exc)
                continue

            item = decode_market_item(raw)
            view = self.reconciler.reconcile(item, actual_owner, address)
            if not view.is_owner:
                continue
            item.actual_owner = actual_owner
            item.is_listed = view.is_listed
            owned.append(await self._with_token_uri(item))

        log.info("Found %d of %d tokens for %s", len(owned), total, address)
        return owned

    async def get_multiple_market_items(self, token_ids: list[int]) -> list[MarketItem]:
        """Read several items concurrently; unreadable ids are dropped."""
        results = await asyncio.gather(
            *(self.get_market_item(t) for t in token_ids), return_exceptions=True,
        )
        items = []
        for token_id, result in zip(token_ids, results):
            if isinstance(result, Exception):
                log.warning("getMarketItem(%d) failed: %s", token_id, result)
                continue
            items.append(result)
        return items

    async def get_total_stats(self) -> TotalStats:
        total, sold = await asyncio.gather(
            self._call("getTotalTokens"), self._call("getTotalItemsSold"),
        )
        return TotalStats(
            total_tokens=int(total),
            total_sold=int(sold),
            total_listed=int(total) - int(sold),
        )

    async def get_platform_fee_percentage(self) -> int:
        return int(await self._call("platformFeePercentage"))

    async def get_fee_recipient(self) -> str:
        return await self._call("feeRecipient")

    async def is_user_blacklisted(self, address: str) -> bool:
        return bool(await self._call("blacklistedUsers", self.checksum(address)))

    async def is_token_blacklisted(self, token_id: int) -> bool:
        return bool(await self._call("blacklistedTokens", token_id))

    async def get_emergency_withdraw_status(self) -> EmergencyWithdrawStatus:
        enabled, timestamp = await asyncio.gather(
            self._call("emergencyWithdrawEnabled"),
            self._call("emergencyWithdrawTimestamp"),
        )
        return EmergencyWithdrawStatus(enabled=bool(enabled), ready_at=int(timestamp))

    async def get_contract_constants(self) -> ContractConstants:
        max_royalty, base, max_listing = await asyncio.gather(
            self._call("MAX_ROYALTY_PERCENTAGE"),
            self._call("PERCENTAGE_BASE"),
            self._call("MAX_LISTING_PRICE"),
        )
        return ContractConstants(
            max_royalty_percentage=int(max_royalty),
            percentage_base=int(base),
            max_listing_price=format_ether(max_listing),
        )

    async def get_contract_addresses(self) -> ContractAddresses:
        usdc, usdt = await asyncio.gather(
            self._call("usdcAddress"), self._call("usdtAddress"),
        )
        return ContractAddresses(usdc_address=usdc, usdt_address=usdt)

    async def get_owner(self) -> str:
        return await self._call("owner")

    async def is_paused(self) -> bool:
        return bool(await self._call("paused"))

    async def supports_interface(self, interface_id: bytes | str) -> bool:
        if isinstance(interface_id, str):
            interface_id = bytes.fromhex(interface_id.removeprefix("0x"))
        return bool(await self._call("supportsInterface", interface_id))

    async def get_royalty_info(self, token_id: int, sale_price: Decimal | str) -> RoyaltyInfo:
        price = parse_ether(sale_price)
        receiver, amount = await self._call("royaltyInfo", token_id, price)
        percentage = Decimal(amount) * 100 / Decimal(price) if price else Decimal(0)
        return RoyaltyInfo(
            receiver=receiver,
            royalty_amount=format_ether(amount),
            royalty_percentage=percentage,
        )

    async def calculate_fees(self, token_id: int, sale_price: Decimal | str) -> FeeBreakdown:
        """Project the platform/royalty/seller split of an ETH sale price."""
        fee_bp, raw = await asyncio.gather(
            self._call("platformFeePercentage"), self._call("getMarketItem", token_id),
        )
        royalty_bp = int(_item_fields(raw)["royaltyPercentage"])
        price = parse_ether(sale_price)
        platform_fee = price * int(fee_bp) // PERCENTAGE_BASE
        royalty_fee = price * royalty_bp // PERCENTAGE_BASE
        return FeeBreakdown(
            total_price=format_ether(price),
            platform_fee=format_ether(platform_fee),
            royalty_fee=format_ether(royalty_fee),
            seller_amount=format_ether(price - platform_fee - royalty_fee),
            platform_fee_percentage=Decimal(int(fee_bp)) / 100,
            royalty_percentage=Decimal(royalty_bp) / 100,
        )

    # ── Balances and allowances ────────────────────────────

    async def get_token_balance(self, currency: Currency, address: str) -> Decimal:
        holder = self.checksum(address)
        if currency.is_native:
            try:
                wei = await self._w3.eth.get_balance(holder)
            except Exception as exc:
                raise ChainError(f"get_balance failed: {exc}", cause=exc) from exc
            return format_ether(wei)
        token = self.token_contract(currency)
        balance, decimals = await asyncio.gather(
            self._call("balanceOf", holder, contract=token),
            self._call("decimals", contract=token),
        )
        return from_base_units(balance, int(decimals))

    async def check_user_balance(
        self, address: str, currency: Currency, amount: Decimal | str,
    ) -> TokenBalanceCheck:
        balance = await self.get_token_balance(currency, address)
        required = Decimal(str(amount))
        return TokenBalanceCheck(
            has_enough_balance=balance >= required,
            balance=balance,
            required=required,
            difference=balance - required,
        )

    async def get_allowance(self, currency: Currency, owner: str) -> int:
        """Raw allowance granted by ``owner`` to the marketplace."""
        token = self.token_contract(currency)
        return int(await self._call(
            "allowance", self.checksum(owner), self._address, contract=token,
        ))

    async def approve(
        self, currency: Currency, amount: int, *, timeout: float | None = None,
    ) -> TxResult:
        """Approve the marketplace to spend exactly ``amount`` base units."""
        token = self.token_contract(currency)
        return await self._send(
            "approve", self._address, amount, contract=token, timeout=timeout,
        )

    # ── Diagnostics ────────────────────────────────────────

    async def check_contract_deployment(self) -> DeploymentStatus:
        try:
            code = await self._w3.eth.get_code(self._address)
        except Exception as exc:
            log.warning("get_code(%s) failed: %s", self._address, exc)
            return DeploymentStatus(is_deployed=False, address=self._address, error=str(exc))
        return DeploymentStatus(is_deployed=len(code) > 0, address=self._address)

    async def estimate_gas(self, fn_name: str, *args: Any, value: int = 0) -> int:
        """Estimate gas for a marketplace call, falling back to a fixed default."""
        params: dict[str, Any] = {"from": self._require_account()}
        if value:
            params["value"] = value
        try:
            fn = getattr(self._market.functions, fn_name)(*args)
            return int(await fn.estimate_gas(params))
        except Exception as exc:
            log.warning("estimate_gas(%s) failed, using default: %s", fn_name, exc)
            return DEFAULT_GAS_ESTIMATE

    # ── Market writes ──────────────────────────────────────

    async def _listing_fee(self) -> int:
        return int(await self._call("getListingPrice"))

    async def create_token(
        self,
        token_uri: str,
        prices: PriceSet,
        royalty_percentage: int = 0,
        royalty_recipient: str | None = None,
        *,
        timeout: float | None = None,
    ) -> TxResult:
        """Mint and list a token, paying the current listing price."""
        if not prices.any_positive():
            raise InvalidPriceError("at least one price must be set")
        if not 0 <= royalty_percentage <= MAX_ROYALTY_BASIS_POINTS:
            raise InvalidPriceError(
                f"royalty must be 0..{MAX_ROYALTY_BASIS_POINTS} basis points"
            )
        recipient = self.checksum(royalty_recipient) if royalty_recipient else self._require_account()
        encoded = price_params(prices)
        listing_fee = await self._listing_fee()
        log.info(
            "Creating token %s with prices %s, royalty %d bp",
            token_uri, encoded, royalty_percentage,
        )
        return await self._send(
            "createToken", token_uri, encoded, royalty_percentage, recipient,
            value=listing_fee, timeout=timeout,
        )

    async def update_item_prices(
        self, token_id: int, prices: PriceSet, *, timeout: float | None = None,
    ) -> TxResult:
        if not prices.any_positive():
            raise InvalidPriceError("at least one price must be set")
        return await self._send(
            "updateItemPrices", token_id, price_params(prices), timeout=timeout,
        )

    async def resell_token(
        self, token_id: int, prices: PriceSet, *, timeout: float | None = None,
    ) -> TxResult:
        if not prices.any_positive():
            raise InvalidPriceError("at least one price must be set")
        encoded = price_params(prices)
        listing_fee = await self._listing_fee()
        return await self._send(
            "resellToken", token_id, encoded, value=listing_fee, timeout=timeout,
        )

    async def create_market_sale_eth(
        self, token_id: int, price: Decimal | str, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send(
            "createMarketSaleETH", token_id, value=parse_ether(price), timeout=timeout,
        )

    async def create_market_sale_usdc(
        self, token_id: int, *, timeout: float | None = None,
    ) -> TxResult:
        """Spend USDC for a token. Allowance must already be in place."""
        return await self._send("createMarketSaleUSDC", token_id, timeout=timeout)

    async def create_market_sale_usdt(
        self, token_id: int, *, timeout: float | None = None,
    ) -> TxResult:
        """Spend USDT for a token. Allowance must already be in place."""
        return await self._send("createMarketSaleUSDT", token_id, timeout=timeout)

    async def create_market_sale(
        self,
        token_id: int,
        currency: Currency,
        price: Decimal | str | None = None,
        *,
        timeout: float | None = None,
    ) -> TxResult:
        if currency.is_native:
            if price is None:
                raise InvalidPriceError("an ETH purchase needs the price as value")
            return await self.create_market_sale_eth(token_id, price, timeout=timeout)
        return await self._send(SALE_FUNCTIONS[int(currency)], token_id, timeout=timeout)

    # ── Admin writes ───────────────────────────────────────

    async def update_listing_price(
        self, new_price: Decimal | str, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send("updateListingPrice", parse_ether(new_price), timeout=timeout)

    async def update_platform_fee(
        self, fee_basis_points: int, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send("updatePlatformFee", int(fee_basis_points), timeout=timeout)

    async def update_fee_recipient(
        self, recipient: str, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send("updateFeeRecipient", self.checksum(recipient), timeout=timeout)

    async def update_token_listing_fee(
        self, currency: Currency, fee: Decimal | str, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send(
            "updateTokenListingFee", int(currency), to_currency_units(fee, currency),
            timeout=timeout,
        )

    async def set_user_blacklisted(
        self, address: str, blacklisted: bool, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send(
            "setUserBlacklisted", self.checksum(address), blacklisted, timeout=timeout,
        )

    async def set_token_blacklisted(
        self, token_id: int, blacklisted: bool, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send("setTokenBlacklisted", token_id, blacklisted, timeout=timeout)

    async def pause(self, *, timeout: float | None = None) -> TxResult:
        return await self._send("pause", timeout=timeout)

    async def unpause(self, *, timeout: float | None = None) -> TxResult:
        return await self._send("unpause", timeout=timeout)

    async def initiate_emergency_withdraw(self, *, timeout: float | None = None) -> TxResult:
        return await self._send("initiateEmergencyWithdraw", timeout=timeout)

    async def cancel_emergency_withdraw(self, *, timeout: float | None = None) -> TxResult:
        return await self._send("cancelEmergencyWithdraw", timeout=timeout)

    async def emergency_withdraw_eth(self, *, timeout: float | None = None) -> TxResult:
        return await self._send("emergencyWithdrawETH", timeout=timeout)

    async def emergency_withdraw_token(
        self, token_address: str, *, timeout: float | None = None,
    ) -> TxResult:
        return await self._send(
            "emergencyWithdrawToken", self.checksum(token_address), timeout=timeout,
        )
