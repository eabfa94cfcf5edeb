"""Marketplace session - wires every component from one BridgeConfig."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from web3 import AsyncWeb3

from nft_bridge.admin.emergency import AdminEmergencyController
from nft_bridge.chain.gateway import ContractGateway
from nft_bridge.errors import ChainError
from nft_bridge.interfaces.metadata import MetadataSource
from nft_bridge.ipfs.resolver import MetadataResolver
from nft_bridge.ipfs.uri import image_url
from nft_bridge.models.config import BridgeConfig
from nft_bridge.models.market import Currency, MarketItem, PaymentPlan
from nft_bridge.models.metadata import Metadata
from nft_bridge.models.records import TxResult
from nft_bridge.policy.payment import PaymentResolver
from nft_bridge.trade.approval import ERC20ApprovalCoordinator

log = logging.getLogger(__name__)


@dataclass
class ItemView:
    """A market item joined with its metadata and payment options."""

    item: MarketItem
    metadata: Metadata
    payment: PaymentPlan
    image_url: str


class MarketplaceSession:
    """One client session against one marketplace deployment.

    Holds no chain state; every call reads fresh. The only thing kept between
    calls is the metadata cache keyed by token id.
    """

    def __init__(
        self,
        cfg: BridgeConfig,
        web3: AsyncWeb3 | None = None,
        metadata_transport: httpx.AsyncBaseTransport | None = None,
        metadata: MetadataSource | None = None,
    ) -> None:
        self._cfg = cfg
        self.gateway = ContractGateway(cfg, web3)
        self.payments = PaymentResolver(cfg)
        self.approvals = ERC20ApprovalCoordinator(
            self.gateway, confirmation_timeout=cfg.confirmation_timeout,
        )
        self.emergency = AdminEmergencyController(
            self.gateway,
            token_addresses={
                Currency.USDC: cfg.usdc_address,
                Currency.USDT: cfg.usdt_address,
            },
            confirmation_timeout=cfg.confirmation_timeout,
        )
        self.metadata: MetadataSource = metadata or MetadataResolver(
            gateways=cfg.metadata_gateways,
            timeout=cfg.metadata_timeout,
            max_concurrent=cfg.max_concurrent_fetches,
            transport=metadata_transport,
        )

    async def _views(self, items: list[MarketItem]) -> list[ItemView]:
        metadata = await self.metadata.resolve_many(
            (item.token_id, item.token_uri) for item in items
        )
        return [
            ItemView(
                item=item,
                metadata=metadata[item.token_id],
                payment=self.payments.resolve(item),
                image_url=image_url(metadata[item.token_id].image, self._cfg.gateway_url),
            )
            for item in items
        ]

    async def marketplace(self) -> list[ItemView]:
        """Active listings with metadata, fetched concurrently."""
        return await self._views(await self.gateway.fetch_market_items())

    async def my_nfts(self, address: str) -> list[ItemView]:
        return await self._views(await self.gateway.fetch_my_nfts(address))

    async def my_listings(self, seller: str | None = None) -> list[ItemView]:
        return await self._views(await self.gateway.fetch_items_listed(seller))

    async def item(self, token_id: int) -> ItemView:
        item = await self.gateway.get_market_item(token_id)
        try:
            item.token_uri = await self.gateway.get_token_uri(token_id)
        except ChainError as exc:
            log.warning("tokenURI(%d) failed: %s", token_id, exc)
        return (await self._views([item]))[0]

    async def buy(
        self, token_id: int, currency: Currency, buyer: str | None = None,
    ) -> TxResult:
        """Buy at the listed price in ``currency``, approving first if needed."""
        item = await self.gateway.get_market_item(token_id)
        amount = self.payments.price_for(item, currency)
        return await self.approvals.purchase(
            token_id, currency, amount, buyer or self.gateway.account,
        )
