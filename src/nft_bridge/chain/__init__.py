"""EVM chain integration for the NFTMarketplace contract."""

from nft_bridge.chain.gateway import ContractGateway, classify_error, decode_market_item

__all__ = ["ContractGateway", "classify_error", "decode_market_item"]
