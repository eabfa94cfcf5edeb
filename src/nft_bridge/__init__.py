"""nft_bridge - async client layer for an EVM NFT marketplace."""

__version__ = "0.1.0"
