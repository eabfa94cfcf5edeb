"""Configuration models for the marketplace client."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_GATEWAYS = [
    "https://gateway.pinata.cloud/ipfs/",
    "https://ipfs.io/ipfs/",
    "https://cloudflare-ipfs.com/ipfs/",
    "https://dweb.link/ipfs/",
    "https://nftstorage.link/ipfs/",
]


@dataclass
class BridgeConfig:
    """Complete client configuration, built once at startup and injected."""

    # Chain
    contract_address: str = ""  # NFTMarketplace contract
    usdc_address: str = ""
    usdt_address: str = ""
    chain_id: int = 31337
    rpc_url: str = "http://127.0.0.1:8545"
    account: str = ""  # sender for writes and msg.sender-scoped reads
    private_key: str = ""  # loaded from env var NFT_BRIDGE_PRIVATE_KEY
    confirmation_timeout: float = 120.0  # seconds per receipt wait
    poll_latency: float = 1.0  # seconds between receipt polls

    # IPFS
    gateway_url: str = "https://gateway.pinata.cloud/ipfs/"  # images and primary metadata gateway
    metadata_gateways: list[str] = field(default_factory=lambda: list(DEFAULT_GATEWAYS))
    metadata_timeout: float = 10.0  # seconds per gateway attempt
    max_concurrent_fetches: int = 8
    pinata_jwt: str = ""  # upload credential, not used by retrieval

    # Client
    log_level: str = "info"

    def token_address(self, currency: int) -> str:
        """Return the configured ERC-20 address for a token currency index."""
        if currency == 1:
            return self.usdc_address
        if currency == 2:
            return self.usdt_address
        return ""
