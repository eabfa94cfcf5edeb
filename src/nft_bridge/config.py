"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from nft_bridge.errors import ConfigError
from nft_bridge.models.config import BridgeConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "NFT_BRIDGE_",
    environ: dict[str, str] | None = None,
) -> BridgeConfig:
    """Build a BridgeConfig once, at startup.

    Priority (highest wins):
        1. Environment variables (NFT_BRIDGE_CONTRACT_ADDRESS, etc.)
        2. TOML config file
        3. Defaults from BridgeConfig
    """
    env = os.environ if environ is None else environ
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = BridgeConfig()

    # ── Chain section ──────────────────────────────────────
    chain = raw.get("chain", {})
    if v := chain.get("contract_address"):
        cfg.contract_address = str(v)
    if v := chain.get("usdc_address"):
        cfg.usdc_address = str(v)
    if v := chain.get("usdt_address"):
        cfg.usdt_address = str(v)
    if v := chain.get("chain_id"):
        cfg.chain_id = int(v)
    if v := chain.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := chain.get("account"):
        cfg.account = str(v)
    if v := chain.get("confirmation_timeout"):
        cfg.confirmation_timeout = float(v)
    if v := chain.get("poll_latency"):
        cfg.poll_latency = float(v)

    # ── IPFS section ───────────────────────────────────────
    ipfs = raw.get("ipfs", {})
    if v := ipfs.get("gateway_url"):
        cfg.gateway_url = str(v)
    if v := ipfs.get("metadata_gateways"):
        cfg.metadata_gateways = [str(g) for g in v]
    if v := ipfs.get("metadata_timeout"):
        cfg.metadata_timeout = float(v)
    if v := ipfs.get("max_concurrent_fetches"):
        cfg.max_concurrent_fetches = int(v)

    # ── Client section ─────────────────────────────────────
    client = raw.get("client", {})
    if v := client.get("log_level"):
        cfg.log_level = str(v)

    # ── Environment variable overrides (highest priority) ──
    if v := env.get(f"{env_prefix}CONTRACT_ADDRESS"):
        cfg.contract_address = v
    if v := env.get(f"{env_prefix}USDC_ADDRESS"):
        cfg.usdc_address = v
    if v := env.get(f"{env_prefix}USDT_ADDRESS"):
        cfg.usdt_address = v
    if v := env.get(f"{env_prefix}CHAIN_ID"):
        try:
            cfg.chain_id = int(v)
        except ValueError as exc:
            raise ConfigError(f"{env_prefix}CHAIN_ID is not an integer: {v!r}", cause=exc) from exc
    if v := env.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = v
    if v := env.get(f"{env_prefix}ACCOUNT"):
        cfg.account = v
    if v := env.get(f"{env_prefix}PRIVATE_KEY"):
        cfg.private_key = v
    if v := env.get(f"{env_prefix}GATEWAY_URL"):
        cfg.gateway_url = v
        # The configured gateway is tried before the public fallbacks
        if v not in cfg.metadata_gateways:
            cfg.metadata_gateways.insert(0, v)
    if v := env.get(f"{env_prefix}PINATA_JWT"):
        cfg.pinata_jwt = v
    if v := env.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = v

    return cfg
