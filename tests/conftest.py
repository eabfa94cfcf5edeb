"""Shared fixtures for nft_bridge tests."""

from __future__ import annotations

import pytest
from pytest_metadata.plugin import metadata_key

from nft_bridge.chain.gateway import ContractGateway
from nft_bridge.models.config import BridgeConfig

from tests.mocks import FakeWeb3

MARKET = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
USDC = "0xe7f1725e7734ce288f8367e1bb143e90bb3f0512"
USDT = "0x9fe46736679d2d9a65f0992f6aee9fc7dc7f3b31"
BUYER = "0x70997970c51812dc3a010c7d01b50e0d17dc79c8"
SELLER = "0x3c44cdddb6a900fa2b585dd299e03d12fa4293bc"
OTHER = "0x90f79bf6eb2c4f870365e785982e1f101e93b906"

TEST_GATEWAYS = [
    "https://gw-one.test/ipfs/",
    "https://gw-two.test/ipfs/",
    "https://gw-three.test/ipfs/",
]


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add deployment info to the HTML report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "local fake chain (31337)"
    meta["Marketplace"] = MARKET
    meta["USDC"] = USDC
    meta["USDT"] = USDT


def make_test_config(**overrides) -> BridgeConfig:
    """Build a BridgeConfig suitable for testing."""
    defaults = dict(
        contract_address=MARKET,
        usdc_address=USDC,
        usdt_address=USDT,
        chain_id=31337,
        rpc_url="http://127.0.0.1:8545",
        account=BUYER,
        confirmation_timeout=5.0,
        poll_latency=0.01,
        gateway_url=TEST_GATEWAYS[0],
        metadata_gateways=list(TEST_GATEWAYS),
        metadata_timeout=0.5,
        max_concurrent_fetches=4,
    )
    defaults.update(overrides)
    return BridgeConfig(**defaults)


# ── Fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def config():
    return make_test_config()


@pytest.fixture
def w3():
    return FakeWeb3()


@pytest.fixture
def gateway(config, w3):
    return ContractGateway(config, web3=w3)


@pytest.fixture
def market(gateway, w3):
    """The fake marketplace contract behind ``gateway``."""
    return w3.eth.contracts[gateway.marketplace_address]
