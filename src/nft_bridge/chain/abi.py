"""ABI fragments for the NFTMarketplace contract and ERC-20 tokens.

Only the functions this client calls are declared.
"""

from __future__ import annotations


def _param(name: str, type_: str, components: list[dict] | None = None) -> dict:
    p = {"name": name, "type": type_}
    if components is not None:
        p["components"] = components
    return p


def _fn(
    name: str,
    inputs: list[dict] | None = None,
    outputs: list[dict] | None = None,
    mutability: str = "view",
) -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs or [],
        "outputs": outputs or [],
        "stateMutability": mutability,
    }


PRICES_COMPONENTS = [
    _param("ethPrice", "uint256"),
    _param("usdcPrice", "uint256"),
    _param("usdtPrice", "uint256"),
]

# Field order of the MarketItem struct as returned by the contract.
MARKET_ITEM_FIELDS = (
    "tokenId",
    "seller",
    "owner",
    "ethPrice",
    "usdcPrice",
    "usdtPrice",
    "sold",
    "listedAt",
    "royaltyPercentage",
    "royaltyRecipient",
)

MARKET_ITEM_COMPONENTS = [
    _param("tokenId", "uint256"),
    _param("seller", "address"),
    _param("owner", "address"),
    _param("ethPrice", "uint256"),
    _param("usdcPrice", "uint256"),
    _param("usdtPrice", "uint256"),
    _param("sold", "bool"),
    _param("listedAt", "uint256"),
    _param("royaltyPercentage", "uint256"),
    _param("royaltyRecipient", "address"),
]

_ITEM = [_param("", "tuple", MARKET_ITEM_COMPONENTS)]
_ITEMS = [_param("", "tuple[]", MARKET_ITEM_COMPONENTS)]
_UINT = [_param("", "uint256")]
_BOOL = [_param("", "bool")]
_ADDRESS = [_param("", "address")]
_TOKEN_ID = [_param("tokenId", "uint256")]
_PRICES = _param("prices", "tuple", PRICES_COMPONENTS)

MARKETPLACE_ABI: list[dict] = [
    # ── Reads ──────────────────────────────────────────────
    _fn("getListingPrice", outputs=_UINT),
    _fn("getTokenListingFee", [_param("paymentToken", "uint8")], _UINT),
    _fn("getMarketItem", _TOKEN_ID, _ITEM),
    _fn("fetchMarketItems", outputs=_ITEMS),
    _fn("fetchItemsListed", outputs=_ITEMS),
    _fn("getTotalTokens", outputs=_UINT),
    _fn("getTotalItemsSold", outputs=_UINT),
    _fn("tokenURI", _TOKEN_ID, [_param("", "string")]),
    _fn("ownerOf", _TOKEN_ID, _ADDRESS),
    _fn("platformFeePercentage", outputs=_UINT),
    _fn("feeRecipient", outputs=_ADDRESS),
    _fn("blacklistedUsers", [_param("user", "address")], _BOOL),
    _fn("blacklistedTokens", _TOKEN_ID, _BOOL),
    _fn("emergencyWithdrawEnabled", outputs=_BOOL),
    _fn("emergencyWithdrawTimestamp", outputs=_UINT),
    _fn("MAX_ROYALTY_PERCENTAGE", outputs=_UINT),
    _fn("PERCENTAGE_BASE", outputs=_UINT),
    _fn("MAX_LISTING_PRICE", outputs=_UINT),
    _fn("usdcAddress", outputs=_ADDRESS),
    _fn("usdtAddress", outputs=_ADDRESS),
    _fn("owner", outputs=_ADDRESS),
    _fn("paused", outputs=_BOOL),
    _fn(
        "royaltyInfo",
        [_param("tokenId", "uint256"), _param("salePrice", "uint256")],
        [_param("receiver", "address"), _param("royaltyAmount", "uint256")],
    ),
    _fn("supportsInterface", [_param("interfaceId", "bytes4")], _BOOL),
    # ── Marketplace writes ─────────────────────────────────
    _fn(
        "createToken",
        [
            _param("tokenURI", "string"),
            _PRICES,
            _param("royaltyPercentage", "uint256"),
            _param("royaltyRecipient", "address"),
        ],
        _UINT,
        "payable",
    ),
    _fn("updateItemPrices", [_param("tokenId", "uint256"), _PRICES], mutability="nonpayable"),
    _fn("resellToken", [_param("tokenId", "uint256"), _PRICES], mutability="payable"),
    _fn("createMarketSaleETH", _TOKEN_ID, mutability="payable"),
    _fn("createMarketSaleUSDC", _TOKEN_ID, mutability="nonpayable"),
    _fn("createMarketSaleUSDT", _TOKEN_ID, mutability="nonpayable"),
    # ── Admin writes ───────────────────────────────────────
    _fn("updateListingPrice", [_param("_listingPrice", "uint256")], mutability="nonpayable"),
    _fn("updatePlatformFee", [_param("_feePercentage", "uint256")], mutability="nonpayable"),
    _fn("updateFeeRecipient", [_param("_feeRecipient", "address")], mutability="nonpayable"),
    _fn(
        "updateTokenListingFee",
        [_param("paymentToken", "uint8"), _param("fee", "uint256")],
        mutability="nonpayable",
    ),
    _fn(
        "setUserBlacklisted",
        [_param("user", "address"), _param("blacklisted", "bool")],
        mutability="nonpayable",
    ),
    _fn(
        "setTokenBlacklisted",
        [_param("tokenId", "uint256"), _param("blacklisted", "bool")],
        mutability="nonpayable",
    ),
    _fn("pause", mutability="nonpayable"),
    _fn("unpause", mutability="nonpayable"),
    _fn("initiateEmergencyWithdraw", mutability="nonpayable"),
    _fn("cancelEmergencyWithdraw", mutability="nonpayable"),
    _fn("emergencyWithdrawETH", mutability="nonpayable"),
    _fn("emergencyWithdrawToken", [_param("token", "address")], mutability="nonpayable"),
]

ERC20_ABI: list[dict] = [
    _fn("balanceOf", [_param("account", "address")], _UINT),
    _fn("decimals", outputs=[_param("", "uint8")]),
    _fn(
        "allowance",
        [_param("owner", "address"), _param("spender", "address")],
        _UINT,
    ),
    _fn(
        "approve",
        [_param("spender", "address"), _param("amount", "uint256")],
        _BOOL,
        "nonpayable",
    ),
]

# Purchase entry point per token currency.
SALE_FUNCTIONS = {
    0: "createMarketSaleETH",
    1: "createMarketSaleUSDC",
    2: "createMarketSaleUSDT",
}
