"""Custodial vs actual ownership."""

from __future__ import annotations

from nft_bridge.policy.ownership import (
    OwnershipReconciler,
    is_listed,
    is_meaningful_owner,
    same_address,
)

from tests.conftest import BUYER, MARKET, OTHER, SELLER
from tests.factories import make_market_item


def test_same_address_ignores_case():
    assert same_address(BUYER, BUYER.upper().replace("0X", "0x"))
    assert not same_address(BUYER, SELLER)


def test_empty_addresses_never_match():
    assert not same_address("", "")
    assert not same_address(None, BUYER)


def test_either_sense_of_ownership_counts():
    assert is_meaningful_owner(BUYER, MARKET, BUYER)
    assert is_meaningful_owner(MARKET, BUYER, BUYER)
    assert not is_meaningful_owner(MARKET, SELLER, BUYER)


def test_listed_means_marketplace_custody():
    assert is_listed(MARKET, MARKET.upper().replace("0X", "0x"))
    assert not is_listed(BUYER, MARKET)


def test_escrowed_token_belongs_to_holder_not_seller():
    """Custodial owner is the marketplace, the token contract says BUYER."""
    reconciler = OwnershipReconciler(MARKET)
    item = make_market_item(seller=SELLER, custodial_owner=MARKET)

    holder = reconciler.reconcile(item, BUYER, BUYER)
    assert holder.is_owner
    assert holder.is_listed

    seller = reconciler.reconcile(item, BUYER, SELLER)
    assert not seller.is_owner


def test_sold_token_owned_by_buyer():
    reconciler = OwnershipReconciler(MARKET)
    item = make_market_item(custodial_owner=BUYER, sold=True)
    view = reconciler.reconcile(item, BUYER, BUYER)
    assert view.is_owner
    assert not view.is_listed


def test_owned_by_filters_and_marks_listing_state():
    reconciler = OwnershipReconciler(MARKET)
    items = [
        make_market_item(token_id=1, custodial_owner=MARKET, actual_owner=BUYER),
        make_market_item(token_id=2, custodial_owner=BUYER, actual_owner=BUYER),
        make_market_item(token_id=3, custodial_owner=OTHER, actual_owner=OTHER),
    ]
    owned = reconciler.owned_by(items, BUYER)
    assert [i.token_id for i in owned] == [1, 2]
    assert [i.is_listed for i in owned] == [True, False]
