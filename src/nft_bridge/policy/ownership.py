"""Ownership reconciliation - custodial (marketplace) vs actual (token) owner."""

from __future__ import annotations

import logging

from nft_bridge.models.market import MarketItem, OwnershipView

log = logging.getLogger(__name__)


def same_address(a: str | None, b: str | None) -> bool:
    """Case-insensitive address equality. Empty or missing never matches."""
    if not a or not b:
        return False
    return a.lower() == b.lower()


def is_meaningful_owner(
    custodial_owner: str | None, actual_owner: str | None, address: str
) -> bool:
    """True if ``address`` owns the token in either sense.

    Either match is enough: a listed token sits with escrow as custodial
    owner, and settlement can briefly leave the two fields disagreeing.
    """
    return same_address(custodial_owner, address) or same_address(actual_owner, address)


def is_listed(custodial_owner: str | None, marketplace_address: str) -> bool:
    """A token is listed when the marketplace itself holds custody."""
    return same_address(custodial_owner, marketplace_address)


class OwnershipReconciler:
    """Answers "does this address own this token" for marketplace items."""

    def __init__(self, marketplace_address: str) -> None:
        self._marketplace_address = marketplace_address

    def reconcile(
        self, item: MarketItem, actual_owner: str | None, address: str
    ) -> OwnershipView:
        return OwnershipView(
            token_id=item.token_id,
            address=address,
            custodial_owner=item.custodial_owner,
            actual_owner=actual_owner,
            is_owner=is_meaningful_owner(item.custodial_owner, actual_owner, address),
            is_listed=is_listed(item.custodial_owner, self._marketplace_address),
        )

    def owned_by(
        self, items: list[MarketItem], address: str
    ) -> list[MarketItem]:
        """Filter items already carrying ``actual_owner`` down to those owned."""
        owned = []
        for item in items:
            view = self.reconcile(item, item.actual_owner, address)
            if view.is_owner:
                item.is_listed = view.is_listed
                owned.append(item)
        log.debug("%d of %d items owned by %s", len(owned), len(items), address)
        return owned
