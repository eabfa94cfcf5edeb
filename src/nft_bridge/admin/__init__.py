"""Administrative flows against the marketplace contract."""

from nft_bridge.admin.emergency import AdminEmergencyController

__all__ = ["AdminEmergencyController"]
