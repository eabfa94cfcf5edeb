"""Protocol interfaces for nft_bridge components."""

from nft_bridge.interfaces.gateway import EmergencyGateway, PurchaseGateway
from nft_bridge.interfaces.metadata import MetadataSource

__all__ = [
    "EmergencyGateway",
    "PurchaseGateway",
    "MetadataSource",
]
