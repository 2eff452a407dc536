from .shipping_rate import ShippingPlan, ShippingRate
from .client import Client, ClientRole
from .user import User, UserRole, RevokedToken
from .manifest import ManifestInfo, ManifestList

__all__ = [
    "ShippingPlan",
    "ShippingRate",
    "Client",
    "ClientRole",
    "User",
    "UserRole",
    "RevokedToken",
    "ManifestInfo",
    "ManifestList",
]
