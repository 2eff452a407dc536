from .shipping_rate import (
    ShippingPlanCreate,
    ShippingPlanResponse,
    ShippingRateCreate,
    ShippingRateUpdate,
    ShippingRateResponse,
    ShippingCalculationRequest,
    ShippingCalculationResponse,
)
from .client import ClientCreate, ClientUpdate, ClientResponse
from .auth import RegisterRequest, LoginRequest, UserResponse, TokenResponse
from .manifest import (
    ManifestBatchRequest,
    ManifestBatchResponse,
    ManifestDetailResponse,
    ManifestInfoResponse,
    ManifestLineResponse,
)

__all__ = [
    "ShippingPlanCreate",
    "ShippingPlanResponse",
    "ShippingRateCreate",
    "ShippingRateUpdate",
    "ShippingRateResponse",
    "ShippingCalculationRequest",
    "ShippingCalculationResponse",
    "ClientCreate",
    "ClientUpdate",
    "ClientResponse",
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "TokenResponse",
    "ManifestBatchRequest",
    "ManifestBatchResponse",
    "ManifestDetailResponse",
    "ManifestInfoResponse",
    "ManifestLineResponse",
]
