"""
Shipping plan, shipping rate and price calculation schemas.
"""
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from freightdesk.models.shipping_rate import normalize_location


class ShippingPlanCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class ShippingPlanResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ShippingRateCreate(BaseModel):
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    shipping_plan_id: Optional[int] = None
    minimum_weight: Decimal = Field(..., ge=0)
    minimum_price: Decimal = Field(..., ge=0)
    additional_price_per_kg: Decimal = Field(..., ge=0)

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_location(value)


class ShippingRateUpdate(BaseModel):
    origin: Optional[str] = Field(None, min_length=1)
    destination: Optional[str] = Field(None, min_length=1)
    shipping_plan_id: Optional[int] = None
    minimum_weight: Optional[Decimal] = Field(None, ge=0)
    minimum_price: Optional[Decimal] = Field(None, ge=0)
    additional_price_per_kg: Optional[Decimal] = Field(None, ge=0)

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: Optional[str]) -> Optional[str]:
        normalized = normalize_location(value)
        if value is not None and not normalized:
            raise ValueError("Location must not be blank")
        return normalized


class ShippingRateResponse(BaseModel):
    id: int
    origin: str
    destination: str
    shipping_plan_id: Optional[int] = None
    minimum_weight: Decimal
    minimum_price: Decimal
    additional_price_per_kg: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RateImportResponse(BaseModel):
    message: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = []


class ShippingCalculationRequest(BaseModel):
    """Weight is either given directly in kg or as whole kg plus grams."""
    origin: str = Field(..., min_length=1)
    destination: str = Field(..., min_length=1)
    weight: Optional[Decimal] = Field(None, ge=0)
    kg: Optional[int] = Field(None, ge=0)
    gram: Optional[int] = Field(None, ge=0, lt=1000)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    client_id: Optional[int] = None

    @field_validator("origin", "destination")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_location(value)

    @model_validator(mode="after")
    def _require_weight(self):
        if self.weight is None and self.kg is None:
            raise ValueError("Either weight or kg is required")
        return self


class ShippingCalculationResponse(BaseModel):
    origin: str
    destination: str
    weight: str
    price: str
    discount: str
    total_price: str
