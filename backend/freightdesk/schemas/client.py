"""
Client schemas.
"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from freightdesk.models.client import ClientRole


class ClientCreate(BaseModel):
    company_name: str = Field(..., min_length=1)
    role: ClientRole = ClientRole.CLIENT
    shipping_plan_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None


class ClientUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=1)
    role: Optional[ClientRole] = None
    shipping_plan_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None


class ClientResponse(BaseModel):
    id: int
    company_name: str
    role: ClientRole
    shipping_plan_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CompanyOption(BaseModel):
    id: int
    company_name: str

    class Config:
        from_attributes = True
