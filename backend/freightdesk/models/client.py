"""
Client model - consignors billed through manifests.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Integer, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from freightdesk.db.database import Base


class ClientRole(str, enum.Enum):
    CLIENT = "client"
    ADMIN = "admin"


class Client(Base):
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_name = Column(String, nullable=False, unique=True)
    role = Column(
        SQLEnum(
            ClientRole,
            native_enum=False,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
            validate_strings=True,
        ),
        default=ClientRole.CLIENT.value,
        nullable=False,
    )
    shipping_plan_id = Column(Integer, ForeignKey("shipping_plans.id"), nullable=True)
    contact_name = Column(String, nullable=True)
    contact_phone = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    shipping_plan = relationship("ShippingPlan", back_populates="clients")
    manifest_lists = relationship("ManifestList", back_populates="consignor")
