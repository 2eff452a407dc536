"""
Shipping plan and shipping rate models.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Integer, UniqueConstraint
from sqlalchemy.orm import relationship, validates
from datetime import datetime
from freightdesk.db.database import Base


def normalize_location(value):
    """Locations are stored stripped and upper-cased so lookups never depend on caller casing."""
    if value is None:
        return None
    return str(value).strip().upper()


class ShippingPlan(Base):
    __tablename__ = "shipping_plans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)  # e.g. "Standard", "Corporate"
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    rates = relationship("ShippingRate", back_populates="shipping_plan", cascade="all, delete-orphan")
    clients = relationship("Client", back_populates="shipping_plan")


class ShippingRate(Base):
    __tablename__ = "shipping_rates"
    __table_args__ = (
        UniqueConstraint("origin", "destination", "shipping_plan_id", name="uq_shipping_rates_route_plan"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    origin = Column(String, nullable=False, index=True)  # e.g. "KL", "PEN"
    destination = Column(String, nullable=False, index=True)
    shipping_plan_id = Column(Integer, ForeignKey("shipping_plans.id"), nullable=True)

    # Weight up to minimum_weight is charged minimum_price, every kg above at additional_price_per_kg
    minimum_weight = Column(Numeric(10, 3), nullable=False)
    minimum_price = Column(Numeric(10, 2), nullable=False)
    additional_price_per_kg = Column(Numeric(10, 4), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    shipping_plan = relationship("ShippingPlan", back_populates="rates")

    @validates("origin", "destination")
    def _normalize_route(self, key, value):
        return normalize_location(value)
