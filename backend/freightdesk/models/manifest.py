"""
Manifest models - a manifest header (one flight/route batch) and its consignment lines.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Integer, Date
from sqlalchemy.orm import relationship, validates
from datetime import datetime
from decimal import Decimal
from freightdesk.db.database import Base
from freightdesk.models.shipping_rate import normalize_location


class ManifestInfo(Base):
    __tablename__ = "manifest_infos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    awb_no = Column(String, nullable=False)  # Air waybill number
    origin = Column("from", String, nullable=False)
    destination = Column("to", String, nullable=False)
    flt = Column(String, nullable=True)  # Flight number
    # YYYYMMnnn, unique so concurrent allocations cannot both commit
    manifest_no = Column(String, nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    deleted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("User", back_populates="manifest_infos")
    manifest_lists = relationship(
        "ManifestList",
        back_populates="manifest_info",
        cascade="all, delete-orphan",
        order_by="ManifestList.id",
    )

    @validates("origin", "destination")
    def _normalize_route(self, key, value):
        return normalize_location(value)

    @property
    def total_price(self) -> Decimal:
        return sum((Decimal(str(line.total_price or 0)) for line in self.manifest_lists), Decimal("0.00"))


class ManifestList(Base):
    __tablename__ = "manifest_lists"

    id = Column(Integer, primary_key=True, autoincrement=True)
    manifest_info_id = Column(Integer, ForeignKey("manifest_infos.id", ondelete="CASCADE"), nullable=False)
    consignor_id = Column(Integer, ForeignKey("clients.id"), nullable=False)
    consignee_name = Column(String, nullable=False)
    cn_no = Column(String, nullable=False, index=True)  # Consignment note, expected unique but not enforced
    pcs = Column(Integer, nullable=False)
    kg = Column(Integer, nullable=False)  # Whole kilograms
    gram = Column(Integer, nullable=False, default=0)
    total_price = Column(Numeric(10, 2), nullable=False, default=0)
    discount = Column(Numeric(5, 2), nullable=True)
    origin = Column(String, nullable=False)
    destination = Column(String, nullable=False)
    remarks = Column(String, nullable=True)
    delivery_date = Column(Date, nullable=True)  # Set once when the shipment is confirmed
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    manifest_info = relationship("ManifestInfo", back_populates="manifest_lists")
    consignor = relationship("Client", back_populates="manifest_lists")

    @validates("origin", "destination")
    def _normalize_route(self, key, value):
        return normalize_location(value)

    @property
    def status(self) -> str:
        return "delivered" if self.delivery_date else "pending"
