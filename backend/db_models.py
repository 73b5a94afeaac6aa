"""
SQLAlchemy ORM models for the Darzi backend.

Tables:
    orders     — garment orders and their workflow status (owned by the order service)
    providers  — tailor read model (owned by the account/profile service; read-only here)
"""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Float, Boolean, DateTime, Integer, JSON, Index,
)

from database import Base


def _new_order_id() -> str:
    return uuid.uuid4().hex


class Order(Base):
    """
    A single garment request from placement to delivery or termination.

    `status` is only ever written by the conditional updates in
    services/order_service.py. Rows are never deleted.
    """
    __tablename__ = "orders"

    id = Column(String(32), primary_key=True, default=_new_order_id)
    requester_ref = Column(String(64), nullable=False, index=True)
    provider_ref = Column(String(64), nullable=False, index=True)

    garment_type = Column(String(100), nullable=False)
    items = Column(JSON, nullable=False, default=list)          # ["Shirt", "Kurta", ...]
    measurements = Column(JSON, nullable=False, default=dict)   # {"chest": 38.5, ...}
    provider_supplies_fabric = Column(Boolean, nullable=False, default=False)
    handover_type = Column(String(10), nullable=True)           # PICKUP | DROP

    # Payment sub-record (flattened)
    total_amount = Column(Float, nullable=False)
    deposit_amount = Column(Float, nullable=False)
    remaining_amount = Column(Float, nullable=False)            # total - deposit, fixed at creation
    deposit_mode = Column(String(10), nullable=True)            # CASH | ONLINE
    deposit_status = Column(String(10), nullable=False, default="PENDING")
    payment_status = Column(String(20), nullable=False, default="PENDING_DEPOSIT")

    status = Column(String(20), nullable=False, default="PLACED", index=True)
    delivery_code = Column(String(12), nullable=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # Requester history: filter by requester_ref, order by created_at DESC
        Index("ix_orders_requester_created", "requester_ref", "created_at"),
        # Provider dashboard tabs: filter by provider_ref + status, order by updated_at DESC
        Index("ix_orders_provider_status_updated", "provider_ref", "status", "updated_at"),
    )


class Provider(Base):
    """
    Tailor profile as seen by discovery.

    Latitude/longitude are nullable; a provider without both is never
    returned by proximity search.
    """
    __tablename__ = "providers"

    id = Column(String(64), primary_key=True)
    name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)  # ACTIVE | INACTIVE | SUSPENDED

    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    specializations = Column(JSON, nullable=False, default=list)  # garment types, e.g. ["Shirt", "Blouse"]
    provides_fabric = Column(Boolean, nullable=False, default=False)
    home_pickup = Column(Boolean, nullable=False, default=False)
    rating = Column(Float, nullable=False, default=4.5)

    shop_name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    experience_years = Column(Integer, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        # Bounding-box prefilter for proximity search
        Index("ix_providers_status_lat_lng", "status", "latitude", "longitude"),
    )
