"""
Pydantic models for request/response validation.
"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt

from domain.enums import DepositMode, HandoverType, OrderStatus


class DarziBase(BaseModel):
    """Shared base — allows construction by Python name or camelCase alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Order Models ────────────────────────────────────────────────────

class PaymentInput(DarziBase):
    """Amounts agreed at order time. Range checks happen in the order service."""
    total_amount: float = Field(..., alias="totalAmount")
    deposit_amount: float = Field(..., alias="depositAmount")
    deposit_mode: Optional[DepositMode] = Field(default=None, alias="depositMode")


class OrderCreateRequest(DarziBase):
    """Place an order with a provider picked from discovery."""
    requester_ref: str = Field(..., alias="requesterRef", max_length=64)
    provider_ref: str = Field(..., alias="providerRef", max_length=64)
    garment_type: str = Field(..., alias="garmentType", max_length=100)
    # Strict: JSON true/false must not coerce to 1.0/0.0
    measurements: dict[str, Union[StrictFloat, StrictInt]] = Field(default_factory=dict)
    items: List[str] = Field(default_factory=list)
    provider_supplies_fabric: bool = Field(False, alias="providerSuppliesFabric")
    handover_type: Optional[HandoverType] = Field(default=None, alias="handoverType")
    payment: PaymentInput


class PaymentResponse(DarziBase):
    total_amount: float
    deposit_amount: float
    remaining_amount: float
    deposit_mode: Optional[str] = None
    deposit_status: str
    payment_status: str


class OrderResponse(DarziBase):
    id: str
    requester_ref: str
    provider_ref: str
    garment_type: str
    items: List[str]
    measurements: dict[str, float]
    provider_supplies_fabric: bool
    handover_type: Optional[str] = None
    payment: PaymentResponse
    status: OrderStatus
    delivery_code: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order, include_delivery_code: bool = True) -> "OrderResponse":
        """
        Build the API projection of an ORM Order.

        The delivery code is the requester's proof of handover; provider-facing
        views only carry it once the garment is READY.
        """
        if not include_delivery_code and order.status not in (OrderStatus.READY.value, OrderStatus.DELIVERED.value):
            code = None
        else:
            code = order.delivery_code

        return cls(
            id=order.id,
            requester_ref=order.requester_ref,
            provider_ref=order.provider_ref,
            garment_type=order.garment_type,
            items=order.items or [],
            measurements=order.measurements or {},
            provider_supplies_fabric=order.provider_supplies_fabric,
            handover_type=order.handover_type,
            payment=PaymentResponse(
                total_amount=order.total_amount,
                deposit_amount=order.deposit_amount,
                remaining_amount=order.remaining_amount,
                deposit_mode=order.deposit_mode,
                deposit_status=order.deposit_status,
                payment_status=order.payment_status,
            ),
            status=OrderStatus(order.status),
            delivery_code=code,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


# ── Discovery Models ────────────────────────────────────────────────

class DiscoveryFilters(DarziBase):
    """Capability filters; every supplied filter must hold (conjunctive)."""
    garment_type: Optional[str] = Field(default=None, alias="garmentType")
    requires_fabric_provision: bool = Field(False, alias="requiresFabricProvision")


class RadiusPolicy(DarziBase):
    """Escalation bounds in km. Unset fields fall back to the DISCOVERY_* settings."""
    min_radius_km: Optional[float] = Field(default=None, alias="minRadiusKm")
    max_radius_km: Optional[float] = Field(default=None, alias="maxRadiusKm")
    step_km: Optional[float] = Field(default=None, alias="stepKm")


class NearbyProvider(DarziBase):
    provider_id: str
    distance_km: float
    name: str
    shop_name: Optional[str] = None
    rating: float
    specializations: List[str]
    provides_fabric: bool
    home_pickup: bool
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    experience_years: Optional[int] = None
    latitude: float
    longitude: float

    @classmethod
    def from_provider(cls, provider, distance_km: float) -> "NearbyProvider":
        return cls(
            provider_id=provider.id,
            distance_km=distance_km,
            name=provider.name,
            shop_name=provider.shop_name,
            rating=provider.rating,
            specializations=list(provider.specializations or []),
            provides_fabric=provider.provides_fabric,
            home_pickup=provider.home_pickup,
            phone=provider.phone,
            address=provider.address,
            city=provider.city,
            experience_years=provider.experience_years,
            latitude=provider.latitude,
            longitude=provider.longitude,
        )


class NearbyResult(DarziBase):
    radius_used_km: float
    rounds: int = Field(..., description="Directory queries issued before returning")
    providers: List[NearbyProvider]


class ProviderSummary(DarziBase):
    """Directory listing entry (located or not)."""
    id: str
    name: str
    shop_name: Optional[str] = None
    status: str
    rating: float
    specializations: List[str]
    provides_fabric: bool
    city: Optional[str] = None
    has_location: bool
