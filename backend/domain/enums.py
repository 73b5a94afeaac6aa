"""
Domain enums shared by the order lifecycle and provider discovery services.
"""

from enum import Enum


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    ACCEPTED = "ACCEPTED"
    CUTTING = "CUTTING"
    STITCHING = "STITCHING"
    FINISHING = "FINISHING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"  # no operation produces it yet


class DepositMode(str, Enum):
    CASH = "CASH"
    ONLINE = "ONLINE"


class DepositStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentStatus(str, Enum):
    PENDING_DEPOSIT = "PENDING_DEPOSIT"
    DEPOSIT_PAID = "DEPOSIT_PAID"
    PAID = "PAID"


class HandoverType(str, Enum):
    PICKUP = "PICKUP"
    DROP = "DROP"


class ProviderStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class DepositConfirmationPolicy(str, Enum):
    FORCE = "force"
    PLACED_ONLY = "placed_only"
