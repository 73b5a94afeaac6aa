"""
Order lifecycle service — creation, provider decision, deposit confirmation
and production-stage progression for garment orders.

Workflow:
    PLACED → ACCEPTED → CUTTING → STITCHING → FINISHING → READY → DELIVERED
    PLACED → REJECTED

Every status change is one conditional UPDATE guarded on the status the
caller expects (compare-and-set on `orders.status`). When the guard matches
nothing, a follow-up read decides between NotFoundError and a transition
error. Concurrent callers on the same order therefore serialize in the
database: one wins, the rest get a typed error. Nothing here retries.

Services flush; routes commit.
"""
import logging
import secrets
from datetime import datetime, time
from typing import Iterable, Optional

from sqlalchemy import select, update, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from database import translate_storage_errors
from db_models import Order, Provider
from domain.enums import (
    DepositConfirmationPolicy,
    DepositMode,
    DepositStatus,
    HandoverType,
    OrderStatus,
    PaymentStatus,
)
from domain.errors import (
    InvalidTransitionError,
    NoFurtherTransitionError,
    NotFoundError,
    ValidationError,
)
from domain.state_machine import next_status
from utils.validators import (
    parse_status_filter,
    validate_amounts,
    validate_measurements,
    validate_ref,
)

logger = logging.getLogger(__name__)


def generate_delivery_code(length: Optional[int] = None) -> str:
    """Random numeric code without a leading zero (4 digits by default: 1000-9999)."""
    length = length or settings.delivery_code_length
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


# ── Internal helpers ────────────────────────────────────────────────

async def _load(db: AsyncSession, order_id: str) -> Optional[Order]:
    """Read the stored row, bypassing any stale copy in the session identity map."""
    res = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    return res.scalar_one_or_none()


async def _compare_and_set(
    db: AsyncSession,
    order_id: str,
    expected: Iterable[OrderStatus],
    **values,
) -> bool:
    """
    Atomically apply `values` if the order's status is one of `expected`.

    Returns True when exactly this call changed the row.
    """
    expected_values = [OrderStatus(s).value for s in expected]
    res = await db.execute(
        update(Order)
        .where(Order.id == order_id, Order.status.in_(expected_values))
        .values(**values, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return res.rowcount == 1


async def _decide(db: AsyncSession, order_id: str, target: OrderStatus, action: str) -> Order:
    """Provider decision on a placed order (accept / reject)."""
    order_id = validate_ref(order_id, "order_id")

    changed = await _compare_and_set(db, order_id, (OrderStatus.PLACED,), status=target.value)
    order = await _load(db, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    if not changed:
        logger.warning(f"Order {order_id}: {action} refused, status is {order.status}")
        raise InvalidTransitionError(order_id, order.status, action)

    logger.info(f"Order {order_id}: PLACED → {target.value}")
    return order


# ── Commands ────────────────────────────────────────────────────────

@translate_storage_errors
async def create_order(
    db: AsyncSession,
    *,
    requester_ref: str,
    provider_ref: str,
    garment_type: str,
    measurements: dict | None,
    total_amount: float,
    deposit_amount: float,
    deposit_mode: DepositMode | str | None = None,
    items: list[str] | None = None,
    provider_supplies_fabric: bool = False,
    handover_type: HandoverType | str | None = None,
) -> Order:
    """
    Place a new order with a provider.

    Computes remaining_amount = total_amount - deposit_amount, generates the
    delivery code and starts the order at PLACED / PENDING_DEPOSIT.

    Raises:
        ValidationError: missing identifiers, negative amounts or deposit > total
        NotFoundError: provider unknown (only when ORDER_REQUIRE_KNOWN_PROVIDER is on)
    """
    requester_ref = validate_ref(requester_ref, "requesterRef")
    provider_ref = validate_ref(provider_ref, "providerRef")
    if not garment_type or not garment_type.strip():
        raise ValidationError("is required", field="garmentType")
    validate_amounts(total_amount, deposit_amount)
    measurements = validate_measurements(measurements)

    try:
        mode = DepositMode(deposit_mode).value if deposit_mode is not None else None
        handover = HandoverType(handover_type).value if handover_type is not None else None
    except ValueError as exc:
        raise ValidationError(str(exc))

    if settings.order_require_known_provider:
        provider = await db.get(Provider, provider_ref)
        if provider is None:
            raise NotFoundError("Provider", provider_ref)

    now = datetime.utcnow()
    order = Order(
        requester_ref=requester_ref,
        provider_ref=provider_ref,
        garment_type=garment_type.strip(),
        items=list(items or []),
        measurements=measurements,
        provider_supplies_fabric=bool(provider_supplies_fabric),
        handover_type=handover,
        total_amount=float(total_amount),
        deposit_amount=float(deposit_amount),
        remaining_amount=float(total_amount) - float(deposit_amount),
        deposit_mode=mode,
        deposit_status=DepositStatus.PENDING.value,
        payment_status=PaymentStatus.PENDING_DEPOSIT.value,
        status=OrderStatus.PLACED.value,
        delivery_code=generate_delivery_code(),
        created_at=now,
        updated_at=now,
    )
    db.add(order)
    await db.flush()

    logger.info(
        f"Order {order.id} placed: {requester_ref} → {provider_ref} "
        f"({order.garment_type}, total {order.total_amount}, deposit {order.deposit_amount})"
    )
    return order


@translate_storage_errors
async def accept_order(db: AsyncSession, order_id: str) -> Order:
    """PLACED → ACCEPTED. InvalidTransitionError from any other status."""
    return await _decide(db, order_id, OrderStatus.ACCEPTED, "accept")


@translate_storage_errors
async def reject_order(db: AsyncSession, order_id: str) -> Order:
    """PLACED → REJECTED. InvalidTransitionError from any other status."""
    return await _decide(db, order_id, OrderStatus.REJECTED, "reject")


@translate_storage_errors
async def confirm_deposit(
    db: AsyncSession,
    order_id: str,
    policy: DepositConfirmationPolicy | str | None = None,
) -> Order:
    """
    Record the deposit as paid and move the order to ACCEPTED.

    Policy (DEPOSIT_CONFIRMATION_POLICY unless given):
        force        — any prior status is replaced with ACCEPTED
        placed_only  — only a PLACED order may be confirmed

    Either way a deposit can be confirmed once; a second confirmation is an
    InvalidTransitionError rather than a silent re-apply.
    """
    order_id = validate_ref(order_id, "order_id")
    policy = DepositConfirmationPolicy(policy or settings.deposit_confirmation_policy)

    if policy is DepositConfirmationPolicy.PLACED_ONLY:
        allowed = (OrderStatus.PLACED,)
    else:
        allowed = tuple(OrderStatus)

    res = await db.execute(
        update(Order)
        .where(
            Order.id == order_id,
            Order.deposit_status == DepositStatus.PENDING.value,
            Order.status.in_([s.value for s in allowed]),
        )
        .values(
            deposit_status=DepositStatus.PAID.value,
            payment_status=case(
                (Order.remaining_amount <= 0, PaymentStatus.PAID.value),
                else_=PaymentStatus.DEPOSIT_PAID.value,
            ),
            status=OrderStatus.ACCEPTED.value,
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )

    order = await _load(db, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    if res.rowcount != 1:
        logger.warning(
            f"Order {order_id}: deposit confirmation refused "
            f"(status {order.status}, deposit {order.deposit_status}, policy {policy.value})"
        )
        raise InvalidTransitionError(
            order_id,
            order.status,
            "confirm deposit for",
            details={"deposit_status": order.deposit_status, "policy": policy.value},
        )

    logger.info(f"Order {order_id}: deposit confirmed, status → ACCEPTED")
    return order


@translate_storage_errors
async def advance_order(db: AsyncSession, order_id: str) -> Order:
    """
    Move an ongoing order to the next production stage.

    The target is always NEXT_STATUS[current]; statuses without a successor
    (PLACED, DELIVERED, REJECTED, CANCELLED) raise NoFurtherTransitionError.
    """
    order_id = validate_ref(order_id, "order_id")

    order = await _load(db, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)

    current = OrderStatus(order.status)
    successor = next_status(current)
    if successor is None:
        raise NoFurtherTransitionError(order_id, current.value)

    if not await _compare_and_set(db, order_id, (current,), status=successor.value):
        latest = await _load(db, order_id)
        if latest is None:
            raise NotFoundError("Order", order_id)
        logger.warning(
            f"Order {order_id}: advance from {current.value} lost to a concurrent update "
            f"(now {latest.status})"
        )
        if next_status(latest.status) is None:
            raise NoFurtherTransitionError(order_id, latest.status)
        raise InvalidTransitionError(
            order_id, latest.status, "advance", details={"expected_status": current.value}
        )

    order = await _load(db, order_id)
    logger.info(f"Order {order_id}: {current.value} → {successor.value}")
    return order


# ── Queries ─────────────────────────────────────────────────────────

@translate_storage_errors
async def get_order(db: AsyncSession, order_id: str) -> Order:
    order_id = validate_ref(order_id, "order_id")
    order = await _load(db, order_id)
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


@translate_storage_errors
async def list_by_requester(
    db: AsyncSession,
    requester_ref: str,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """Requester order history, newest first. Returns (page, total)."""
    requester_ref = validate_ref(requester_ref, "requesterRef")
    criteria = (Order.requester_ref == requester_ref,)

    total = (await db.execute(select(func.count(Order.id)).where(*criteria))).scalar_one()
    res = await db.execute(
        select(Order)
        .where(*criteria)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all()), total


@translate_storage_errors
async def list_by_provider(
    db: AsyncSession,
    provider_ref: str,
    status_filter: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Order], int]:
    """
    Provider dashboard listing, most recently updated first.

    status_filter: "ongoing" (ACCEPTED..READY), "all" / None, or one status name.
    """
    provider_ref = validate_ref(provider_ref, "providerRef")
    statuses = parse_status_filter(status_filter)

    criteria = [Order.provider_ref == provider_ref]
    if statuses is not None:
        criteria.append(Order.status.in_([s.value for s in statuses]))

    total = (await db.execute(select(func.count(Order.id)).where(*criteria))).scalar_one()
    res = await db.execute(
        select(Order)
        .where(*criteria)
        .order_by(Order.updated_at.desc(), Order.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(res.scalars().all()), total


@translate_storage_errors
async def count_created_today(db: AsyncSession, provider_ref: str, now: Optional[datetime] = None) -> int:
    """Number of orders placed with the provider since 00:00 UTC today."""
    provider_ref = validate_ref(provider_ref, "providerRef")
    now = now or datetime.utcnow()
    start_of_day = datetime.combine(now.date(), time.min)

    res = await db.execute(
        select(func.count(Order.id)).where(
            Order.provider_ref == provider_ref,
            Order.created_at >= start_of_day,
        )
    )
    return res.scalar_one()
